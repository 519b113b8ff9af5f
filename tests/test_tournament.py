"""
Tests for the tournament operations: roster, schedule, sessions and reset.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from courtside.core.models import INDIVIDUAL, TEAM
from courtside.core.processor import complete_match
from courtside.core.rng import NoShuffleRandomSource
from courtside.core.state import TournamentState
from courtside.core.tournament import (
    add_participant,
    create_tournament,
    generate_schedule,
    get_champion,
    get_standings,
    is_tournament_complete,
    move_participant,
    pool_standings,
    remove_participant,
    reset_tournament,
    start_next_ladder_session,
)


def _tournament(tournament_type, count, participant_type=TEAM, settings=None):
    prefix = 'Team' if participant_type == TEAM else 'Player'
    state = create_tournament(tournament_type, participant_type, settings).state
    for i in range(1, count + 1):
        state = add_participant(state, f"{prefix} {i}").state
    return state


def _names(participants):
    return [p.name for p in participants]


def _play_all(state, score1=11, score2=0):
    """Complete every match that has both sides, team1 winning."""
    for match_id in [m.id for m in state.matches]:
        match = next(m for m in state.matches if m.id == match_id)
        if match.team1 is not None and match.team2 is not None and not match.completed:
            state = complete_match(state, match_id, score1, score2).state
    return state


class TestCreateTournament:

    def test_defaults(self):
        result = create_tournament('roundrobin')
        assert result.ok
        assert result.state.participant_type == INDIVIDUAL
        assert result.state.settings.points_to_win == 11
        assert result.state.matches == []

    def test_settings_merged(self):
        state = create_tournament('poolplay', TEAM, {'num_pools': 3, 'points_to_win': 15}).state
        assert state.settings.num_pools == 3
        assert state.settings.points_to_win == 15
        assert state.settings.pool_size == 4

    @pytest.mark.parametrize('args,code', [
        (('swiss',), 'invalid-tournament-type'),
        (('bracket', 'trio'), 'invalid-participant-type'),
        (('bracket', TEAM, {'points_to_win': 12}), 'invalid-settings'),
        (('bracket', TEAM, {'courts': 0}), 'invalid-settings'),
        (('bracket', TEAM, {'courts': 'many'}), 'invalid-settings'),
    ])
    def test_rejected(self, args, code):
        result = create_tournament(*args)
        assert not result.ok
        assert result.error.code == code


class TestRoster:
    """Tests for add, remove and move."""

    def test_add(self):
        state = create_tournament('bracket', TEAM).state
        result = add_participant(state, '  Dinkers  ', partner='Sam')
        assert result.ok
        added = result.state.participants[0]
        assert added.name == 'Dinkers'
        assert added.display_name() == 'Dinkers & Sam'
        assert state.participants == []

    def test_partner_ignored_for_individuals(self):
        state = create_tournament('roundrobin', INDIVIDUAL).state
        added = add_participant(state, 'Alex', partner='Sam').state.participants[0]
        assert added.partner is None
        assert added.display_name() == 'Alex'

    def test_ids_unique(self):
        state = _tournament('bracket', 5)
        assert len({p.id for p in state.participants}) == 5

    def test_blank_name(self):
        state = create_tournament('bracket', TEAM).state
        assert add_participant(state, '   ').error.code == 'blank-name'

    def test_remove(self):
        state = _tournament('bracket', 3)
        removed = remove_participant(state, state.participants[1].id).state
        assert _names(removed.participants) == ['Team 1', 'Team 3']

    def test_remove_unknown(self):
        state = _tournament('bracket', 3)
        assert remove_participant(state, 'nobody').error.code == 'unknown-participant'

    def test_move(self):
        state = _tournament('ladder', 4, INDIVIDUAL)
        third = state.participants[2].id
        moved = move_participant(state, third, -1).state
        assert _names(moved.participants) == ['Player 1', 'Player 3', 'Player 2', 'Player 4']
        moved = move_participant(moved, third, 1).state
        assert _names(moved.participants) == ['Player 1', 'Player 2', 'Player 3', 'Player 4']

    def test_move_past_end_is_noop(self):
        state = _tournament('ladder', 4, INDIVIDUAL)
        moved = move_participant(state, state.participants[0].id, -1)
        assert moved.ok
        assert _names(moved.state.participants) == _names(state.participants)

    def test_roster_locked_once_scheduled(self):
        state = _tournament('bracket', 4)
        state = generate_schedule(state, NoShuffleRandomSource()).state
        assert add_participant(state, 'Late').error.code == 'schedule-exists'
        assert remove_participant(state, state.participants[0].id).error.code == 'schedule-exists'
        assert move_participant(state, state.participants[0].id, 1).error.code == 'schedule-exists'


class TestGenerateSchedule:
    """Tests for generate_schedule."""

    def test_bracket(self):
        state = _tournament('bracket', 4)
        result = generate_schedule(state, NoShuffleRandomSource())
        assert result.ok
        assert len(result.state.matches) == 3
        assert state.matches == []

    def test_byes_need_confirmation(self):
        state = _tournament('bracket', 5)
        result = generate_schedule(state, NoShuffleRandomSource())
        assert not result.ok
        assert result.requires_confirmation
        assert result.warnings[0]['code'] == 'byes-needed'
        assert result.state.matches == []

        confirmed = generate_schedule(state, NoShuffleRandomSource(), confirm_byes=True)
        assert confirmed.ok
        assert confirmed.state.matches
        assert confirmed.warnings[0]['byes'] == 3

    def test_generator_error_passed_through(self):
        state = _tournament('roundrobin', 3, INDIVIDUAL)
        result = generate_schedule(state)
        assert result.error.code == 'insufficient-participants'
        assert result.state is state

    def test_only_once(self):
        state = generate_schedule(_tournament('bracket', 4), NoShuffleRandomSource()).state
        assert generate_schedule(state).error.code == 'schedule-exists'

    def test_pool_play_phase(self):
        state = _tournament('poolplay', 8, settings={'num_pools': 2})
        state = generate_schedule(state, NoShuffleRandomSource()).state
        assert state.phase == 'pools'

    def test_ladder_first_session(self):
        state = _tournament('ladder', 8, INDIVIDUAL)
        state = generate_schedule(state).state
        assert state.ladder_session == 1
        assert state.phase == 'playing'
        assert _names(state.court_assignments[2]) == ['Player 1', 'Player 2', 'Player 3', 'Player 4']


class TestLadderSessions:

    @pytest.fixture
    def played_session(self):
        state = generate_schedule(_tournament('ladder', 8, INDIVIDUAL)).state
        return _play_all(state)

    def test_session_results(self, played_session):
        assert played_session.phase == 'session-results'
        assert is_tournament_complete(played_session)
        assert get_champion(played_session) is None

    def test_next_session(self, played_session):
        result = start_next_ladder_session(played_session)
        assert result.ok
        state = result.state
        assert state.ladder_session == 2
        assert state.phase == 'playing'
        assert len(state.matches) == 24
        assert len([m for m in state.matches if m.session == 2]) == 12
        assert _names(state.court_assignments[2]) == ['Player 1', 'Player 2', 'Player 3', 'Player 5']
        assert result.events[0]['type'] == 'ladder-movement'

    def test_court_standings_follow_current_session(self, played_session):
        state = start_next_ladder_session(played_session).state
        rows = get_standings(state, court=2)
        assert sorted(_names(row.participant for row in rows)) == ['Player 1', 'Player 2', 'Player 3', 'Player 5']
        assert all(row.wins == 0 for row in rows)

    def test_session_must_be_finished(self):
        state = generate_schedule(_tournament('ladder', 4, INDIVIDUAL)).state
        assert start_next_ladder_session(state).error.code == 'session-in-progress'

    def test_not_a_ladder(self):
        state = _tournament('bracket', 4)
        assert start_next_ladder_session(state).error.code == 'not-a-ladder'


class TestChampionAndReset:

    def test_bracket_champion(self):
        state = generate_schedule(_tournament('bracket', 4), NoShuffleRandomSource()).state
        assert not is_tournament_complete(state)
        state = _play_all(state)   # round 1
        state = _play_all(state)   # final
        assert is_tournament_complete(state)
        assert get_champion(state).display_name() == 'Team 1'

    def test_round_robin_champion(self):
        state = _tournament('roundrobin', 2, settings={'rounds': 1})
        state = generate_schedule(state, NoShuffleRandomSource()).state
        assert get_champion(state) is None
        state = _play_all(state, 5, 11)
        assert get_champion(state).display_name() == 'Team 2'

    def test_reset(self):
        state = generate_schedule(_tournament('bracket', 4), NoShuffleRandomSource()).state
        state = _play_all(state)
        result = reset_tournament(state)
        assert result.state.matches == []
        assert _names(result.state.participants) == ['Team 1', 'Team 2', 'Team 3', 'Team 4']
        assert all(p.wins == p.losses == p.points == 0 for p in result.state.participants)
        assert any(p.wins for p in state.participants)


class TestStateDocument:

    def test_round_trip(self):
        state = generate_schedule(_tournament('double', 5), NoShuffleRandomSource(), confirm_byes=True).state
        state = _play_all(state)
        restored = TournamentState.from_dict(state.to_dict())
        assert restored.to_dict() == state.to_dict()
        assert restored.matches[0].team1.members()[0] is restored.participants[0]

    def test_ladder_round_trip(self):
        state = generate_schedule(_tournament('ladder', 8, INDIVIDUAL)).state
        restored = TournamentState.from_dict(state.to_dict())
        assert _names(restored.court_assignments[1]) == ['Player 5', 'Player 6', 'Player 7', 'Player 8']


class TestStandings:

    def test_pool_standings(self):
        state = _tournament('poolplay', 4, settings={'num_pools': 2})
        state = generate_schedule(state, NoShuffleRandomSource()).state
        state = _play_all(state, 11, 7)
        rows = pool_standings(state, 2)
        assert _names(row.participant for row in rows) == ['Team 2', 'Team 4']
        assert rows[0].wins == 1
        assert rows[0].point_diff == 4

    def test_overall_uses_running_stats(self):
        state = generate_schedule(_tournament('bracket', 4), NoShuffleRandomSource()).state
        state = _play_all(state)
        rows = get_standings(state)
        assert rows[0].participant.name == 'Team 1'
        assert rows[0].wins == 2
