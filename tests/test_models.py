"""
Unit tests for the data models (Participant, Side, Match, TournamentSettings).
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from courtside.core.models import (
    INDIVIDUAL,
    TEAM,
    Match,
    Participant,
    ScheduleResult,
    Side,
    TournamentSettings,
    display_side,
    get_default_settings,
    parse_bool,
)


class TestParticipant:
    """Tests for the Participant model."""

    def test_individual_display_name(self):
        """An individual is shown by name only."""
        player = Participant('p1', 'Alice')
        assert player.kind == INDIVIDUAL
        assert player.display_name() == 'Alice'

    def test_team_display_name_with_partner(self):
        """A team with a partner is shown as 'name & partner'."""
        team = Participant('t1', 'Alice', kind=TEAM, partner='Bob')
        assert team.display_name() == 'Alice & Bob'

    def test_individual_ignores_partner(self):
        """Only teams keep a partner."""
        player = Participant('p1', 'Alice', partner='Bob')
        assert player.partner is None
        assert player.display_name() == 'Alice'

    def test_reset_stats(self):
        player = Participant('p1', 'Alice', wins=3, losses=1, points=40)
        player.reset_stats()
        assert (player.wins, player.losses, player.points) == (0, 0, 0)

    def test_dict_round_trip(self):
        team = Participant('t1', 'Alice', kind=TEAM, partner='Bob', wins=2, losses=1, points=30)
        restored = Participant.from_dict(team.to_dict())
        assert restored.to_dict() == team.to_dict()


class TestSide:
    """Tests for the Side variant."""

    def test_single_side(self):
        alice = Participant('p1', 'Alice')
        side = Side.single(alice)
        assert side.kind == Side.SINGLE
        assert side.ids() == ['p1']
        assert side.display_name() == 'Alice'

    def test_pair_side(self):
        alice, bob = Participant('p1', 'Alice'), Participant('p2', 'Bob')
        side = Side.pair(alice, bob)
        assert side.kind == Side.PAIR
        assert side.members() == [alice, bob]
        assert side.display_name() == 'Alice & Bob'
        assert side.contains('p2')
        assert not side.contains('p3')

    def test_equality_is_by_ordered_ids(self):
        alice, bob = Participant('p1', 'Alice'), Participant('p2', 'Bob')
        assert Side.pair(alice, bob) == Side.pair(Participant('p1', 'Other'), Participant('p2', 'Names'))
        assert Side.pair(alice, bob) != Side.pair(bob, alice)

    def test_side_needs_one_or_two_members(self):
        with pytest.raises(ValueError):
            Side([])

    def test_display_side_pending(self):
        """A slot waiting on an earlier result shows as TBD."""
        assert display_side(None) == 'TBD'


class TestMatch:
    """Tests for the Match model."""

    def test_loser_of_completed_match(self):
        a, b = Side.single(Participant('p1', 'A')), Side.single(Participant('p2', 'B'))
        match = Match('m1', 1, team1=a, team2=b, score1=11, score2=4, winner=a, completed=True)
        assert match.loser == b

    def test_no_loser_until_completed(self):
        a, b = Side.single(Participant('p1', 'A')), Side.single(Participant('p2', 'B'))
        match = Match('m1', 1, team1=a, team2=b)
        assert match.loser is None
        assert match.is_ready()

    def test_side_of(self):
        alice, bob, cara, dan = (Participant(f'p{i}', n) for i, n in enumerate('ABCD'))
        match = Match('m1', 1, team1=Side.pair(alice, bob), team2=Side.pair(cara, dan))
        assert match.side_of('p0') == 1
        assert match.side_of('p3') == 2
        assert match.side_of('nobody') is None

    def test_dict_round_trip_resolves_participants(self):
        alice, bob = Participant('p1', 'Alice'), Participant('p2', 'Bob')
        match = Match('bracket-0-round-1', 1, team1=Side.single(alice), team2=Side.single(bob),
                      phase='bracket', bracket_position=0, score1=11, score2=7,
                      winner=Side.single(alice), completed=True)
        data = match.to_dict()
        assert data['team1'] == ['p1']

        restored = Match.from_dict(data, {'p1': alice, 'p2': bob})
        assert restored.team1.members()[0] is alice
        assert restored.winner == Side.single(alice)
        assert restored.to_dict() == data


class TestTournamentSettings:
    """Tests for settings defaults and validation."""

    def test_defaults(self):
        settings = TournamentSettings.from_dict(None)
        assert settings.to_dict() == get_default_settings()

    def test_partial_settings_merge_over_defaults(self):
        settings = TournamentSettings.from_dict({'courts': '3', 'points_to_win': 15})
        assert settings.courts == 3
        assert settings.points_to_win == 15
        assert settings.rounds == get_default_settings()['rounds']

    def test_unknown_keys_ignored(self):
        settings = TournamentSettings.from_dict({'colour': 'green'})
        assert not hasattr(settings, 'colour')

    @pytest.mark.parametrize('value,expected', [
        ('false', False), ('False', False), ('no', False), ('off', False), ('0', False), (0, False),
        ('true', True), (' Yes ', True), ('on', True), (1, True), (True, True),
    ])
    def test_win_by_two_from_text(self, value, expected):
        assert TournamentSettings.from_dict({'win_by_two': value}).win_by_two is expected

    @pytest.mark.parametrize('value', ['maybe', '', 2, [True]])
    def test_unreadable_flag(self, value):
        with pytest.raises(ValueError):
            parse_bool(value)

    @pytest.mark.parametrize('points', [11, 15, 21])
    def test_allowed_points(self, points):
        assert TournamentSettings(points_to_win=points).validate() is None

    def test_disallowed_points(self):
        error = TournamentSettings(points_to_win=12).validate()
        assert error.code == 'invalid-settings'
        assert error.details['field'] == 'points_to_win'

    def test_courts_must_be_positive(self):
        error = TournamentSettings(courts=0).validate()
        assert error.details['field'] == 'courts'


class TestScheduleResult:
    def test_failure_is_not_ok(self):
        result = ScheduleResult.failure('insufficient-participants', 'Too few')
        assert not result.ok
        assert result.matches == []
        assert result.error.code == 'insufficient-participants'
