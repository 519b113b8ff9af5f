"""
Tests for ladder sessions and promotion/relegation.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from courtside.core.ladder import (
    calculate_ladder_movement,
    generate_ladder_session,
    ladder_court_standings,
)


def _team1_wins_everything(matches):
    """Court position 0 partners everyone on team1, so they top the court; position 3 ends last."""
    for match in matches:
        match.score1, match.score2 = 11, 0
        match.winner = match.team1
        match.completed = True


class TestGenerateLadderSession:
    """Tests for generate_ladder_session."""

    @pytest.mark.parametrize('count', [0, 3, 6, 10])
    def test_needs_multiple_of_four(self, players, count):
        result = generate_ladder_session(players(count))
        assert not result.ok
        assert result.error.code == 'invalid-ladder-roster'

    def test_top_court_gets_first_four(self, players):
        result = generate_ladder_session(players(8))
        assert result.ok
        assert result.phase == 'playing'
        assert [p.id for p in result.court_assignments[2]] == ['p1', 'p2', 'p3', 'p4']
        assert [p.id for p in result.court_assignments[1]] == ['p5', 'p6', 'p7', 'p8']

    def test_six_games_per_court(self, players):
        result = generate_ladder_session(players(12))
        assert len(result.matches) == 18
        for court in (1, 2, 3):
            games = [m for m in result.matches if m.court == court]
            assert [m.round for m in games] == [1, 2, 3, 4, 5, 6]

    def test_each_split_played_twice(self, players):
        result = generate_ladder_session(players(4))
        splits = {}
        for match in result.matches:
            key = frozenset([frozenset(match.team1.ids()), frozenset(match.team2.ids())])
            splits[key] = splits.get(key, 0) + 1
        assert len(splits) == 3
        assert set(splits.values()) == {2}

    def test_ids_and_session(self, players):
        result = generate_ladder_session(players(4), session=3)
        assert result.matches[0].id == 'ladder-s3-court1-g1'
        assert all(m.session == 3 and m.phase == 'ladder' for m in result.matches)


class TestLadderCourtStandings:

    def test_ranked_by_points(self, players):
        result = generate_ladder_session(players(4))
        _team1_wins_everything(result.matches)
        standings = ladder_court_standings(result.court_assignments[1], result.matches, 1)
        assert standings[0][0].id == 'p1'
        assert standings[0][1] == 66
        assert [total for _, total in standings[1:]] == [22, 22, 22]

    def test_ties_keep_court_order(self, players):
        result = generate_ladder_session(players(4))
        standings = ladder_court_standings(result.court_assignments[1], result.matches, 1)
        assert [p.id for p, _ in standings] == ['p1', 'p2', 'p3', 'p4']


class TestLadderMovement:
    """Tests for calculate_ladder_movement."""

    def test_two_courts_swap_extremes(self, players):
        """Bottom court's top scorer and top court's bottom scorer swap; nobody else moves."""
        roster = players(8)
        result = generate_ladder_session(roster)
        _team1_wins_everything(result.matches)

        movement = calculate_ladder_movement(result.court_assignments, result.matches, session=1)

        assert movement.movers[1]['up'].id == 'p5'
        assert movement.movers[1]['down'] is None
        assert movement.movers[2]['up'] is None
        assert movement.movers[2]['down'].id == 'p4'
        assert [p.id for p in movement.order] == ['p1', 'p2', 'p3', 'p5', 'p4', 'p6', 'p7', 'p8']

    def test_three_courts(self, players):
        result = generate_ladder_session(players(12))
        _team1_wins_everything(result.matches)
        movement = calculate_ladder_movement(result.court_assignments, result.matches)
        assert [p.id for p in movement.order] == [
            'p1', 'p2', 'p3', 'p5',
            'p4', 'p6', 'p7', 'p9',
            'p8', 'p10', 'p11', 'p12',
        ]

    def test_single_court_nobody_moves(self, players):
        result = generate_ladder_session(players(4))
        _team1_wins_everything(result.matches)
        movement = calculate_ladder_movement(result.court_assignments, result.matches)
        assert [p.id for p in movement.order] == ['p1', 'p2', 'p3', 'p4']
        assert movement.movers[1] == {'up': None, 'down': None}

    def test_next_session_uses_new_order(self, players):
        result = generate_ladder_session(players(8))
        _team1_wins_everything(result.matches)
        movement = calculate_ladder_movement(result.court_assignments, result.matches)
        next_session = generate_ladder_session(movement.order, session=2)
        assert [p.id for p in next_session.court_assignments[2]] == ['p1', 'p2', 'p3', 'p5']

    def test_to_dict(self, players):
        result = generate_ladder_session(players(8))
        _team1_wins_everything(result.matches)
        data = calculate_ladder_movement(result.court_assignments, result.matches).to_dict()
        assert data['movers'][1] == {'up': 'p5', 'down': None}
        assert data['order'][3] == 'p5'
