"""
Ladder league sessions and court movement.

Courts are numbered from 1 (bottom) to N (top). Four players share a court for
a session and play every partner combination twice; afterwards the best
scorer on each court moves up one court and the worst moves down.
"""
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .models import (
    PHASE_LADDER,
    TOURNAMENT_PLAYING,
    Match,
    Participant,
    ScheduleResult,
    Side,
    TournamentSettings,
)
from .rng import RandomSource

logger = logging.getLogger(__name__)

PLAYERS_PER_COURT = 4
GAMES_PER_PAIRING = 2

# Positions (within a court's four players) that partner each other
COURT_PAIRINGS = (
    ((0, 1), (2, 3)),
    ((0, 2), (1, 3)),
    ((0, 3), (1, 2)),
)


def generate_ladder_session(players: Sequence[Participant], settings: Optional[TournamentSettings] = None,
                            rng: Optional[RandomSource] = None, session: int = 1) -> ScheduleResult:
    """
    Generate one ladder session for players listed top seed first.

    The first four players take the top court. Each court plays six games:
    the three ways to split four players into pairs, each played twice. The
    roster order is used as given, so rng is not consulted.
    """
    if len(players) < PLAYERS_PER_COURT or len(players) % PLAYERS_PER_COURT != 0:
        return ScheduleResult.failure(
            'invalid-ladder-roster',
            'Need a multiple of 4 players for ladder league (4, 8, 12, etc.)',
            {'count': len(players)},
        )

    num_courts = len(players) // PLAYERS_PER_COURT
    assignments = {}
    matches = []

    for c in range(num_courts):
        court = num_courts - c
        court_players = list(players[c * PLAYERS_PER_COURT:(c + 1) * PLAYERS_PER_COURT])
        assignments[court] = court_players

        game = 0
        for (a, b), (x, y) in COURT_PAIRINGS:
            for _ in range(GAMES_PER_PAIRING):
                game += 1
                matches.append(Match(
                    id=f"ladder-s{session}-court{court}-g{game}",
                    round=game,
                    court=court,
                    phase=PHASE_LADDER,
                    session=session,
                    team1=Side.pair(court_players[a], court_players[b]),
                    team2=Side.pair(court_players[x], court_players[y]),
                ))

    logger.debug("Ladder session %d: %d courts, %d games", session, num_courts, len(matches))
    return ScheduleResult(matches=matches, phase=TOURNAMENT_PLAYING, court_assignments=assignments)


def ladder_court_standings(court_players: Sequence[Participant], matches: Sequence[Match],
                           court: int, session: Optional[int] = None) -> List[Tuple[Participant, int]]:
    """
    Players of one court ranked by points scored in that court's completed games.

    Ties keep the court's listed order.
    """
    court_matches = [
        m for m in matches
        if m.phase == PHASE_LADDER and m.court == court and m.completed
        and (session is None or m.session == session)
    ]
    totals = []
    for player in court_players:
        total = 0
        for match in court_matches:
            side = match.side_of(player.id)
            if side == 1:
                total += match.score1 or 0
            elif side == 2:
                total += match.score2 or 0
        totals.append((player, total))
    return sorted(totals, key=lambda entry: -entry[1])


class LadderMovement:
    """Result of a finished session: who moves, and the order for the next one."""

    def __init__(self, movers: Dict[int, Dict[str, Optional[Participant]]],
                 assignments: Dict[int, List[Participant]]):
        self.movers = movers
        self.assignments = assignments

    @property
    def order(self) -> List[Participant]:
        """Players flattened top court first."""
        new_order = []
        for court in sorted(self.assignments, reverse=True):
            new_order.extend(self.assignments[court])
        return new_order

    def to_dict(self) -> Dict:
        return {
            'movers': {
                court: {direction: (p.id if p else None) for direction, p in moves.items()}
                for court, moves in self.movers.items()
            },
            'order': [p.id for p in self.order],
        }


def calculate_ladder_movement(court_assignments: Dict[int, List[Participant]], matches: Sequence[Match],
                              session: Optional[int] = None) -> LadderMovement:
    """
    Work out promotions and relegations after a session.

    The top scorer of every court but the top one moves up; the bottom scorer
    of every court but the bottom one moves down. Movers swap places between
    each pair of neighbouring courts.
    """
    courts = sorted(court_assignments)
    if not courts:
        return LadderMovement({}, {})
    top_court = courts[-1]
    bottom_court = courts[0]

    movers = {}
    for court in courts:
        standings = ladder_court_standings(court_assignments[court], matches, court, session)
        movers[court] = {
            'up': standings[0][0] if court < top_court and standings else None,
            'down': standings[-1][0] if court > bottom_court and standings else None,
        }

    assignments = {court: list(court_assignments[court]) for court in courts}
    for lower, upper in zip(courts, courts[1:]):
        going_up = movers[lower]['up']
        going_down = movers[upper]['down']
        if going_up is not None and going_down is not None:
            assignments[lower] = [going_down if p.id == going_up.id else p for p in assignments[lower]]
            assignments[upper] = [going_up if p.id == going_down.id else p for p in assignments[upper]]

    return LadderMovement(movers, assignments)
