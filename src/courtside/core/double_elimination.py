"""
Double elimination bracket generation and routing.

In double elimination:
- Sides must lose twice to be eliminated
- Winners Bracket: sides that haven't lost yet
- Losers Bracket: sides that have lost once
- Grand Final: Winners bracket champion vs Losers bracket champion
- Bracket Reset: if the losers bracket champion wins the Grand Final, one more
  match decides the champion

Losers rounds are numbered from 1. Odd rounds are played among losers bracket
survivors (round 1 pairs off the winners round 1 losers); even rounds take the
losers dropping down from winners round r into losers round 2 * (r - 1).
"""
import logging
import math
from typing import List, Optional, Sequence, Tuple

from .elimination import (
    build_bracket,
    bye_warning,
    calculate_bracket_size,
    calculate_byes,
    calculate_total_rounds,
    elimination_sides,
)
from .match_index import MatchIndex
from .models import (
    INDIVIDUAL,
    PHASE_GRAND_FINAL,
    PHASE_LOSERS,
    PHASE_RESET,
    PHASE_WINNERS,
    Match,
    Participant,
    ScheduleResult,
    Side,
    TournamentSettings,
)
from .rng import RandomSource

logger = logging.getLogger(__name__)

GRAND_FINAL_ID = 'grand-final'
RESET_ID = 'reset'

# (phase, round, bracket_position, preferred slot or None for first open)
Destination = Tuple[str, int, int, Optional[str]]


def get_losers_round_name(round_num: int, total_losers_rounds: int) -> str:
    """Get the name for a losers bracket round (1-indexed)."""
    rounds_from_end = total_losers_rounds - round_num
    if rounds_from_end == 0:
        return "Losers Final"
    elif rounds_from_end == 1:
        return "Losers Semifinal"
    else:
        return f"Losers Round {round_num}"


def get_winners_round_name(teams_in_round: int) -> str:
    """Get the name for a winners bracket round."""
    if teams_in_round == 2:
        return "Winners Final"
    elif teams_in_round == 4:
        return "Winners Semifinal"
    elif teams_in_round == 8:
        return "Winners Quarterfinal"
    else:
        return f"Winners Round of {teams_in_round}"


def calculate_losers_bracket_rounds(bracket_size: int) -> int:
    """
    Calculate number of rounds in losers bracket.
    For N sides in winners bracket (power of 2):
    - Winners bracket has log2(N) rounds
    - Losers bracket has 2 * (log2(N) - 1) rounds
    """
    if bracket_size < 2:
        return 0
    winners_rounds = calculate_total_rounds(bracket_size)
    return 2 * (winners_rounds - 1)


def losers_round_match_counts(first_round_count: int, total_losers_rounds: int) -> List[int]:
    """
    Match counts for each losers round.

    The first losers round has ceil(first_round_count / 2) matches. Drop-in
    rounds keep the count of the round before them; the rounds between them
    halve it.
    """
    counts = []
    for idx in range(total_losers_rounds):
        if idx == 0:
            counts.append(math.ceil(first_round_count / 2))
        elif idx % 2 == 1:
            counts.append(counts[-1])
        else:
            counts.append(math.ceil(counts[-1] / 2))
    return counts


def winners_loser_destination(winners_round: int, position: int, total_winners_rounds: int) -> Destination:
    """Where the loser of a winners bracket match goes."""
    if total_winners_rounds <= 1:
        # No losers bracket: the only winners match feeds the grand final directly
        return PHASE_GRAND_FINAL, 1, 0, 'team2'
    if winners_round == 1:
        return PHASE_LOSERS, 1, position // 2, 'team1' if position % 2 == 0 else 'team2'
    return PHASE_LOSERS, 2 * (winners_round - 1), position, 'team1'


def winners_winner_destination(winners_round: int, position: int, total_winners_rounds: int) -> Destination:
    """Where the winner of a winners bracket match goes."""
    if winners_round >= total_winners_rounds:
        return PHASE_GRAND_FINAL, 1, 0, 'team1'
    return PHASE_WINNERS, winners_round + 1, position // 2, None


def losers_winner_destination(losers_round: int, position: int, total_losers_rounds: int) -> Destination:
    """Where the winner of a losers bracket match goes."""
    if losers_round >= total_losers_rounds:
        return PHASE_GRAND_FINAL, 1, 0, 'team2'
    if losers_round % 2 == 1:
        # Survivors meet the next wave of winners bracket losers
        return PHASE_LOSERS, losers_round + 1, position, 'team2'
    return PHASE_LOSERS, losers_round + 1, position // 2, 'team1' if position % 2 == 0 else 'team2'


def _build_losers_bracket(winners_matches: List[Match], first_round_count: int,
                          total_losers_rounds: int) -> List[Match]:
    counts = losers_round_match_counts(first_round_count, total_losers_rounds)
    matches = []
    for round_idx, count in enumerate(counts, start=1):
        for i in range(count):
            matches.append(Match(
                id=f"losers-{i}-round-{round_idx}",
                round=round_idx,
                phase=PHASE_LOSERS,
                bracket_position=i,
            ))
    _mark_losers_byes(winners_matches, matches)
    return matches


def _mark_losers_byes(winners_matches: List[Match], losers_matches: List[Match]):
    """
    Flag losers matches that can only ever receive one side.

    Winners round 1 byes produce no loser, so the losers round 1 match they
    feed is short a side; if both its feeders are byes it never produces a
    winner, which leaves its losers round 2 match short as well. Later rounds
    are always full.
    """
    winners = MatchIndex(winners_matches)
    losers = MatchIndex(losers_matches)
    for match in losers.round_matches(PHASE_LOSERS, 1):
        feeders = [winners.at(PHASE_WINNERS, 1, 2 * match.bracket_position + offset) for offset in (0, 1)]
        live = sum(1 for feeder in feeders if feeder is not None and not feeder.is_bye)
        if live < 2:
            match.is_bye = True
        if live == 0:
            follow_on = losers.at(PHASE_LOSERS, 2, match.bracket_position)
            if follow_on is not None:
                follow_on.is_bye = True


def build_double_elimination(sides: Sequence[Side]) -> List[Match]:
    """Build the winners bracket, losers bracket, grand final and reset match."""
    bracket_size = calculate_bracket_size(len(sides))
    total_losers_rounds = calculate_losers_bracket_rounds(bracket_size)

    winners_matches = build_bracket(sides, phase=PHASE_WINNERS, id_prefix='winners')
    losers_matches = _build_losers_bracket(winners_matches, bracket_size // 2, total_losers_rounds)

    grand_final = Match(id=GRAND_FINAL_ID, round=1, phase=PHASE_GRAND_FINAL, bracket_position=0)
    bracket_reset = Match(id=RESET_ID, round=1, phase=PHASE_RESET, bracket_position=0, is_reset=True)
    return winners_matches + losers_matches + [grand_final, bracket_reset]


def generate_double_elimination(participants: Sequence[Participant], settings: TournamentSettings,
                                rng: RandomSource, participant_type: str = INDIVIDUAL) -> ScheduleResult:
    """
    Generate a double elimination bracket.

    Roster rules and the bye warning are the same as for single elimination.
    """
    sides, failure = elimination_sides(participants, participant_type, rng)
    if failure:
        return failure

    byes_needed = calculate_byes(len(sides))
    warnings = [bye_warning(byes_needed, len(sides))] if byes_needed > 0 else []
    matches = build_double_elimination(sides)
    logger.debug("Double elimination: %d sides, %d byes, %d matches", len(sides), byes_needed, len(matches))
    return ScheduleResult(matches=matches, phase=None, warnings=warnings, byes_needed=byes_needed)


def double_elimination_champion(matches: List[Match]) -> Optional[Side]:
    """Champion of a double elimination bracket, if decided."""
    index = MatchIndex(matches)
    grand_final = index.find(GRAND_FINAL_ID)
    bracket_reset = index.find(RESET_ID)
    if bracket_reset is not None and bracket_reset.completed:
        return bracket_reset.winner
    if grand_final is not None and grand_final.completed and grand_final.winner == grand_final.team1:
        return grand_final.winner
    return None
