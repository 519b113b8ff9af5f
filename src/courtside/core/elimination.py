"""
Single elimination bracket generation and the shared bracket topology helpers.
"""
import logging
import math
from typing import Dict, List, Optional, Sequence

from .match_index import MatchIndex
from .models import (
    INDIVIDUAL,
    PHASE_BRACKET,
    Match,
    Participant,
    ScheduleResult,
    Side,
    TournamentSettings,
)
from .rng import RandomSource

logger = logging.getLogger(__name__)

MIN_ELIMINATION_PARTICIPANTS = 4


def get_round_name(teams_in_round: int) -> str:
    """Get the name of a round based on number of teams."""
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {teams_in_round}"


def calculate_bracket_size(num_teams: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_teams <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_teams))


def calculate_byes(num_teams: int) -> int:
    """Calculate number of byes needed."""
    bracket_size = calculate_bracket_size(num_teams)
    return bracket_size - num_teams


def calculate_total_rounds(bracket_size: int) -> int:
    """Number of rounds needed to reduce a bracket to one champion."""
    if bracket_size < 2:
        return 0
    return int(math.log2(bracket_size))


def round_match_counts(first_round_count: int) -> List[int]:
    """
    Match counts per round, starting from the first round.

    Each round after the first has ceil(previous / 2) matches, down to the final.
    """
    counts = [first_round_count]
    while counts[-1] > 1:
        counts.append(math.ceil(counts[-1] / 2))
    return counts


def build_sides(participants: Sequence[Participant], participant_type: str) -> List[Side]:
    """
    Turn an (already shuffled) roster into bracket sides.

    Teams each form a single side. Individuals are paired consecutively into
    doubles sides; an odd player out plays as a solo side.
    """
    if participant_type != INDIVIDUAL:
        return [Side.single(p) for p in participants]

    sides = []
    for i in range(0, len(participants) - 1, 2):
        sides.append(Side.pair(participants[i], participants[i + 1]))
    if len(participants) % 2 == 1:
        sides.append(Side.single(participants[-1]))
    return sides


def build_bracket(sides: Sequence[Side], phase: str = PHASE_BRACKET, id_prefix: str = 'bracket') -> List[Match]:
    """
    Build every match of an elimination bracket for the given seeded sides.

    Round 1 mirrors the seed list: slot i plays slot bracket_size - 1 - i, so
    the top seeds receive the byes. Later rounds are created as placeholders
    and bye winners are moved straight into round 2.
    """
    bracket_size = calculate_bracket_size(len(sides))
    first_round_count = bracket_size // 2
    matches = []

    for i in range(first_round_count):
        opponent_slot = bracket_size - 1 - i
        side1 = sides[i] if i < len(sides) else None
        side2 = sides[opponent_slot] if opponent_slot < len(sides) else None

        if side1 is not None and side2 is not None:
            matches.append(Match(
                id=f"{id_prefix}-{i}-round-1",
                round=1,
                phase=phase,
                team1=side1,
                team2=side2,
                bracket_position=i,
            ))
        elif side1 is not None:
            matches.append(Match(
                id=f"{id_prefix}-{i}-round-1",
                round=1,
                phase=phase,
                team1=side1,
                team2=None,
                winner=side1,
                completed=True,
                bracket_position=i,
                is_bye=True,
            ))

    for round_idx, count in enumerate(round_match_counts(first_round_count)[1:], start=2):
        for i in range(count):
            matches.append(Match(
                id=f"{id_prefix}-{i}-round-{round_idx}",
                round=round_idx,
                phase=phase,
                bracket_position=i,
            ))

    propagate_bye_winners(matches, phase)
    return matches


def propagate_bye_winners(matches: List[Match], phase: str):
    """Move the winners of round 1 byes into their round 2 matches."""
    index = MatchIndex(matches)
    for match in index.round_matches(phase, 1):
        if not (match.is_bye and match.winner is not None):
            continue
        target = index.at(phase, 2, match.bracket_position // 2)
        if target is None:
            continue
        if target.team1 is None:
            target.team1 = match.winner
        else:
            target.team2 = match.winner


def bye_warning(byes_needed: int, side_count: int) -> Dict:
    return {
        'code': 'byes-needed',
        'message': (f"{side_count} sides do not fill a bracket of {side_count + byes_needed}; "
                    f"{byes_needed} side(s) will receive a first-round bye"),
        'byes': byes_needed,
    }


def elimination_sides(participants: Sequence[Participant], participant_type: str, rng: RandomSource):
    """
    Validate an elimination roster and return (sides, error).

    Shared by single and double elimination.
    """
    if len(participants) < MIN_ELIMINATION_PARTICIPANTS:
        return None, ScheduleResult.failure(
            'insufficient-participants',
            f"Need at least {MIN_ELIMINATION_PARTICIPANTS} participants for an elimination bracket",
            {'minimum': MIN_ELIMINATION_PARTICIPANTS, 'count': len(participants)},
        )
    shuffled = rng.shuffle(participants)
    return build_sides(shuffled, participant_type), None


def generate_single_elimination(participants: Sequence[Participant], settings: TournamentSettings,
                                rng: RandomSource, participant_type: str = INDIVIDUAL) -> ScheduleResult:
    """
    Generate a single elimination bracket.

    Returns a ScheduleResult carrying a 'byes-needed' warning when the side
    count is not a power of two; the caller decides whether to go ahead.
    """
    sides, failure = elimination_sides(participants, participant_type, rng)
    if failure:
        return failure

    byes_needed = calculate_byes(len(sides))
    warnings = [bye_warning(byes_needed, len(sides))] if byes_needed > 0 else []
    matches = build_bracket(sides)
    logger.debug("Single elimination: %d sides, %d byes, %d matches", len(sides), byes_needed, len(matches))
    return ScheduleResult(matches=matches, phase=None, warnings=warnings, byes_needed=byes_needed)


def cross_seed(qualifiers_by_pool: Dict[int, List]) -> List:
    """
    Interleave pool qualifiers so teams from the same pool meet as late as possible.

    For each finishing position, the qualifiers at that position are taken in
    pool order; every second position is reversed.
    """
    pool_numbers = sorted(qualifiers_by_pool)
    max_seed = max((len(q) for q in qualifiers_by_pool.values()), default=0)
    seeded = []
    for seed in range(1, max_seed + 1):
        at_seed = [qualifiers_by_pool[pool][seed - 1] for pool in pool_numbers
                   if len(qualifiers_by_pool[pool]) >= seed]
        if seed % 2 == 0:
            at_seed.reverse()
        seeded.extend(at_seed)
    return seeded


def bracket_champion(matches: List[Match], phase: str = PHASE_BRACKET) -> Optional[Side]:
    """Winner of the final of a single elimination bracket, if decided."""
    index = MatchIndex(matches)
    final_round = index.final_round(phase)
    if not final_round:
        return None
    finals = index.round_matches(phase, final_round)
    if len(finals) == 1 and finals[0].completed:
        return finals[0].winner
    return None
