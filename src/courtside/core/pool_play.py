"""
Pool play into an elimination bracket.
"""
import logging
from itertools import combinations
from typing import Dict, List, Sequence

from .elimination import build_bracket, bye_warning, calculate_byes, cross_seed
from .models import (
    PHASE_BRACKET,
    PHASE_POOL,
    TOURNAMENT_BRACKET,
    TOURNAMENT_POOLS,
    Match,
    Participant,
    ScheduleResult,
    Side,
    TournamentSettings,
)
from .rng import RandomSource
from .standings import calculate_standings

logger = logging.getLogger(__name__)

MIN_TEAMS = 2
MIN_TEAMS_PER_POOL = 2


def assign_pools(teams: Sequence[Participant], num_pools: int) -> List[List[Participant]]:
    """Deal teams across pools in turn."""
    pools = [[] for _ in range(num_pools)]
    for i, team in enumerate(teams):
        pools[i % num_pools].append(team)
    return pools


def pool_fixtures(pools: List[List[Participant]]) -> List[Match]:
    """Every intra-pool pairing, not yet placed in a round."""
    fixtures = []
    for pool_idx, pool_teams in enumerate(pools):
        for team1, team2 in combinations(pool_teams, 2):
            fixtures.append(Match(
                id='',
                round=0,
                phase=PHASE_POOL,
                pool=pool_idx + 1,
                team1=Side.single(team1),
                team2=Side.single(team2),
            ))
    return fixtures


def schedule_pool_fixtures(fixtures: List[Match], num_courts: int) -> List[Match]:
    """
    Place pool fixtures into rounds.

    Each round scans the remaining fixtures from the back, taking any fixture
    whose teams are still free this round until every court is used. Best
    effort: no attempt is made to minimise the number of rounds.
    """
    remaining = list(fixtures)
    scheduled = []
    round_num = 0

    while remaining:
        round_num += 1
        used_ids = set()
        court = 0
        i = len(remaining) - 1
        while i >= 0 and court < num_courts:
            match = remaining[i]
            ids = match.team1.ids() + match.team2.ids()
            if not any(pid in used_ids for pid in ids):
                court += 1
                used_ids.update(ids)
                match.round = round_num
                match.court = court
                match.id = f"pool-{match.pool}-round-{round_num}-court-{court}"
                scheduled.append(match)
                del remaining[i]
            i -= 1

    return scheduled


def generate_pool_play(participants: Sequence[Participant], settings: TournamentSettings,
                       rng: RandomSource) -> ScheduleResult:
    """Generate the pool stage; the bracket is added later by advance_to_bracket."""
    total_slots = settings.num_pools * settings.pool_size
    if len(participants) < MIN_TEAMS:
        return ScheduleResult.failure(
            'insufficient-participants',
            'Need at least 2 teams for pool play',
            {'minimum': MIN_TEAMS, 'count': len(participants)},
        )
    if len(participants) > total_slots:
        return ScheduleResult.failure(
            'pools-overfull',
            (f"{len(participants)} teams don't fit in {settings.num_pools} pools of "
             f"{settings.pool_size}. Increase pools or pool size."),
            {'count': len(participants), 'slots': total_slots},
        )
    if len(participants) < MIN_TEAMS_PER_POOL * settings.num_pools:
        return ScheduleResult.failure(
            'pools-underfilled',
            f"{len(participants)} teams can't give each of {settings.num_pools} pools two teams",
            {'count': len(participants), 'pools': settings.num_pools},
        )

    if settings.advance_count * settings.num_pools < 2:
        return ScheduleResult.failure(
            'insufficient-qualifiers',
            'At least 2 teams must advance from pools to form a bracket',
            {'advance_count': settings.advance_count, 'pools': settings.num_pools},
        )

    shuffled = rng.shuffle(participants)
    pools = assign_pools(shuffled, settings.num_pools)
    matches = schedule_pool_fixtures(pool_fixtures(pools), settings.courts)
    logger.debug("Pool play: %d pools, %d matches", len(pools), len(matches))
    return ScheduleResult(matches=matches, phase=TOURNAMENT_POOLS)


def pool_numbers(matches: Sequence[Match]) -> List[int]:
    return sorted({m.pool for m in matches if m.phase == PHASE_POOL})


def pool_qualifiers(participants: Sequence[Participant], matches: Sequence[Match],
                    advance_count: int) -> Dict[int, List[Participant]]:
    """Top advance_count finishers of each pool, in finishing order."""
    qualifiers = {}
    for pool in pool_numbers(matches):
        rows = calculate_standings(participants, matches, pool=pool)
        qualifiers[pool] = [row.participant for row in rows[:advance_count]]
    return qualifiers


def advance_to_bracket(participants: Sequence[Participant], matches: Sequence[Match],
                       settings: TournamentSettings) -> ScheduleResult:
    """
    Seed the pool qualifiers into a single elimination bracket.

    The returned matches are the original pool matches followed by the new
    bracket matches.
    """
    pool_matches = [m for m in matches if m.phase == PHASE_POOL]
    if not pool_matches or not all(m.completed for m in pool_matches):
        return ScheduleResult.failure('pools-incomplete', 'All pool matches must be completed first')
    if any(m.phase == PHASE_BRACKET for m in matches):
        return ScheduleResult.failure('bracket-exists', 'The bracket has already been generated')

    seeded = cross_seed(pool_qualifiers(participants, matches, settings.advance_count))
    if len(seeded) < 2:
        return ScheduleResult.failure(
            'insufficient-qualifiers',
            'At least 2 teams must advance from pools to form a bracket',
            {'count': len(seeded)},
        )

    sides = [Side.single(p) for p in seeded]
    byes_needed = calculate_byes(len(sides))
    warnings = [bye_warning(byes_needed, len(sides))] if byes_needed > 0 else []
    bracket = build_bracket(sides, phase=PHASE_BRACKET, id_prefix='bracket')
    logger.debug("Advancing %d teams from %d pools into the bracket", len(seeded), len(pool_numbers(matches)))
    return ScheduleResult(matches=list(matches) + bracket, phase=TOURNAMENT_BRACKET,
                          warnings=warnings, byes_needed=byes_needed)
