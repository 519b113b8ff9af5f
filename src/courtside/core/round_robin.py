"""
Round robin schedules: fixed teams, or an individual doubles mixer.

Both variants build the full list of legal fixtures and then fill
`settings.rounds` rounds greedily, one court at a time, choosing the fixture
whose players have played least so far. Rematches are penalised, not
forbidden, so short rosters still fill every round.
"""
import logging
from itertools import combinations
from typing import List, Sequence, Tuple

from .models import Match, Participant, ScheduleResult, Side, TournamentSettings
from .rng import RandomSource

logger = logging.getLogger(__name__)

REPEAT_PENALTY = 1000
MIN_TEAMS = 2
MIN_PLAYERS = 4

Fixture = Tuple[Side, Side]


def team_fixtures(teams: Sequence[Participant]) -> List[Fixture]:
    """Every unordered pair of teams, once."""
    return [(Side.single(a), Side.single(b)) for a, b in combinations(teams, 2)]


def doubles_fixtures(players: Sequence[Participant]) -> List[Fixture]:
    """Every way to split every group of four players into two pairs."""
    fixtures = []
    for a, b, c, d in combinations(players, 4):
        fixtures.append((Side.pair(a, b), Side.pair(c, d)))
        fixtures.append((Side.pair(a, c), Side.pair(b, d)))
        fixtures.append((Side.pair(a, d), Side.pair(b, c)))
    return fixtures


def _fixture_ids(fixture: Fixture) -> List[str]:
    return fixture[0].ids() + fixture[1].ids()


def schedule_fixtures(fixtures: List[Fixture], player_ids: Sequence[str], num_rounds: int,
                      num_courts: int, rng: RandomSource) -> List[Match]:
    """
    Greedily assign fixtures to rounds and courts.

    For each court the candidates are reshuffled and the first fixture with the
    lowest score wins, where score is the sum of the players' games so far plus
    REPEAT_PENALTY if the same group already met.
    """
    play_counts = {pid: 0 for pid in player_ids}
    used_fixtures = set()
    matches = []

    for round_num in range(1, num_rounds + 1):
        used_this_round = set()

        for court in range(1, num_courts + 1):
            best_fixture = None
            best_score = None

            for fixture in rng.shuffle(fixtures):
                ids = _fixture_ids(fixture)
                if any(pid in used_this_round for pid in ids):
                    continue
                key = tuple(sorted(ids))
                score = sum(play_counts[pid] for pid in ids)
                if key in used_fixtures:
                    score += REPEAT_PENALTY
                if best_score is None or score < best_score:
                    best_score = score
                    best_fixture = fixture

            if best_fixture is None:
                break

            ids = _fixture_ids(best_fixture)
            for pid in ids:
                play_counts[pid] += 1
                used_this_round.add(pid)
            used_fixtures.add(tuple(sorted(ids)))

            matches.append(Match(
                id=f"round-{round_num}-court-{court}",
                round=round_num,
                court=court,
                team1=best_fixture[0],
                team2=best_fixture[1],
            ))

    return matches


def generate_team_round_robin(participants: Sequence[Participant], settings: TournamentSettings,
                              rng: RandomSource) -> ScheduleResult:
    """Round robin between fixed teams."""
    if len(participants) < MIN_TEAMS:
        return ScheduleResult.failure(
            'insufficient-participants',
            'Need at least 2 teams for a round robin',
            {'minimum': MIN_TEAMS, 'count': len(participants)},
        )

    teams = rng.shuffle(participants)
    num_courts = min(settings.courts, len(teams) // 2)
    fixtures = team_fixtures(teams)
    matches = schedule_fixtures(fixtures, [t.id for t in teams], settings.rounds, num_courts, rng)
    logger.debug("Team round robin: %d fixtures, %d scheduled on %d court(s)",
                 len(fixtures), len(matches), num_courts)
    return ScheduleResult(matches=matches, phase=None)


def generate_individual_round_robin(participants: Sequence[Participant], settings: TournamentSettings,
                                    rng: RandomSource) -> ScheduleResult:
    """Doubles mixer: partners and opponents rotate between rounds."""
    if len(participants) < MIN_PLAYERS:
        return ScheduleResult.failure(
            'insufficient-participants',
            'Need at least 4 players for a doubles round robin',
            {'minimum': MIN_PLAYERS, 'count': len(participants)},
        )

    players = rng.shuffle(participants)
    num_courts = min(settings.courts, len(players) // 4)
    fixtures = doubles_fixtures(players)
    matches = schedule_fixtures(fixtures, [p.id for p in players], settings.rounds, num_courts, rng)
    logger.debug("Doubles round robin: %d fixtures, %d scheduled on %d court(s)",
                 len(fixtures), len(matches), num_courts)
    return ScheduleResult(matches=matches, phase=None)
