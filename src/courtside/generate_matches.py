"""
Print the opening schedule for a roster file.

The roster file is YAML:

    tournament_type: bracket        # roundrobin, bracket, double, poolplay, ladder
    participant_type: individual    # or team
    settings:
      rounds: 4
      courts: 2
    participants:
      - Alice
      - name: Smash Bros
        partner: Bob
"""
import argparse
import os
import sys
from typing import Dict, List

import yaml

from courtside.core.double_elimination import get_losers_round_name, get_winners_round_name
from courtside.core.elimination import get_round_name
from courtside.core.models import (
    PHASE_BRACKET,
    PHASE_GRAND_FINAL,
    PHASE_LOSERS,
    PHASE_RESET,
    PHASE_WINNERS,
    TOURNAMENT_TYPES,
    Match,
    display_side,
)
from courtside.core.rng import NoShuffleRandomSource, RandomSource
from courtside.core.tournament import add_participant, create_tournament, generate_schedule


def load_roster(file_path) -> Dict:
    with open(file_path, mode='r', encoding='utf-8') as file:
        return yaml.safe_load(file) or {}


def round_heading(match: Match, first_round_sizes: Dict[str, int], last_rounds: Dict[str, int]) -> str:
    """Name a bracket round: Semifinal, Winners Final, Losers Round 3 and so on."""
    if match.phase == PHASE_GRAND_FINAL:
        return "Grand Final"
    if match.phase == PHASE_RESET:
        return "Bracket Reset"
    if match.phase == PHASE_LOSERS:
        return get_losers_round_name(match.round, last_rounds[PHASE_LOSERS])
    teams_in_round = (2 * first_round_sizes[match.phase]) >> (match.round - 1)
    if match.phase == PHASE_WINNERS:
        return get_winners_round_name(teams_in_round)
    return get_round_name(teams_in_round)


def group_matches(matches: List[Match]) -> Dict[str, List[Match]]:
    """Group matches under a heading per pool, bracket round or ladder court."""
    first_round_sizes, last_rounds = {}, {}
    for match in matches:
        if match.round == 1:
            first_round_sizes[match.phase] = first_round_sizes.get(match.phase, 0) + 1
        last_rounds[match.phase] = max(last_rounds.get(match.phase, 0), match.round)

    groups = {}
    for match in matches:
        if match.pool is not None:
            heading = f"Pool {match.pool}"
        elif match.session is not None:
            heading = f"Session {match.session}, court {match.court}"
        elif match.phase in (PHASE_BRACKET, PHASE_WINNERS, PHASE_LOSERS, PHASE_GRAND_FINAL, PHASE_RESET):
            heading = round_heading(match, first_round_sizes, last_rounds)
        else:
            heading = f"Round {match.round}"
        groups.setdefault(heading, []).append(match)
    return groups


def format_match(match: Match) -> str:
    line = f"{display_side(match.team1)} vs {display_side(match.team2)}"
    if match.is_bye and match.completed:
        line = f"{display_side(match.team1)} (bye)"
    if match.court is not None and match.session is None:
        line = f"Court {match.court}: {line}"
    return line


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='courtside-schedule', description=__doc__.strip().splitlines()[0])
    parser.add_argument('file', help='YAML roster file')
    parser.add_argument('--format', choices=TOURNAMENT_TYPES, help='override the tournament_type in the file')
    parser.add_argument('--seed', type=int, help='seed for a reproducible shuffle')
    parser.add_argument('--no-shuffle', action='store_true', help='keep the roster order as given')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    if not os.path.exists(args.file):
        print(f"Roster file not found: {args.file}", file=sys.stderr)
        return 1
    roster = load_roster(args.file)

    result = create_tournament(args.format or roster.get('tournament_type', 'roundrobin'),
                               roster.get('participant_type', 'individual'),
                               roster.get('settings'))
    if result.error:
        print(f"ERROR: {result.error.message}", file=sys.stderr)
        return 1
    state = result.state

    for entry in roster.get('participants') or []:
        if isinstance(entry, str):
            entry = {'name': entry}
        if not isinstance(entry, dict):
            print(f"ERROR: Participant {entry!r} must be a name or a mapping with a name", file=sys.stderr)
            return 1
        result = add_participant(state, entry.get('name', ''), entry.get('partner'))
        if result.error:
            print(f"ERROR: {result.error.message}", file=sys.stderr)
            return 1
        state = result.state

    rng = NoShuffleRandomSource() if args.no_shuffle else RandomSource(args.seed)
    result = generate_schedule(state, rng, confirm_byes=True)
    if result.error:
        print(f"ERROR: {result.error.message}", file=sys.stderr)
        return 1

    for warning in result.warnings:
        print(f"WARNING: {warning['message']}")

    first_group = True
    for heading, matches in group_matches(result.state.matches).items():
        if not first_group:
            print()
        print(f"# {heading}")
        for match in matches:
            print(format_match(match))
        first_group = False
    return 0


if __name__ == '__main__':
    sys.exit(main())
