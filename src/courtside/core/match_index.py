"""
Lookup of bracket matches by (phase, round, bracket_position).
"""
from typing import Dict, List, Optional, Tuple

from .errors import IllegalStateError
from .models import Match


class MatchIndex:
    """Index over a match list; the matches themselves are shared, not copied."""

    def __init__(self, matches: List[Match]):
        self.matches = matches
        self._by_id: Dict[str, Match] = {}
        self._by_slot: Dict[Tuple[str, int, int], Match] = {}
        self._rounds: Dict[str, Dict[int, List[Match]]] = {}
        for match in matches:
            self.add(match)

    def add(self, match: Match):
        self._by_id[match.id] = match
        if match.bracket_position is not None:
            self._by_slot[(match.phase, match.round, match.bracket_position)] = match
        self._rounds.setdefault(match.phase, {}).setdefault(match.round, []).append(match)

    def get(self, match_id: str) -> Match:
        try:
            return self._by_id[match_id]
        except KeyError:
            raise IllegalStateError(f"No match with id {match_id}") from None

    def find(self, match_id: str) -> Optional[Match]:
        return self._by_id.get(match_id)

    def at(self, phase: str, round_num: int, position: int) -> Optional[Match]:
        return self._by_slot.get((phase, round_num, position))

    def round_matches(self, phase: str, round_num: int) -> List[Match]:
        matches = self._rounds.get(phase, {}).get(round_num, [])
        return sorted(matches, key=lambda m: (m.bracket_position or 0))

    def final_round(self, phase: str) -> int:
        rounds = self._rounds.get(phase)
        return max(rounds) if rounds else 0
