"""
Standings with a cascading tie-break.

Ranking: wins -> head-to-head -> point differential -> win percentage -> total points
"""
from typing import Dict, List, Optional, Sequence, Tuple

from .models import PHASE_LADDER, PHASE_POOL, Match, Participant


class StandingRow:
    def __init__(self, participant, wins, losses, points, point_diff):
        self.participant = participant
        self.wins = wins
        self.losses = losses
        self.points = points
        self.point_diff = point_diff
        self.head_to_head = 0
        self.rank = 0

    @property
    def games(self) -> int:
        return self.wins + self.losses

    @property
    def win_percentage(self) -> float:
        return self.wins / self.games if self.games else 0.0

    def sort_key(self):
        return (-self.wins, -self.head_to_head, -self.point_diff, -self.win_percentage, -self.points)

    def to_dict(self) -> Dict:
        return {
            'rank': self.rank,
            'id': self.participant.id,
            'name': self.participant.display_name(),
            'wins': self.wins,
            'losses': self.losses,
            'points': self.points,
            'point_diff': self.point_diff,
            'win_percentage': round(self.win_percentage * 100, 1),
            'head_to_head': self.head_to_head,
        }

    def __repr__(self):
        return (f"StandingRow(rank={self.rank}, {self.participant.name}, W{self.wins}-L{self.losses}, "
                f"diff={self.point_diff}, points={self.points})")


def _is_scored(match: Match) -> bool:
    return (match.completed and not match.is_bye
            and match.score1 is not None and match.score2 is not None)


def filter_matches(matches: Sequence[Match], pool: Optional[int] = None, court: Optional[int] = None,
                   session: Optional[int] = None) -> List[Match]:
    """Restrict matches to one pool, one ladder court and/or one ladder session."""
    selected = []
    for match in matches:
        if pool is not None and not (match.phase == PHASE_POOL and match.pool == pool):
            continue
        if court is not None and not (match.phase == PHASE_LADDER and match.court == court):
            continue
        if session is not None and match.session != session:
            continue
        selected.append(match)
    return selected


def score_for(match: Match, participant_id) -> Tuple[int, int]:
    """(own score, opponent score) for a participant in a scored match."""
    if match.side_of(participant_id) == 1:
        return match.score1, match.score2
    return match.score2, match.score1


def head_to_head_record(first_id, second_id, matches: Sequence[Match]) -> Tuple[int, int]:
    """Wins of each participant in matches where they played on opposing sides."""
    first_wins = 0
    second_wins = 0
    for match in matches:
        if not _is_scored(match):
            continue
        first_side = match.side_of(first_id)
        second_side = match.side_of(second_id)
        if first_side is None or second_side is None or first_side == second_side:
            continue
        if match.winner is not None and match.winner.contains(first_id):
            first_wins += 1
        else:
            second_wins += 1
    return first_wins, second_wins


def head_to_head(first_id, second_id, matches: Sequence[Match]) -> int:
    """1 if first won the majority of their meetings, -1 if second did, 0 otherwise."""
    first_wins, second_wins = head_to_head_record(first_id, second_id, matches)
    if first_wins > second_wins:
        return 1
    if second_wins > first_wins:
        return -1
    return 0


def _apply_head_to_head(rows: List[StandingRow], matches: Sequence[Match]):
    # Only participants tied on wins are compared; a row's value is the number
    # of tied opponents it beat head-to-head.
    groups: Dict[int, List[StandingRow]] = {}
    for row in rows:
        groups.setdefault(row.wins, []).append(row)
    for group in groups.values():
        if len(group) < 2:
            continue
        for row in group:
            row.head_to_head = sum(
                1 for other in group
                if other is not row and head_to_head(row.participant.id, other.participant.id, matches) > 0
            )


def calculate_standings(participants: Sequence[Participant], matches: Sequence[Match],
                        pool: Optional[int] = None, court: Optional[int] = None,
                        session: Optional[int] = None) -> List[StandingRow]:
    """
    Rank participants.

    Without a filter, wins, losses and points come from the participants'
    running stats. With a pool, court or session filter they are recomputed
    from the matching completed games, and only participants who appear in
    those matches are ranked.

    Returns:
        StandingRow list in rank order (rank is 1-based).
    """
    filtering = pool is not None or court is not None or session is not None
    relevant = filter_matches(matches, pool, court, session) if filtering else list(matches)
    scored = [m for m in relevant if _is_scored(m)]

    if filtering:
        present = set()
        for match in relevant:
            for side in match.sides():
                present.update(side.ids())
        ranked = [p for p in participants if p.id in present]
    else:
        ranked = list(participants)

    rows = []
    for participant in ranked:
        wins = losses = points = point_diff = 0
        for match in scored:
            if not match.involves(participant.id):
                continue
            own, opponent = score_for(match, participant.id)
            point_diff += own - opponent
            points += own
            if match.winner is not None and match.winner.contains(participant.id):
                wins += 1
            else:
                losses += 1
        if not filtering:
            wins, losses, points = participant.wins, participant.losses, participant.points
        rows.append(StandingRow(participant, wins, losses, points, point_diff))

    _apply_head_to_head(rows, scored)
    rows.sort(key=StandingRow.sort_key)
    for position, row in enumerate(rows, start=1):
        row.rank = position
    return rows
