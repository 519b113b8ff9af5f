"""
Game scoring rules: when a game is over, and how high a score may go.
"""
from typing import Optional

from .models import TournamentSettings


def is_game_complete(score1: Optional[int], score2: Optional[int], settings: TournamentSettings) -> bool:
    """
    True when the two scores are the final score of a legal game.

    With win-by-two the game ends exactly at points_to_win unless the loser
    reached points_to_win - 1, after which it ends exactly two points clear.
    Without win-by-two it ends exactly at points_to_win.
    """
    if score1 is None or score2 is None or score1 == score2:
        return False
    high, low = max(score1, score2), min(score1, score2)
    target = settings.points_to_win
    if high < target:
        return False
    if not settings.win_by_two:
        return high == target
    if low < target - 1:
        return high == target
    return high == low + 2


def max_allowed_score(other: Optional[int], settings: TournamentSettings) -> Optional[int]:
    """
    Highest score a side can have given the opposing score.

    Returns None when there is no ceiling yet (win-by-two with a blank
    opposing score).
    """
    target = settings.points_to_win
    if not settings.win_by_two:
        return target
    if other is None:
        return None
    if other < target - 1:
        return target
    return other + 2


def parse_score(value) -> Optional[int]:
    """Turn user input into a non-negative score, or None for a blank field."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == '':
            return None
    return max(0, int(value))


def cap_score(value: Optional[int], other: Optional[int], settings: TournamentSettings) -> Optional[int]:
    """Clamp a score so it cannot exceed what the opposing score allows."""
    if value is None:
        return None
    ceiling = max_allowed_score(other, settings)
    if ceiling is not None and value > ceiling:
        return ceiling
    return value
