"""
Score entry and everything that follows from a result.

Both entry points take a TournamentState and return a ProcessResult holding a
new state; the input state is never modified. Recording a result credits the
players on both sides, then advances the winner (and, in double elimination,
the loser) into the matches they feed. Correcting a result first reverses
what the old result did, so entering the same score twice changes nothing.
A correction that would change who moved on is refused while the match they
moved on to has been played.
"""
import logging
from typing import Dict, List, Optional

from .double_elimination import (
    RESET_ID,
    losers_winner_destination,
    winners_loser_destination,
    winners_winner_destination,
)
from .errors import IllegalStateError, InvalidEdit, ValidationError
from .match_index import MatchIndex
from .models import (
    LADDER,
    PHASE_BRACKET,
    PHASE_GRAND_FINAL,
    PHASE_LADDER,
    PHASE_LOSERS,
    PHASE_POOL,
    PHASE_WINNERS,
    POOL_PLAY,
    TOURNAMENT_BRACKET,
    TOURNAMENT_PLAYING,
    TOURNAMENT_POOLS,
    TOURNAMENT_SESSION_RESULTS,
    Match,
    Side,
)
from .pool_play import advance_to_bracket
from .scoring import cap_score, is_game_complete, parse_score
from .state import TournamentState

logger = logging.getLogger(__name__)

SCORE_FIELDS = ('score1', 'score2')


class ProcessResult:
    """
    Outcome of a score entry.

    ok is False when the scores do not form a finished game (invalid holds
    the InvalidEdit) or the input was rejected (error holds the
    ValidationError). events lists what the result set off downstream.
    """

    def __init__(self, state: TournamentState, ok=True, invalid=None, error=None, events=None):
        self.state = state
        self.ok = ok
        self.invalid: Optional[InvalidEdit] = invalid
        self.error: Optional[ValidationError] = error
        self.events: List[Dict] = events if events else []

    def __repr__(self):
        return f"ProcessResult(ok={self.ok}, invalid={self.invalid}, error={self.error}, events={self.events})"


def _incomplete(score1, score2, settings) -> InvalidEdit:
    if score1 is None or score2 is None:
        return InvalidEdit('score-missing', 'Both scores are needed to finish the game')
    if score1 == score2:
        return InvalidEdit('score-tied', 'A game cannot end in a tie')
    margin = ' and win by 2' if settings.win_by_two else ''
    return InvalidEdit(
        'score-not-final',
        f"Match not complete. Need to reach {settings.points_to_win}{margin}.",
    )


def _require_sides(match: Match):
    if match.is_bye:
        raise IllegalStateError(f"Match {match.id} is a bye and takes no score")
    if match.team1 is None or match.team2 is None:
        raise IllegalStateError(f"Match {match.id} does not have both sides yet")


# Stats

def _adjust_stats(state: TournamentState, match: Match, sign: int):
    winner, loser = match.winner, match.loser
    win_score = max(match.score1, match.score2)
    lose_score = min(match.score1, match.score2)
    by_id = state.participants_by_id()

    for side, score, won in ((winner, win_score, True), (loser, lose_score, False)):
        for pid in side.ids():
            participant = by_id.get(pid)
            if participant is None:
                raise IllegalStateError(f"Participant {pid} of match {match.id} is not on the roster")
            if won:
                participant.wins = max(0, participant.wins + sign)
            else:
                participant.losses = max(0, participant.losses + sign)
            participant.points = max(0, participant.points + sign * score)


# Bracket movement

def _destinations(index: MatchIndex, match: Match):
    """(winner destination, loser destination) of a bracket match; either may be None."""
    if match.phase == PHASE_BRACKET:
        if match.round < index.final_round(PHASE_BRACKET):
            return (PHASE_BRACKET, match.round + 1, match.bracket_position // 2, None), None
        return None, None
    if match.phase == PHASE_WINNERS:
        total = index.final_round(PHASE_WINNERS)
        return (winners_winner_destination(match.round, match.bracket_position, total),
                winners_loser_destination(match.round, match.bracket_position, total))
    if match.phase == PHASE_LOSERS:
        total = index.final_round(PHASE_LOSERS)
        return losers_winner_destination(match.round, match.bracket_position, total), None
    return None, None


def _target(index: MatchIndex, destination) -> Match:
    phase, round_num, position, _ = destination
    target = index.at(phase, round_num, position)
    if target is None:
        raise IllegalStateError(f"No {phase} match at round {round_num}, position {position}")
    return target


def _place(index: MatchIndex, destination, side: Side, previous: Optional[Side], events: List[Dict]):
    """
    Put side into the match at destination.

    If previous (what this slot's feeder sent last time) is there it is
    replaced; otherwise the preferred slot is used when free, else the first
    open slot.
    """
    target = _target(index, destination)
    slot_hint = destination[3]

    if side in (target.team1, target.team2):
        return

    if previous is not None and previous in (target.team1, target.team2):
        if target.completed and not target.is_bye:
            raise IllegalStateError(f"Match {target.id} is already decided")
        if target.team1 == previous:
            target.team1 = side
        else:
            target.team2 = side
        events.append({'type': 'replaced', 'match': target.id, 'side': side.ids(), 'previous': previous.ids()})
        if target.is_bye and target.completed:
            target.winner = side
            _advance_bye(index, target, previous, events)
        return

    if slot_hint and getattr(target, slot_hint) is None:
        slot = slot_hint
    elif target.team1 is None:
        slot = 'team1'
    elif target.team2 is None:
        slot = 'team2'
    else:
        raise IllegalStateError(f"Match {target.id} already has both sides")

    setattr(target, slot, side)
    events.append({'type': 'advanced', 'match': target.id, 'slot': slot, 'side': side.ids()})

    if target.is_bye and not target.completed:
        _complete_bye(index, target, events)


def _complete_bye(index: MatchIndex, match: Match, events: List[Dict]):
    # A bye match holds its only side in team1
    if match.team1 is None:
        match.team1, match.team2 = match.team2, None
    match.winner = match.team1
    match.completed = True
    events.append({'type': 'bye', 'match': match.id, 'side': match.winner.ids()})
    _advance_bye(index, match, None, events)


def _advance_bye(index: MatchIndex, match: Match, previous: Optional[Side], events: List[Dict]):
    winner_destination, _ = _destinations(index, match)
    if winner_destination is not None:
        _place(index, winner_destination, match.winner, previous, events)


def _withdraw(index: MatchIndex, destination, side: Side, events: List[Dict]):
    """Take side back out of the match at destination, if that match is still open."""
    target = _target(index, destination)
    if side not in (target.team1, target.team2):
        return

    if target.is_bye and target.completed:
        target.team1 = None
        target.team2 = None
        target.winner = None
        target.completed = False
        events.append({'type': 'withdrawn', 'match': target.id, 'side': side.ids()})
        winner_destination, _ = _destinations(index, target)
        if winner_destination is not None:
            _withdraw(index, winner_destination, side, events)
        return

    if target.completed:
        raise IllegalStateError(f"Match {target.id} is already decided")

    if target.team1 == side:
        target.team1 = None
    else:
        target.team2 = None
    events.append({'type': 'withdrawn', 'match': target.id, 'side': side.ids()})


def _update_reset(index: MatchIndex, grand_final: Match, events: List[Dict]):
    bracket_reset = index.find(RESET_ID)
    if bracket_reset is None:
        return

    if grand_final.completed and grand_final.winner == grand_final.team2:
        if bracket_reset.completed:
            if (bracket_reset.team1, bracket_reset.team2) != (grand_final.team1, grand_final.team2):
                raise IllegalStateError(f"Match {bracket_reset.id} is already decided")
            return
        if (bracket_reset.team1, bracket_reset.team2) != (grand_final.team1, grand_final.team2):
            bracket_reset.team1 = grand_final.team1
            bracket_reset.team2 = grand_final.team2
            events.append({'type': 'reset-activated', 'match': bracket_reset.id})
        return

    if bracket_reset.completed:
        raise IllegalStateError(f"Match {bracket_reset.id} is already decided")
    if bracket_reset.team1 is not None or bracket_reset.team2 is not None:
        bracket_reset.team1 = None
        bracket_reset.team2 = None
        events.append({'type': 'reset-cleared', 'match': bracket_reset.id})


def _cascade(index: MatchIndex, match: Match,
             previous_winner: Optional[Side], previous_loser: Optional[Side], events: List[Dict]):
    if match.phase == PHASE_GRAND_FINAL:
        _update_reset(index, match, events)
        return

    winner_destination, loser_destination = _destinations(index, match)
    if winner_destination is not None:
        _place(index, winner_destination, match.winner, previous_winner, events)
    if loser_destination is not None:
        _place(index, loser_destination, match.loser, previous_loser, events)


def _uncascade(index: MatchIndex, match: Match, winner: Side, loser: Side, events: List[Dict]):
    if match.phase == PHASE_GRAND_FINAL:
        _update_reset(index, match, events)
        return

    winner_destination, loser_destination = _destinations(index, match)
    if winner_destination is not None:
        _withdraw(index, winner_destination, winner, events)
    if loser_destination is not None:
        _withdraw(index, loser_destination, loser, events)


def _decided_downstream(index: MatchIndex, match: Match) -> Optional[Match]:
    """The first decided match holding a side this match sent on, looking through bye walkovers."""
    if match.phase == PHASE_GRAND_FINAL:
        bracket_reset = index.find(RESET_ID)
        if bracket_reset is not None and bracket_reset.completed:
            return bracket_reset
        return None

    for destination, side in zip(_destinations(index, match), (match.winner, match.loser)):
        if destination is None or side is None:
            continue
        target = _target(index, destination)
        if side not in (target.team1, target.team2) or not target.completed:
            continue
        if not target.is_bye:
            return target
        decided = _decided_downstream(index, target)
        if decided is not None:
            return decided
    return None


def _downstream_rejection(state: TournamentState, index: MatchIndex, match: Match) -> Optional[ProcessResult]:
    """
    Refuse to change a result that a later match has already been played on.

    The later result has to be cleared first; until then the input state is
    returned untouched.
    """
    decided = _decided_downstream(index, match)
    if decided is None:
        return None
    return ProcessResult(state, ok=False, error=ValidationError(
        'downstream-decided',
        f"Match {decided.id} has already been played; clear its result before changing {match.id}",
        {'match': match.id, 'blocking_match': decided.id},
    ))


# Phase transitions

def _update_phase(state: TournamentState, events: List[Dict]):
    if state.tournament_type == POOL_PLAY and state.phase == TOURNAMENT_POOLS:
        pool_matches = [m for m in state.matches if m.phase == PHASE_POOL]
        if pool_matches and all(m.completed for m in pool_matches):
            result = advance_to_bracket(state.participants, state.matches, state.settings)
            if not result.ok:
                logger.warning("Pool play finished but the bracket could not be built: %s", result.error)
                return
            state.matches = result.matches
            state.phase = TOURNAMENT_BRACKET
            events.append({'type': 'bracket-generated', 'warnings': result.warnings})
            logger.info("Pool play complete, bracket generated")

    elif state.tournament_type == LADDER:
        session_matches = [m for m in state.matches
                           if m.phase == PHASE_LADDER and m.session == state.ladder_session]
        if session_matches and all(m.completed for m in session_matches):
            if state.phase != TOURNAMENT_SESSION_RESULTS:
                state.phase = TOURNAMENT_SESSION_RESULTS
                events.append({'type': 'session-complete', 'session': state.ladder_session})
        elif state.phase == TOURNAMENT_SESSION_RESULTS:
            state.phase = TOURNAMENT_PLAYING
            events.append({'type': 'session-reopened', 'session': state.ladder_session})


def _record(state: TournamentState, index: MatchIndex, match: Match, score1: int, score2: int,
            events: List[Dict]):
    previous_winner = match.winner if match.completed else None
    previous_loser = match.loser
    if match.completed:
        _adjust_stats(state, match, -1)

    match.score1 = score1
    match.score2 = score2
    match.winner = match.team1 if score1 > score2 else match.team2
    match.completed = True
    _adjust_stats(state, match, 1)
    events.append({'type': 'completed', 'match': match.id, 'winner': match.winner.ids()})

    _cascade(index, match, previous_winner, previous_loser, events)
    _update_phase(state, events)


def _reopen(state: TournamentState, index: MatchIndex, match: Match, events: List[Dict]):
    if match.phase == PHASE_POOL and state.phase != TOURNAMENT_POOLS:
        logger.warning("Pool match %s reopened after the bracket was generated", match.id)

    winner, loser = match.winner, match.loser
    _adjust_stats(state, match, -1)

    match.winner = None
    match.completed = False
    events.append({'type': 'reopened', 'match': match.id})
    _uncascade(index, match, winner, loser, events)
    _update_phase(state, events)


def _changes_winner(match: Match, score1: int, score2: int) -> bool:
    if not match.completed:
        return False
    return (match.team1 if score1 > score2 else match.team2) != match.winner


def complete_match(state: TournamentState, match_id: str, score1: int, score2: int) -> ProcessResult:
    """
    Record a final score for a match.

    Returns ok=False with an InvalidEdit (and the state unchanged) when the
    scores are not a finished game.

    Changing the winner of a match whose winner or loser has already played
    on is refused with a 'downstream-decided' ValidationError.

    Raises:
        IllegalStateError: unknown match, or a match without both sides.
    """
    new_state = state.copy()
    index = MatchIndex(new_state.matches)
    match = index.get(match_id)
    _require_sides(match)

    try:
        score1, score2 = parse_score(score1), parse_score(score2)
    except (TypeError, ValueError):
        return ProcessResult(state, ok=False, error=ValidationError('invalid-score', 'Scores must be numbers'))

    if not is_game_complete(score1, score2, new_state.settings):
        return ProcessResult(state, ok=False, invalid=_incomplete(score1, score2, new_state.settings))

    if _changes_winner(match, score1, score2):
        rejection = _downstream_rejection(state, index, match)
        if rejection:
            return rejection

    events = []
    _record(new_state, index, match, score1, score2, events)
    return ProcessResult(new_state, events=events)


def handle_score_change(state: TournamentState, match_id: str, field: str, value) -> ProcessResult:
    """
    Apply an edit to one score field.

    The value is floored at 0 and capped against the opposite score; a blank
    value clears the field. Once both fields form a finished game the result
    is recorded (or corrected). An edit that turns a finished game back into
    an unfinished one takes the result back out.
    """
    if field not in SCORE_FIELDS:
        return ProcessResult(state, ok=False,
                             error=ValidationError('invalid-field', f"Unknown score field {field!r}"))

    new_state = state.copy()
    index = MatchIndex(new_state.matches)
    match = index.get(match_id)
    _require_sides(match)

    try:
        value = parse_score(value)
    except (TypeError, ValueError):
        return ProcessResult(state, ok=False, error=ValidationError('invalid-score', 'Scores must be numbers'))

    other = match.score2 if field == 'score1' else match.score1
    value = cap_score(value, other, new_state.settings)

    if field == 'score1':
        score1, score2 = value, match.score2
    else:
        score1, score2 = match.score1, value
    events = []

    if is_game_complete(score1, score2, new_state.settings):
        if match.completed and (score1, score2) == (match.score1, match.score2):
            return ProcessResult(new_state, events=events)
        if _changes_winner(match, score1, score2):
            rejection = _downstream_rejection(state, index, match)
            if rejection:
                return rejection
        _record(new_state, index, match, score1, score2, events)
        return ProcessResult(new_state, events=events)

    # Stats come off against the scores the result was recorded with
    if match.completed:
        rejection = _downstream_rejection(state, index, match)
        if rejection:
            return rejection
        _reopen(new_state, index, match, events)
    match.score1, match.score2 = score1, score2
    return ProcessResult(new_state, ok=False, invalid=_incomplete(score1, score2, new_state.settings),
                         events=events)
