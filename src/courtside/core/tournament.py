"""
Tournament operations over a TournamentState.

Every function returns a TournamentResult carrying a new state; the state
passed in is left untouched.
"""
import logging
import uuid
from typing import Dict, List, Optional

from .double_elimination import double_elimination_champion, generate_double_elimination
from .elimination import bracket_champion, generate_single_elimination
from .errors import ValidationError
from .ladder import calculate_ladder_movement, generate_ladder_session
from .models import (
    DOUBLE_ELIMINATION,
    INDIVIDUAL,
    LADDER,
    PARTICIPANT_TYPES,
    PHASE_BRACKET,
    POOL_PLAY,
    ROUND_ROBIN,
    SINGLE_ELIMINATION,
    TEAM,
    TOURNAMENT_PLAYING,
    TOURNAMENT_SESSION_RESULTS,
    TOURNAMENT_TYPES,
    Participant,
    ScheduleResult,
    Side,
    TournamentSettings,
)
from .pool_play import generate_pool_play
from .rng import RandomSource
from .round_robin import generate_individual_round_robin, generate_team_round_robin
from .standings import StandingRow, calculate_standings
from .state import TournamentState

logger = logging.getLogger(__name__)


class TournamentResult:
    """
    New state plus anything the caller should know about it.

    When requires_confirmation is True nothing was changed: the warnings
    describe what would happen and the call must be repeated with
    confirm_byes=True to go ahead.
    """

    def __init__(self, state: TournamentState, error=None, warnings=None, requires_confirmation=False,
                 events=None):
        self.state = state
        self.error: Optional[ValidationError] = error
        self.warnings: List[Dict] = warnings if warnings else []
        self.requires_confirmation = requires_confirmation
        self.events: List[Dict] = events if events else []

    @property
    def ok(self) -> bool:
        return self.error is None and not self.requires_confirmation

    def __repr__(self):
        return (f"TournamentResult(ok={self.ok}, error={self.error}, warnings={self.warnings}, "
                f"requires_confirmation={self.requires_confirmation})")


def _rejected(state: TournamentState, code: str, message: str, details=None) -> TournamentResult:
    return TournamentResult(state, error=ValidationError(code, message, details))


def _schedule_locked(state: TournamentState) -> Optional[TournamentResult]:
    if state.matches:
        return _rejected(state, 'schedule-exists', 'The roster cannot change once a schedule exists')
    return None


def create_tournament(tournament_type: str, participant_type: str = INDIVIDUAL,
                      settings: Optional[Dict] = None) -> TournamentResult:
    """Start an empty tournament; settings are merged over the defaults."""
    state = TournamentState()
    if tournament_type not in TOURNAMENT_TYPES:
        return _rejected(state, 'invalid-tournament-type', f"Unknown tournament type {tournament_type!r}",
                         {'allowed': list(TOURNAMENT_TYPES)})
    if participant_type not in PARTICIPANT_TYPES:
        return _rejected(state, 'invalid-participant-type', f"Unknown participant type {participant_type!r}",
                         {'allowed': list(PARTICIPANT_TYPES)})
    try:
        tournament_settings = TournamentSettings.from_dict(settings)
    except (TypeError, ValueError) as e:
        return _rejected(state, 'invalid-settings', f"Settings must be numbers: {e}")
    error = tournament_settings.validate()
    if error:
        return TournamentResult(state, error=error)

    state.tournament_type = tournament_type
    state.participant_type = participant_type
    state.settings = tournament_settings
    return TournamentResult(state)


def add_participant(state: TournamentState, name: str, partner: Optional[str] = None) -> TournamentResult:
    locked = _schedule_locked(state)
    if locked:
        return locked
    name = (name or '').strip()
    if not name:
        return _rejected(state, 'blank-name', 'A participant needs a name')

    new_state = state.copy()
    partner = (partner or '').strip() or None
    participant = Participant(uuid.uuid4().hex, name, kind=state.participant_type,
                              partner=partner if state.participant_type == TEAM else None)
    new_state.participants.append(participant)
    return TournamentResult(new_state, events=[{'type': 'participant-added', 'id': participant.id}])


def remove_participant(state: TournamentState, participant_id: str) -> TournamentResult:
    locked = _schedule_locked(state)
    if locked:
        return locked
    if state.participant(participant_id) is None:
        return _rejected(state, 'unknown-participant', f"No participant with id {participant_id}")

    new_state = state.copy()
    new_state.participants = [p for p in new_state.participants if p.id != participant_id]
    return TournamentResult(new_state, events=[{'type': 'participant-removed', 'id': participant_id}])


def move_participant(state: TournamentState, participant_id: str, offset: int) -> TournamentResult:
    """
    Swap a participant with its neighbour (-1 moves up, 1 moves down).

    Moving past either end of the roster is a no-op. This sets the seeding
    of the first ladder session.
    """
    locked = _schedule_locked(state)
    if locked:
        return locked
    ids = [p.id for p in state.participants]
    if participant_id not in ids:
        return _rejected(state, 'unknown-participant', f"No participant with id {participant_id}")

    new_state = state.copy()
    index = ids.index(participant_id)
    other = index + (1 if offset > 0 else -1)
    if 0 <= other < len(new_state.participants):
        roster = new_state.participants
        roster[index], roster[other] = roster[other], roster[index]
    return TournamentResult(new_state)


def _generate(state: TournamentState, rng: RandomSource) -> ScheduleResult:
    participants = state.participants
    settings = state.settings
    if state.tournament_type == ROUND_ROBIN:
        if state.participant_type == TEAM:
            return generate_team_round_robin(participants, settings, rng)
        return generate_individual_round_robin(participants, settings, rng)
    if state.tournament_type == SINGLE_ELIMINATION:
        return generate_single_elimination(participants, settings, rng, state.participant_type)
    if state.tournament_type == DOUBLE_ELIMINATION:
        return generate_double_elimination(participants, settings, rng, state.participant_type)
    if state.tournament_type == POOL_PLAY:
        return generate_pool_play(participants, settings, rng)
    if state.tournament_type == LADDER:
        return generate_ladder_session(participants, settings, rng, session=1)
    return ScheduleResult.failure('invalid-tournament-type', f"Unknown tournament type {state.tournament_type!r}")


def generate_schedule(state: TournamentState, rng: Optional[RandomSource] = None,
                      confirm_byes: bool = False) -> TournamentResult:
    """
    Generate the opening schedule for the tournament's format.

    Elimination brackets that need byes are not applied unless confirm_byes
    is set; the result then has requires_confirmation and the bye warning.
    """
    if state.matches:
        return _rejected(state, 'schedule-exists', 'A schedule has already been generated')
    error = state.settings.validate()
    if error:
        return TournamentResult(state, error=error)

    rng = rng if rng is not None else RandomSource()
    new_state = state.copy()
    result = _generate(new_state, rng)
    if not result.ok:
        logger.info("Schedule rejected for %s: %s", state.tournament_type, result.error)
        return TournamentResult(state, error=result.error)
    if result.byes_needed > 0 and not confirm_byes:
        return TournamentResult(state, warnings=result.warnings, requires_confirmation=True)

    new_state.matches = result.matches
    new_state.phase = result.phase
    if state.tournament_type == LADDER:
        new_state.ladder_session = 1
        new_state.court_assignments = result.court_assignments
    logger.info("Generated %d matches for a %s tournament", len(new_state.matches), state.tournament_type)
    return TournamentResult(new_state, warnings=result.warnings)


def start_next_ladder_session(state: TournamentState) -> TournamentResult:
    """Apply the session's movement and append the next session's games."""
    if state.tournament_type != LADDER:
        return _rejected(state, 'not-a-ladder', 'Only ladder leagues have sessions')
    if state.phase != TOURNAMENT_SESSION_RESULTS:
        return _rejected(state, 'session-in-progress', 'Finish every game of the current session first',
                         {'session': state.ladder_session})

    new_state = state.copy()
    movement = calculate_ladder_movement(new_state.court_assignments, new_state.matches, new_state.ladder_session)
    next_session = new_state.ladder_session + 1
    result = generate_ladder_session(movement.order, new_state.settings, session=next_session)
    if not result.ok:
        return TournamentResult(state, error=result.error)

    new_state.matches = new_state.matches + result.matches
    new_state.court_assignments = result.court_assignments
    new_state.ladder_session = next_session
    new_state.phase = TOURNAMENT_PLAYING
    logger.info("Ladder session %d started", next_session)
    return TournamentResult(new_state, events=[dict(type='ladder-movement', **movement.to_dict())])


def reset_tournament(state: TournamentState) -> TournamentResult:
    """Drop the schedule and zero every participant's record; the roster stays."""
    new_state = state.copy()
    new_state.matches = []
    new_state.phase = None
    new_state.ladder_session = 0
    new_state.court_assignments = {}
    for participant in new_state.participants:
        participant.reset_stats()
    return TournamentResult(new_state)


def get_standings(state: TournamentState, pool: Optional[int] = None,
                  court: Optional[int] = None) -> List[StandingRow]:
    """Overall standings, or those of one pool or one ladder court (current session)."""
    session = state.ladder_session if court is not None else None
    return calculate_standings(state.participants, state.matches, pool=pool, court=court, session=session)


def pool_standings(state: TournamentState, pool: int) -> List[StandingRow]:
    return get_standings(state, pool=pool)


def get_champion(state: TournamentState) -> Optional[Side]:
    """The winning side once the tournament is decided; None otherwise (and always for ladders)."""
    if state.tournament_type == SINGLE_ELIMINATION:
        return bracket_champion(state.matches, PHASE_BRACKET)
    if state.tournament_type == DOUBLE_ELIMINATION:
        return double_elimination_champion(state.matches)
    if state.tournament_type == POOL_PLAY:
        if any(m.phase == PHASE_BRACKET for m in state.matches):
            return bracket_champion(state.matches, PHASE_BRACKET)
        return None
    if state.tournament_type == ROUND_ROBIN:
        if state.matches and all(m.completed for m in state.matches):
            rows = calculate_standings(state.participants, state.matches)
            return Side.single(rows[0].participant) if rows else None
    return None


def is_tournament_complete(state: TournamentState) -> bool:
    if not state.matches:
        return False
    if state.tournament_type == LADDER:
        return state.phase == TOURNAMENT_SESSION_RESULTS
    return get_champion(state) is not None
