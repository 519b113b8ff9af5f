"""
Flask JSON API for Courtside tournaments.

Each tournament lives in its own directory under DATA_DIR/tournaments as a
single state.yaml document. Every write is a load-modify-save under that
tournament's file lock.
"""
import os
import re
from contextlib import contextmanager

import yaml
from filelock import FileLock
from flask import Flask, jsonify, request

from courtside.core.errors import IllegalStateError, ValidationError
from courtside.core.models import get_default_settings
from courtside.core.processor import complete_match, handle_score_change
from courtside.core.rng import RandomSource
from courtside.core.state import TournamentState
from courtside.core.tournament import (
    add_participant,
    create_tournament,
    generate_schedule,
    get_champion,
    get_standings,
    is_tournament_complete,
    move_participant,
    remove_participant,
    reset_tournament,
    start_next_ladder_session,
)

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
DATA_DIR = os.environ.get('COURTSIDE_DATA_DIR', os.path.join(BASE_DIR, 'data'))
LOCK_TIMEOUT = 10
STATE_FILE = 'state.yaml'
SETTINGS_FILE = 'settings.yaml'


class TournamentNotFound(Exception):
    pass


def _slugify(name: str) -> str:
    """Convert tournament name to filesystem-safe slug."""
    slug = name.lower().strip()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'[\s-]+', '-', slug)
    slug = slug.strip('-')
    return slug or 'tournament'


def _tournament_dir(slug: str) -> str:
    return os.path.join(DATA_DIR, 'tournaments', slug)


@contextmanager
def _tournament_lock(slug: str, create: bool = False):
    tournament_dir = _tournament_dir(slug)
    if create:
        os.makedirs(tournament_dir, exist_ok=True)
    elif not os.path.isdir(tournament_dir):
        raise TournamentNotFound(slug)
    with FileLock(os.path.join(tournament_dir, '.lock'), timeout=LOCK_TIMEOUT):
        yield


def load_default_settings() -> dict:
    """Defaults for new tournaments, with DATA_DIR/settings.yaml merged over them."""
    defaults = get_default_settings()
    path = os.path.join(DATA_DIR, SETTINGS_FILE)
    if not os.path.exists(path):
        return defaults
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return defaults
    if not data:
        return defaults
    for key, value in data.items():
        if key in defaults:
            defaults[key] = value
    return defaults


def load_state(slug: str) -> TournamentState:
    """Load a tournament's state document."""
    path = os.path.join(_tournament_dir(slug), STATE_FILE)
    if not os.path.exists(path):
        raise TournamentNotFound(slug)
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not data:
        raise TournamentNotFound(slug)
    return TournamentState.from_dict(data.get('state', {}))


def load_name(slug: str) -> str:
    path = os.path.join(_tournament_dir(slug), STATE_FILE)
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    return data.get('name', slug)


def save_state(slug: str, state: TournamentState, name: str = None):
    """Save a tournament's state document."""
    tournament_dir = _tournament_dir(slug)
    os.makedirs(tournament_dir, exist_ok=True)
    document = {'name': name or load_name(slug), 'state': state.to_dict()}
    with open(os.path.join(tournament_dir, STATE_FILE), 'w', encoding='utf-8') as f:
        yaml.dump(document, f, default_flow_style=False)


def _payload(slug: str, state: TournamentState) -> dict:
    champion = get_champion(state)
    return {
        'slug': slug,
        'state': state.to_dict(),
        'champion': champion.display_name() if champion else None,
        'complete': is_tournament_complete(state),
    }


def _error(error, status: int = 400):
    app.logger.warning(f'{request.method} {request.path} rejected: {error.code}: {error.message}')
    return jsonify({'success': False, 'error': error.to_dict()}), status


def _not_found(what: str):
    return _error(ValidationError('not-found', f'{what} not found.'), 404)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _participant_fields(entry):
    """Name and partner from a roster entry, a bare name or a mapping. None if it is neither."""
    if isinstance(entry, str):
        return entry, None
    if not isinstance(entry, dict):
        return None
    partner = entry.get('partner')
    return str(entry.get('name') or ''), str(partner) if partner is not None else None


@app.errorhandler(TournamentNotFound)
def handle_tournament_not_found(e):
    return _not_found(f'Tournament "{e}"')


@app.errorhandler(IllegalStateError)
def handle_illegal_state(e):
    return _error(ValidationError('illegal-state', str(e)), 409)


@app.route('/api/tournaments', methods=['POST'])
def api_create_tournament():
    """Create a tournament, optionally with its roster."""
    data = _json_body()
    name = str(data.get('name', '')).strip()
    if not name:
        return _error(ValidationError('blank-name', 'Tournament name is required.'))

    slug = _slugify(name)
    if os.path.exists(os.path.join(_tournament_dir(slug), STATE_FILE)):
        return _error(ValidationError('tournament-exists',
                                      f'A tournament with a similar name already exists ("{slug}").'))

    overrides = data.get('settings') or {}
    if not isinstance(overrides, dict):
        return _error(ValidationError('invalid-settings', 'Settings must be an object of name/value pairs.'))
    participants = data.get('participants') or []
    if not isinstance(participants, list):
        return _error(ValidationError('invalid-participant', 'Participants must be a list.'))

    settings = load_default_settings()
    settings.update(overrides)
    result = create_tournament(data.get('tournament_type', 'roundrobin'),
                               data.get('participant_type', 'individual'), settings)
    if result.error:
        return _error(result.error)

    state = result.state
    for entry in participants:
        fields = _participant_fields(entry)
        if fields is None:
            return _error(ValidationError('invalid-participant',
                                          f'Participant {entry!r} must be a name or an object with a name.'))
        result = add_participant(state, *fields)
        if result.error:
            return _error(result.error)
        state = result.state

    with _tournament_lock(slug, create=True):
        save_state(slug, state, name=name)
    app.logger.info(f'Tournament "{name}" created as {slug}')
    return jsonify({'success': True, **_payload(slug, state)}), 201


@app.route('/api/tournaments/<slug>', methods=['GET'])
def api_get_tournament(slug):
    state = load_state(slug)
    return jsonify({'success': True, **_payload(slug, state)})


@app.route('/api/tournaments/<slug>/participants', methods=['POST'])
def api_add_participant(slug):
    data = _json_body()
    with _tournament_lock(slug):
        state = load_state(slug)
        result = add_participant(state, *_participant_fields(data))
        if result.error:
            return _error(result.error)
        save_state(slug, result.state)
    return jsonify({'success': True, **_payload(slug, result.state)}), 201


@app.route('/api/tournaments/<slug>/participants/<participant_id>', methods=['DELETE'])
def api_remove_participant(slug, participant_id):
    with _tournament_lock(slug):
        state = load_state(slug)
        if state.participant(participant_id) is None:
            return _not_found(f'Participant "{participant_id}"')
        result = remove_participant(state, participant_id)
        if result.error:
            return _error(result.error)
        save_state(slug, result.state)
    return jsonify({'success': True, **_payload(slug, result.state)})


@app.route('/api/tournaments/<slug>/participants/<participant_id>/move', methods=['POST'])
def api_move_participant(slug, participant_id):
    """Move a participant up (offset -1) or down (offset 1) the roster."""
    data = _json_body()
    try:
        offset = int(data.get('offset', 0))
    except (TypeError, ValueError):
        return _error(ValidationError('invalid-offset', 'Offset must be -1 or 1.'))
    with _tournament_lock(slug):
        state = load_state(slug)
        if state.participant(participant_id) is None:
            return _not_found(f'Participant "{participant_id}"')
        result = move_participant(state, participant_id, offset)
        if result.error:
            return _error(result.error)
        save_state(slug, result.state)
    return jsonify({'success': True, **_payload(slug, result.state)})


@app.route('/api/tournaments/<slug>/schedule', methods=['POST'])
def api_generate_schedule(slug):
    """
    Generate the schedule.

    A bracket that needs byes is only generated with confirm_byes; otherwise
    the response is 409 with requires_confirmation and the warnings.
    """
    data = _json_body()
    seed = data.get('seed')
    rng = RandomSource(seed)
    with _tournament_lock(slug):
        state = load_state(slug)
        result = generate_schedule(state, rng, confirm_byes=bool(data.get('confirm_byes', False)))
        if result.error:
            return _error(result.error)
        if result.requires_confirmation:
            app.logger.info(f'Schedule for {slug} needs bye confirmation')
            return jsonify({
                'success': False,
                'requires_confirmation': True,
                'warnings': result.warnings,
            }), 409
        save_state(slug, result.state)
    app.logger.info(f'Schedule generated for {slug}: {len(result.state.matches)} matches')
    return jsonify({'success': True, 'warnings': result.warnings, **_payload(slug, result.state)})


def _require_match(state: TournamentState, match_id: str) -> bool:
    return any(m.id == match_id for m in state.matches)


@app.route('/api/tournaments/<slug>/matches/<match_id>/score', methods=['POST'])
def api_score_change(slug, match_id):
    """Edit one score field; the match completes once both fields form a finished game."""
    data = _json_body()
    with _tournament_lock(slug):
        state = load_state(slug)
        if not _require_match(state, match_id):
            return _not_found(f'Match "{match_id}"')
        result = handle_score_change(state, match_id, data.get('field', ''), data.get('value'))
        if result.error:
            return _error(result.error)
        save_state(slug, result.state)
    return jsonify({
        'success': True,
        'completed': result.invalid is None,
        'invalid': result.invalid.to_dict() if result.invalid else None,
        'events': result.events,
        **_payload(slug, result.state),
    })


@app.route('/api/tournaments/<slug>/matches/<match_id>/complete', methods=['POST'])
def api_complete_match(slug, match_id):
    data = _json_body()
    with _tournament_lock(slug):
        state = load_state(slug)
        if not _require_match(state, match_id):
            return _not_found(f'Match "{match_id}"')
        result = complete_match(state, match_id, data.get('score1'), data.get('score2'))
        if result.error:
            return _error(result.error)
        if result.invalid:
            return _error(result.invalid)
        save_state(slug, result.state)
    return jsonify({'success': True, 'events': result.events, **_payload(slug, result.state)})


@app.route('/api/tournaments/<slug>/standings', methods=['GET'])
def api_standings(slug):
    """Standings, optionally restricted with ?pool=N or ?court=N."""
    state = load_state(slug)
    pool = request.args.get('pool', type=int)
    court = request.args.get('court', type=int)
    rows = get_standings(state, pool=pool, court=court)
    return jsonify({'success': True, 'standings': [row.to_dict() for row in rows]})


@app.route('/api/tournaments/<slug>/ladder/next', methods=['POST'])
def api_next_ladder_session(slug):
    with _tournament_lock(slug):
        state = load_state(slug)
        result = start_next_ladder_session(state)
        if result.error:
            return _error(result.error)
        save_state(slug, result.state)
    app.logger.info(f'{slug}: ladder session {result.state.ladder_session} started')
    return jsonify({'success': True, 'events': result.events, **_payload(slug, result.state)})


@app.route('/api/tournaments/<slug>/reset', methods=['POST'])
def api_reset_tournament(slug):
    """Clear the schedule and every result; the roster and settings stay."""
    with _tournament_lock(slug):
        state = load_state(slug)
        result = reset_tournament(state)
        save_state(slug, result.state)
    app.logger.info(f'{slug}: tournament reset')
    return jsonify({'success': True, **_payload(slug, result.state)})


if __name__ == '__main__':
    app.run(debug=True, port=5000)
