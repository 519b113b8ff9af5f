"""
Data model: participants, sides, matches and tournament settings.
"""
from typing import Dict, List, Optional

from .errors import ValidationError

INDIVIDUAL = 'individual'
TEAM = 'team'
PARTICIPANT_TYPES = (INDIVIDUAL, TEAM)

# Tournament formats
ROUND_ROBIN = 'roundrobin'
SINGLE_ELIMINATION = 'bracket'
DOUBLE_ELIMINATION = 'double'
POOL_PLAY = 'poolplay'
LADDER = 'ladder'
TOURNAMENT_TYPES = (ROUND_ROBIN, SINGLE_ELIMINATION, DOUBLE_ELIMINATION, POOL_PLAY, LADDER)

# Match phase tags
PHASE_POOL = 'pool'
PHASE_BRACKET = 'bracket'
PHASE_WINNERS = 'winners'
PHASE_LOSERS = 'losers'
PHASE_GRAND_FINAL = 'grand-final'
PHASE_RESET = 'reset'
PHASE_LADDER = 'ladder'

# Tournament phases (pool play and ladder only)
TOURNAMENT_POOLS = 'pools'
TOURNAMENT_BRACKET = 'bracket'
TOURNAMENT_PLAYING = 'playing'
TOURNAMENT_SESSION_RESULTS = 'session-results'

ALLOWED_POINTS_TO_WIN = (11, 15, 21)


class Participant:
    def __init__(self, id, name, kind=INDIVIDUAL, partner=None, wins=0, losses=0, points=0):
        self.id = id
        self.name = name
        self.kind = kind
        self.partner = partner if kind == TEAM else None
        self.wins = wins
        self.losses = losses
        self.points = points

    def display_name(self) -> str:
        if self.kind == TEAM and self.partner:
            return f"{self.name} & {self.partner}"
        return self.name

    def reset_stats(self):
        self.wins = 0
        self.losses = 0
        self.points = 0

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'kind': self.kind,
            'partner': self.partner,
            'wins': self.wins,
            'losses': self.losses,
            'points': self.points,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Participant':
        return cls(
            id=data['id'],
            name=data['name'],
            kind=data.get('kind', INDIVIDUAL),
            partner=data.get('partner'),
            wins=data.get('wins', 0),
            losses=data.get('losses', 0),
            points=data.get('points', 0),
        )

    def __repr__(self):
        return f"Participant(id={self.id}, name={self.name}, W{self.wins}-L{self.losses}, points={self.points})"


class Side:
    """One slot of a match: a single participant or an ordered doubles pair."""

    SINGLE = 'single'
    PAIR = 'pair'

    def __init__(self, members):
        members = tuple(members)
        if len(members) not in (1, 2):
            raise ValueError(f"A side has one or two members, got {len(members)}")
        self._members = members

    @classmethod
    def single(cls, participant: Participant) -> 'Side':
        return cls((participant,))

    @classmethod
    def pair(cls, first: Participant, second: Participant) -> 'Side':
        return cls((first, second))

    @property
    def kind(self) -> str:
        return self.PAIR if len(self._members) == 2 else self.SINGLE

    def members(self) -> List[Participant]:
        return list(self._members)

    def ids(self) -> List[str]:
        return [p.id for p in self._members]

    def contains(self, participant_id) -> bool:
        return any(p.id == participant_id for p in self._members)

    def display_name(self) -> str:
        if self.kind == self.PAIR:
            return ' & '.join(p.name for p in self._members)
        return self._members[0].display_name()

    def to_list(self) -> List[str]:
        return self.ids()

    @classmethod
    def from_list(cls, ids: List[str], participants_by_id: Dict[str, Participant]) -> 'Side':
        return cls(participants_by_id[pid] for pid in ids)

    def __eq__(self, other):
        if not isinstance(other, Side):
            return NotImplemented
        return self.ids() == other.ids()

    def __hash__(self):
        return hash(tuple(self.ids()))

    def __repr__(self):
        return f"Side({self.display_name()})"


def display_side(side: Optional[Side]) -> str:
    """Display name for a side slot, 'TBD' while it is still pending."""
    if side is None:
        return 'TBD'
    return side.display_name()


class Match:
    def __init__(self, id, round, team1=None, team2=None, court=None, phase=None,
                 pool=None, session=None, bracket_position=None, score1=None, score2=None,
                 winner=None, completed=False, is_bye=False, is_reset=False):
        self.id = id
        self.round = round
        self.court = court
        self.phase = phase
        self.pool = pool
        self.session = session
        self.team1 = team1
        self.team2 = team2
        self.score1 = score1
        self.score2 = score2
        self.winner = winner
        self.completed = completed
        self.bracket_position = bracket_position
        self.is_bye = is_bye
        self.is_reset = is_reset

    @property
    def loser(self) -> Optional[Side]:
        if not self.completed or self.winner is None or self.is_bye:
            return None
        return self.team2 if self.winner == self.team1 else self.team1

    def sides(self) -> List[Side]:
        return [side for side in (self.team1, self.team2) if side is not None]

    def is_ready(self) -> bool:
        """True when both sides are known and no result is recorded."""
        return self.team1 is not None and self.team2 is not None and not self.completed

    def involves(self, participant_id) -> bool:
        return any(side.contains(participant_id) for side in self.sides())

    def side_of(self, participant_id) -> Optional[int]:
        """1 or 2 for the side the participant plays on, None if absent."""
        if self.team1 is not None and self.team1.contains(participant_id):
            return 1
        if self.team2 is not None and self.team2.contains(participant_id):
            return 2
        return None

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'round': self.round,
            'court': self.court,
            'phase': self.phase,
            'pool': self.pool,
            'session': self.session,
            'team1': self.team1.to_list() if self.team1 else None,
            'team2': self.team2.to_list() if self.team2 else None,
            'score1': self.score1,
            'score2': self.score2,
            'winner': self.winner.to_list() if self.winner else None,
            'completed': self.completed,
            'bracket_position': self.bracket_position,
            'is_bye': self.is_bye,
            'is_reset': self.is_reset,
        }

    @classmethod
    def from_dict(cls, data: Dict, participants_by_id: Dict[str, Participant]) -> 'Match':
        def side(key):
            ids = data.get(key)
            return Side.from_list(ids, participants_by_id) if ids else None

        return cls(
            id=data['id'],
            round=data['round'],
            court=data.get('court'),
            phase=data.get('phase'),
            pool=data.get('pool'),
            session=data.get('session'),
            team1=side('team1'),
            team2=side('team2'),
            score1=data.get('score1'),
            score2=data.get('score2'),
            winner=side('winner'),
            completed=data.get('completed', False),
            bracket_position=data.get('bracket_position'),
            is_bye=data.get('is_bye', False),
            is_reset=data.get('is_reset', False),
        )

    def __repr__(self):
        return (f"Match(id={self.id}, round={self.round}, {display_side(self.team1)} vs "
                f"{display_side(self.team2)}, score={self.score1}-{self.score2}, completed={self.completed})")


def parse_bool(value) -> bool:
    """Read a flag from YAML, JSON or a form field. Strings like 'false' or 'off' are False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ('true', 'yes', 'on', '1'):
            return True
        if text in ('false', 'no', 'off', '0'):
            return False
    raise ValueError(f"Not a yes/no value: {value!r}")


def get_default_settings() -> Dict:
    """Return default tournament settings."""
    return {
        'rounds': 6,
        'courts': 1,
        'num_pools': 1,
        'pool_size': 4,
        'advance_count': 2,
        'points_to_win': 11,
        'win_by_two': True,
    }


class TournamentSettings:
    def __init__(self, rounds=6, courts=1, num_pools=1, pool_size=4, advance_count=2,
                 points_to_win=11, win_by_two=True):
        self.rounds = rounds
        self.courts = courts
        self.num_pools = num_pools
        self.pool_size = pool_size
        self.advance_count = advance_count
        self.points_to_win = points_to_win
        self.win_by_two = win_by_two

    @classmethod
    def from_dict(cls, data: Optional[Dict] = None) -> 'TournamentSettings':
        """Build settings from a (possibly partial) dict merged over the defaults."""
        merged = get_default_settings()
        if data:
            for key, value in data.items():
                if key in merged and value is not None:
                    merged[key] = value
        return cls(
            rounds=int(merged['rounds']),
            courts=int(merged['courts']),
            num_pools=int(merged['num_pools']),
            pool_size=int(merged['pool_size']),
            advance_count=int(merged['advance_count']),
            points_to_win=int(merged['points_to_win']),
            win_by_two=parse_bool(merged['win_by_two']),
        )

    def to_dict(self) -> Dict:
        return {
            'rounds': self.rounds,
            'courts': self.courts,
            'num_pools': self.num_pools,
            'pool_size': self.pool_size,
            'advance_count': self.advance_count,
            'points_to_win': self.points_to_win,
            'win_by_two': self.win_by_two,
        }

    def validate(self) -> Optional[ValidationError]:
        """Return a ValidationError describing the first bad setting, or None."""
        if self.points_to_win not in ALLOWED_POINTS_TO_WIN:
            return ValidationError(
                'invalid-settings',
                f"Games are played to 11, 15 or 21 points, not {self.points_to_win}",
                {'field': 'points_to_win'},
            )
        for field in ('rounds', 'courts', 'num_pools', 'pool_size', 'advance_count'):
            if getattr(self, field) < 1:
                return ValidationError(
                    'invalid-settings', f"{field} must be at least 1", {'field': field}
                )
        return None

    def __repr__(self):
        return f"TournamentSettings({self.to_dict()})"


class ScheduleResult:
    """Outcome of a schedule generator: either matches and a phase, or an error."""

    def __init__(self, matches=None, phase=None, warnings=None, error=None,
                 court_assignments=None, byes_needed=0):
        self.matches = matches if matches is not None else []
        self.phase = phase
        self.warnings = warnings if warnings else []
        self.error = error
        self.court_assignments = court_assignments if court_assignments else {}
        self.byes_needed = byes_needed

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, code, message, details=None) -> 'ScheduleResult':
        return cls(error=ValidationError(code, message, details))

    def __repr__(self):
        if self.error:
            return f"ScheduleResult(error={self.error})"
        return f"ScheduleResult(matches={len(self.matches)}, phase={self.phase}, warnings={self.warnings})"
