"""
The whole tournament as one value, and its document form.
"""
import copy
from typing import Dict, List, Optional

from .models import (
    INDIVIDUAL,
    ROUND_ROBIN,
    Match,
    Participant,
    TournamentSettings,
)


class TournamentState:
    def __init__(self, tournament_type=ROUND_ROBIN, participant_type=INDIVIDUAL, participants=None,
                 settings=None, matches=None, phase=None, ladder_session=0, court_assignments=None):
        self.tournament_type = tournament_type
        self.participant_type = participant_type
        self.participants: List[Participant] = participants if participants is not None else []
        self.settings: TournamentSettings = settings if settings is not None else TournamentSettings()
        self.matches: List[Match] = matches if matches is not None else []
        self.phase: Optional[str] = phase
        self.ladder_session = ladder_session
        self.court_assignments: Dict[int, List[Participant]] = court_assignments if court_assignments else {}

    def participants_by_id(self) -> Dict[str, Participant]:
        return {p.id: p for p in self.participants}

    def participant(self, participant_id) -> Optional[Participant]:
        for p in self.participants:
            if p.id == participant_id:
                return p
        return None

    def copy(self) -> 'TournamentState':
        """Deep copy; sides in the copy refer to the copied participants."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict:
        return {
            'tournament_type': self.tournament_type,
            'participant_type': self.participant_type,
            'participants': [p.to_dict() for p in self.participants],
            'settings': self.settings.to_dict(),
            'matches': [m.to_dict() for m in self.matches],
            'phase': self.phase,
            'ladder_session': self.ladder_session,
            'court_assignments': {
                court: [p.id for p in players] for court, players in self.court_assignments.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'TournamentState':
        """Restore a state document, resolving side ids against the roster."""
        participants = [Participant.from_dict(p) for p in data.get('participants', [])]
        by_id = {p.id: p for p in participants}
        assignments = {
            int(court): [by_id[pid] for pid in ids]
            for court, ids in (data.get('court_assignments') or {}).items()
        }
        return cls(
            tournament_type=data.get('tournament_type', ROUND_ROBIN),
            participant_type=data.get('participant_type', INDIVIDUAL),
            participants=participants,
            settings=TournamentSettings.from_dict(data.get('settings')),
            matches=[Match.from_dict(m, by_id) for m in data.get('matches', [])],
            phase=data.get('phase'),
            ladder_session=data.get('ladder_session', 0),
            court_assignments=assignments,
        )

    def __repr__(self):
        return (f"TournamentState(type={self.tournament_type}, participants={len(self.participants)}, "
                f"matches={len(self.matches)}, phase={self.phase})")
