"""
Data records for the voting session core.

This module contains:
- Candidate / VotingSession: the singleton session persisted in the store
- CandidateResult / VotingResults: the tally projection returned to callers
- Store key helpers shared by every component
"""

import json
import time
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class Candidate:
    """
    A choice offered by a voting session.

    Attributes:
        id: Identifier, unique within the session
        name: Display name
    """
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Candidate':
        """Create Candidate from dictionary, ignoring unknown fields."""
        return cls(id=data.get('id'), name=data.get('name'))


@dataclass
class VotingSession:
    """
    The single voting session stored under ``voting:current``.

    Attributes:
        id: Opaque token (creation time in epoch milliseconds)
        title: Session title
        candidates: Candidates in display order
        is_active: Whether votes are currently admitted
        created_at: ISO format UTC timestamp
    """
    id: str
    title: str
    candidates: List[Candidate] = field(default_factory=list)
    is_active: bool = False
    created_at: str = ''

    def has_candidate(self, candidate_id: str) -> bool:
        return any(c.id == candidate_id for c in self.candidates)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    def to_json(self) -> str:
        """Convert to JSON string for the store."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VotingSession':
        """Create VotingSession from dictionary."""
        return cls(
            id=str(data['id']),
            title=data['title'],
            candidates=[Candidate.from_dict(c) for c in data.get('candidates', [])],
            is_active=bool(data.get('is_active', False)),
            created_at=data.get('created_at', ''),
        )

    @classmethod
    def from_json(cls, json_str: str) -> 'VotingSession':
        """Create VotingSession from JSON string."""
        return cls.from_dict(json.loads(json_str))


@dataclass
class CandidateResult:
    """Tally for one candidate."""
    id: str
    name: str
    votes: int = 0
    percentage: float = 0.0


@dataclass
class VotingResults:
    """
    Tally of the current session.

    An absent session yields ``VotingResults()``: zero votes, no candidates.
    """
    total_votes: int = 0
    candidates: List[CandidateResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


def new_session_id() -> str:
    """Session token: current time in epoch milliseconds."""
    return str(int(time.time() * 1000))


def get_current_timestamp() -> str:
    """
    Get current UTC timestamp in ISO format.

    Returns:
        str: ISO format timestamp with Z suffix
    """
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


# Store key layout shared with every deployed instance
STORE_KEYS = {
    'session': 'voting:current',     # JSON VotingSession
    'votes': 'votes:{}',             # COUNTER per candidate id
    'voter': 'voter:{}',             # candidate id chosen by an identity
    'demo': 'demo:{}',               # COUNTER per legacy demo option
}

VOTER_PREFIX = 'voter:'


def get_store_key(key_type: str, *args) -> Optional[str]:
    """
    Get formatted store key.

    Args:
        key_type: Type of key from STORE_KEYS
        *args: Arguments to format into key

    Returns:
        str: Formatted key
    """
    key_template = STORE_KEYS.get(key_type)
    if key_template and '{}' in key_template:
        return key_template.format(*args)
    return key_template
