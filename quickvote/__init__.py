"""QuickVote: a single live voting session with real-time results.

Components:

- ``store`` / ``redis_client``: key-value store adapter (Redis or in-memory)
- ``voting``: session lifecycle, vote admission and tallying
- ``main``: FastAPI request layer
"""

from .errors import (
    AlreadyExists,
    AlreadyVoted,
    InvalidCandidate,
    InvalidInput,
    NotFound,
    SessionNotActive,
    StoreUnavailable,
    VotingError,
)
from .records import Candidate, CandidateResult, VotingResults, VotingSession
from .store import MemoryStore, SessionStore
from .voting import VotingSessionManager

__version__ = "1.0.0"
