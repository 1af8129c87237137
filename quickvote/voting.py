"""
Voting session manager.

Implements the lifecycle of the single voting session, vote admission and
tallying. All state lives in the shared store; instances hold no state of
their own, so any number of request handlers may use one concurrently.

Lifecycle: absent -> created (inactive) -> active -> stopped -> absent.
"""
import logging
from typing import Any, Iterable, List, Mapping, Optional, Union

from .errors import (
    AlreadyExists,
    AlreadyVoted,
    InvalidCandidate,
    InvalidInput,
    NotFound,
    SessionNotActive,
    StoreUnavailable,
)
from .records import (
    VOTER_PREFIX,
    Candidate,
    CandidateResult,
    VotingResults,
    VotingSession,
    get_current_timestamp,
    get_store_key,
    new_session_id,
)
from .store import SessionStore

logger = logging.getLogger(__name__)

CandidateLike = Union[Candidate, Mapping[str, Any]]

# Legacy two-option poll kept for the old landing page
DEMO_OPTIONS = ('option1', 'option2')


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _parse_candidates(candidates: Optional[Iterable[CandidateLike]]) -> List[Candidate]:
    """Validate candidate input and return it as ``Candidate`` records."""
    parsed = []
    for item in candidates or []:
        candidate = item if isinstance(item, Candidate) else Candidate.from_dict(item)
        if _blank(candidate.id) or _blank(candidate.name):
            raise InvalidInput("Every candidate needs an id and a name")
        parsed.append(Candidate(id=str(candidate.id), name=str(candidate.name)))

    if len(parsed) < 2:
        raise InvalidInput("Title and at least 2 candidates required")

    ids = [c.id for c in parsed]
    if len(set(ids)) != len(ids):
        raise InvalidInput("Candidate ids must be unique")
    return parsed


class VotingSessionManager:
    """Session lifecycle, vote admission and tally computation."""

    def __init__(self, store: SessionStore):
        self.store = store

    async def _load_session(self) -> Optional[VotingSession]:
        data = await self.store.get(get_store_key('session'))
        if not data:
            return None
        try:
            return VotingSession.from_json(data)
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Corrupt session record: {e}")
            raise StoreUnavailable(f"Corrupt session record: {e}") from e

    async def _require_session(self) -> VotingSession:
        session = await self._load_session()
        if session is None:
            raise NotFound()
        return session

    async def _read_counter(self, key: str) -> int:
        """Counter value, 0 when missing."""
        raw = await self.store.get(key)
        if not raw:
            return 0
        try:
            return int(raw)
        except ValueError as e:
            logger.error(f"Corrupt counter {key}: {raw!r}")
            raise StoreUnavailable(f"Corrupt counter {key}") from e

    async def _save_session(self, session: VotingSession) -> None:
        await self.store.set(get_store_key('session'), session.to_json())

    async def get_current_session(self) -> Optional[VotingSession]:
        """Return the current session, or None if there is none."""
        return await self._load_session()

    async def create_session(
        self,
        title: Optional[str],
        candidates: Optional[Iterable[CandidateLike]]
    ) -> VotingSession:
        """
        Create the voting session in the inactive state.

        Args:
            title: Session title, must not be blank
            candidates: At least two candidates with unique ids

        Returns:
            VotingSession: The persisted session

        Raises:
            InvalidInput: Blank title or bad candidate list
            AlreadyExists: A session is already present
        """
        if _blank(title):
            raise InvalidInput("Title and at least 2 candidates required")
        parsed = _parse_candidates(candidates)

        if await self.store.get(get_store_key('session')):
            raise AlreadyExists()

        session = VotingSession(
            id=new_session_id(),
            title=title.strip(),
            candidates=parsed,
            is_active=False,
            created_at=get_current_timestamp()
        )

        # Session record first; counters follow and may briefly be missing
        await self._save_session(session)
        for candidate in parsed:
            await self.store.set(get_store_key('votes', candidate.id), '0')

        logger.info(
            f"Voting created: id={session.id}, title={session.title!r}, "
            f"candidates={len(parsed)}"
        )
        return session

    async def _set_active(self, active: bool) -> VotingSession:
        session = await self._require_session()
        session.is_active = active
        await self._save_session(session)
        logger.info(f"Voting {session.id} {'started' if active else 'stopped'}")
        return session

    async def start_session(self) -> VotingSession:
        """Open the session for voting."""
        return await self._set_active(True)

    async def stop_session(self) -> VotingSession:
        """Close the session for voting."""
        return await self._set_active(False)

    async def delete_session(self) -> None:
        """
        Delete the session with its counters and voter records.

        Counters and voters go first and the session record last, so an
        interrupted delete leaves a session whose counters read as zero
        rather than counters without a session.
        """
        session = await self._require_session()

        await self.store.delete_many(
            get_store_key('votes', c.id) for c in session.candidates
        )

        voter_keys = await self.store.list_keys(VOTER_PREFIX)
        if voter_keys:
            await self.store.delete_many(voter_keys)

        await self.store.delete(get_store_key('session'))
        logger.info(f"Voting {session.id} deleted ({len(voter_keys)} voter records purged)")

    async def submit_vote(self, identity: Optional[str], candidate_id: Optional[str]) -> int:
        """
        Record one vote for ``candidate_id`` on behalf of ``identity``.

        The voter record is written with set-if-absent and is the only gate:
        the counter is incremented only by the caller that created it.

        Returns:
            int: The candidate's new vote count

        Raises:
            InvalidInput, NotFound, SessionNotActive, AlreadyVoted,
            InvalidCandidate, StoreUnavailable
        """
        if _blank(identity) or _blank(candidate_id):
            raise InvalidInput("Email and candidate_id required")
        identity = str(identity).strip()
        candidate_id = str(candidate_id)

        session = await self._load_session()
        if session is None:
            raise NotFound("No active voting found")
        if not session.is_active:
            raise SessionNotActive()

        voter_key = get_store_key('voter', identity)
        if await self.store.get(voter_key):
            raise AlreadyVoted()

        if not session.has_candidate(candidate_id):
            raise InvalidCandidate()

        if not await self.store.set_if_absent(voter_key, candidate_id):
            logger.info(f"Concurrent duplicate vote rejected for {identity}")
            raise AlreadyVoted()

        try:
            votes = await self.store.increment(get_store_key('votes', candidate_id))
        except StoreUnavailable:
            # INCR may have been applied; the voter record stays so it cannot count twice
            logger.error(f"Vote by {identity} recorded but counter update failed")
            raise

        logger.info(f"Vote recorded: candidate={candidate_id}, votes={votes}")
        return votes

    async def get_results(self) -> VotingResults:
        """
        Tally the current session.

        Missing counters count as zero. Percentages are 0 for every
        candidate when no votes have been cast.
        """
        session = await self._load_session()
        if session is None:
            return VotingResults()

        counts = []
        for candidate in session.candidates:
            counts.append((candidate, await self._read_counter(get_store_key('votes', candidate.id))))

        total = sum(votes for _, votes in counts)
        return VotingResults(
            total_votes=total,
            candidates=[
                CandidateResult(
                    id=candidate.id,
                    name=candidate.name,
                    votes=votes,
                    percentage=(votes / total) * 100 if total > 0 else 0.0
                )
                for candidate, votes in counts
            ]
        )

    async def record_demo_vote(self, option: str) -> int:
        """Increment a legacy demo poll option."""
        if option not in DEMO_OPTIONS:
            raise InvalidInput("Invalid option")
        return await self.store.increment(get_store_key('demo', option))

    async def get_demo_votes(self) -> dict:
        """Counts of the legacy demo poll."""
        votes = {}
        for option in DEMO_OPTIONS:
            votes[option] = await self._read_counter(get_store_key('demo', option))
        return votes


