"""Error taxonomy for the voting session core.

Every operation of the session manager either returns a value or raises one
of these. The request layer maps them onto HTTP responses using the
``status_code`` and ``error`` attributes.
"""


class VotingError(Exception):
    """Base class for all voting errors."""

    status_code = 500
    error = "voting_error"

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class InvalidInput(VotingError):
    """Malformed or missing caller data."""

    status_code = 400
    error = "invalid_input"


class AlreadyExists(VotingError):
    """Voting already exists. Delete current voting first."""

    status_code = 409
    error = "already_exists"


class NotFound(VotingError):
    """No voting found."""

    status_code = 404
    error = "not_found"


class SessionNotActive(VotingError):
    """Voting is not active."""

    status_code = 400
    error = "session_not_active"


class AlreadyVoted(VotingError):
    """Email already voted."""

    status_code = 409
    error = "already_voted"


class InvalidCandidate(VotingError):
    """Invalid candidate."""

    status_code = 400
    error = "invalid_candidate"


class StoreUnavailable(VotingError):
    """Key-value store is unavailable."""

    status_code = 503
    error = "store_unavailable"
