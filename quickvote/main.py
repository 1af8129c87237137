"""
FastAPI application for the QuickVote service.

Thin request layer over ``VotingSessionManager``: every replica is stateless
and shares the session through the configured store, so any number of them
can run behind a load balancer.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .config import settings
from .errors import StoreUnavailable, VotingError
from .models import (
    CreateVotingRequest,
    CreateVotingResponse,
    CurrentVotingResponse,
    DemoVoteRequest,
    DemoVotesResponse,
    ErrorResponse,
    HealthResponse,
    MessageResponse,
    ResultsResponse,
    VoteRequest,
    VoteResponse,
)
from .redis_client import RedisStore
from .store import MemoryStore, SessionStore
from .voting import VotingSessionManager

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Prometheus metrics
vote_counter = Counter(
    "votes_submitted_total",
    "Total number of votes accepted",
    ["candidate_id"]
)
vote_errors = Counter(
    "vote_errors_total",
    "Total number of vote submission errors",
    ["error_type"]
)
request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"]
)

# Rate limiter
limiter = Limiter(key_func=get_remote_address)


def build_store() -> SessionStore:
    """Create the store backend selected by ``STORE_BACKEND``."""
    if settings.STORE_BACKEND == "memory":
        logger.warning("Using in-memory store: state is not shared between replicas")
        return MemoryStore()
    return RedisStore.from_settings(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"Starting {settings.SERVICE_NAME} on container {settings.CONTAINER_ID}...")

    store = build_store()
    try:
        await store.ping()
        logger.info(f"Store connection established ({settings.STORE_BACKEND})")
    except StoreUnavailable as e:
        logger.error(f"Failed to start {settings.SERVICE_NAME}: {e}")
        raise
    app.state.manager = VotingSessionManager(store)

    yield

    logger.info(f"Shutting down {settings.SERVICE_NAME}...")
    await store.close()


# Create FastAPI app
app = FastAPI(
    title="QuickVote API",
    description="Single live voting session with real-time results",
    version=settings.API_VERSION,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(VotingError)
async def voting_error_handler(request: Request, exc: VotingError) -> JSONResponse:
    """Translate domain and store errors into JSON error responses."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.error, message=exc.message).model_dump()
    )


@app.middleware("http")
async def prometheus_middleware(request: Request, call_next):
    """Middleware to track request duration."""
    start = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    request_duration.labels(
        method=request.method,
        endpoint=getattr(route, "path", request.url.path),
        status=response.status_code
    ).observe(time.perf_counter() - start)
    return response


def get_manager(request: Request) -> VotingSessionManager:
    """Session manager created at startup."""
    return request.app.state.manager


class AdminAuthError(VotingError):
    """Unauthorized: Invalid password"""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "unauthorized"


def check_auth(x_admin_password: Optional[str] = Header(default=None)) -> None:
    """Reject admin requests without the configured password."""
    if x_admin_password != settings.ADMIN_PASSWORD:
        raise AdminAuthError()


def internal_error(action: str, exc: Exception) -> JSONResponse:
    logger.error(f"Error {action}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "message": f"Failed {action}"}
    )


@app.get("/api/health", response_model=HealthResponse)
async def health_check(manager: VotingSessionManager = Depends(get_manager)):
    """Report store connectivity and the replica serving the request."""
    try:
        await manager.store.ping()
        services = {"store": "connected"}
    except StoreUnavailable:
        services = {"store": "disconnected"}

    healthy = services["store"] == "connected"
    response = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        container=settings.CONTAINER_ID,
        services=services,
        timestamp=datetime.now(timezone.utc)
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json")
    )


@app.get(
    "/api/voting/current",
    response_model=CurrentVotingResponse,
    response_model_exclude_none=True
)
async def get_current_voting(manager: VotingSessionManager = Depends(get_manager)):
    """Get the current voting session, if any."""
    session = await manager.get_current_session()
    if session is None:
        return CurrentVotingResponse(exists=False)
    return CurrentVotingResponse(exists=True, voting=session.to_dict())


@app.post(
    "/api/voting/create",
    response_model=CreateVotingResponse,
    dependencies=[Depends(check_auth)],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid title or candidates"},
        401: {"model": ErrorResponse, "description": "Invalid admin password"},
        409: {"model": ErrorResponse, "description": "Voting already exists"}
    }
)
async def create_voting(
    body: CreateVotingRequest,
    manager: VotingSessionManager = Depends(get_manager)
):
    """
    Create the voting session (inactive until started).

    - **title**: Voting title
    - **candidates**: At least two `{id, name}` entries with unique ids
    """
    try:
        session = await manager.create_session(
            body.title,
            [c.model_dump() for c in body.candidates]
        )
        return CreateVotingResponse(voting=session.to_dict())
    except VotingError:
        raise
    except Exception as e:
        return internal_error("creating voting", e)


@app.post("/api/voting/start", response_model=MessageResponse, dependencies=[Depends(check_auth)])
async def start_voting(manager: VotingSessionManager = Depends(get_manager)):
    """Start accepting votes."""
    await manager.start_session()
    return MessageResponse(message="Voting started")


@app.post("/api/voting/stop", response_model=MessageResponse, dependencies=[Depends(check_auth)])
async def stop_voting(manager: VotingSessionManager = Depends(get_manager)):
    """Stop accepting votes."""
    await manager.stop_session()
    return MessageResponse(message="Voting stopped")


@app.delete("/api/voting/delete", response_model=MessageResponse, dependencies=[Depends(check_auth)])
async def delete_voting(manager: VotingSessionManager = Depends(get_manager)):
    """Delete the voting session, its counters and all voter records."""
    try:
        await manager.delete_session()
        return MessageResponse(message="Voting deleted")
    except VotingError:
        raise
    except Exception as e:
        return internal_error("deleting voting", e)


@app.post(
    "/api/vote",
    response_model=VoteResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid vote or inactive voting"},
        404: {"model": ErrorResponse, "description": "No voting found"},
        409: {"model": ErrorResponse, "description": "Email already voted"},
        429: {"description": "Rate limit exceeded"},
        503: {"model": ErrorResponse, "description": "Store unavailable"}
    }
)
@limiter.limit(settings.RATE_LIMIT)
async def submit_vote(
    request: Request,
    vote: VoteRequest,
    manager: VotingSessionManager = Depends(get_manager)
):
    """
    Submit a vote in the current voting.

    - **email**: Voter identity, one vote per email
    - **candidate_id**: Chosen candidate
    """
    try:
        await manager.submit_vote(vote.email, vote.candidate_id)
    except VotingError as e:
        vote_errors.labels(error_type=e.error).inc()
        raise
    except Exception as e:
        vote_errors.labels(error_type="internal_error").inc()
        return internal_error("submitting vote", e)

    vote_counter.labels(candidate_id=vote.candidate_id).inc()
    return VoteResponse(container=settings.CONTAINER_ID)


@app.get("/api/results", response_model=ResultsResponse)
async def get_results(manager: VotingSessionManager = Depends(get_manager)):
    """Get the live tally of the current voting."""
    results = await manager.get_results()
    return ResultsResponse(container=settings.CONTAINER_ID, **results.to_dict())


@app.get("/api/votes", response_model=DemoVotesResponse)
async def get_demo_votes(manager: VotingSessionManager = Depends(get_manager)):
    """Counts of the legacy two-option demo poll."""
    votes = await manager.get_demo_votes()
    return DemoVotesResponse(votes=votes, container=settings.CONTAINER_ID)


@app.post("/api/vote-demo", response_model=VoteResponse)
async def submit_demo_vote(
    body: DemoVoteRequest,
    manager: VotingSessionManager = Depends(get_manager)
):
    """Vote in the legacy demo poll (no deduplication)."""
    await manager.record_demo_vote(body.option)
    return VoteResponse(container=settings.CONTAINER_ID)


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "quickvote.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
