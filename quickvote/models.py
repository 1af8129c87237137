"""Pydantic models for request/response validation.

Request fields are optional on purpose: missing or blank values reach the
session manager, which rejects them with ``InvalidInput``.
"""
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator


def _to_str(v: Any) -> Any:
    """Accept numeric ids and names from JSON clients."""
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class CandidateIn(BaseModel):
    """Candidate supplied when creating a voting."""

    id: Optional[str] = Field(default=None, description="Candidate identifier")
    name: Optional[str] = Field(default=None, description="Display name")

    @field_validator("id", "name", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _to_str(v)


class CreateVotingRequest(BaseModel):
    """Voting creation request model."""

    title: Optional[str] = Field(default=None, description="Voting title")
    candidates: list[CandidateIn] = Field(default_factory=list, description="At least 2 candidates")

    model_config = {
        "json_schema_extra": {
            "example": {
                "title": "Best Fruit",
                "candidates": [
                    {"id": "a", "name": "Apple"},
                    {"id": "b", "name": "Banana"}
                ]
            }
        }
    }


class VoteRequest(BaseModel):
    """Vote submission request model."""

    email: Optional[str] = Field(default=None, description="Voter identity")
    candidate_id: Optional[str] = Field(default=None, description="Chosen candidate")

    @field_validator("candidate_id", mode="before")
    @classmethod
    def coerce_candidate_id(cls, v):
        return _to_str(v)

    model_config = {
        "json_schema_extra": {
            "example": {"email": "x@y.com", "candidate_id": "a"}
        }
    }


class DemoVoteRequest(BaseModel):
    """Legacy demo poll vote."""

    option: Optional[str] = None


class CandidateOut(BaseModel):
    id: str
    name: str


class VotingOut(BaseModel):
    """Projection of the current voting session."""

    id: str
    title: str
    candidates: list[CandidateOut]
    is_active: bool
    created_at: str


class CurrentVotingResponse(BaseModel):
    exists: bool
    voting: Optional[VotingOut] = None


class CreateVotingResponse(BaseModel):
    success: bool = True
    voting: VotingOut


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class VoteResponse(BaseModel):
    """Vote submission response model."""

    success: bool = True
    message: str = Field(default="Vote recorded", description="Response message")
    container: str = Field(..., description="Replica that handled the request")


class CandidateResultOut(BaseModel):
    id: str
    name: str
    votes: int
    percentage: float


class ResultsResponse(BaseModel):
    """Voting results response model."""

    total_votes: int = Field(..., description="Total number of votes")
    candidates: list[CandidateResultOut] = Field(..., description="Per-candidate tally")
    container: str

    model_config = {
        "json_schema_extra": {
            "example": {
                "total_votes": 2,
                "candidates": [
                    {"id": "a", "name": "Apple", "votes": 1, "percentage": 50.0},
                    {"id": "b", "name": "Banana", "votes": 1, "percentage": 50.0}
                ],
                "container": "web-1"
            }
        }
    }


class DemoVotesResponse(BaseModel):
    votes: dict[str, int]
    container: str


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    container: str = Field(..., description="Replica that handled the request")
    services: dict = Field(..., description="Status of individual services")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Health check timestamp"
    )


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
