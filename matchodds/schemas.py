"""
Pydantic request/response schemas for the Match Odds API.

Requests carry input-shape constraints only (lengths, positivity, digit
counts).  Specifier uniqueness is checked by the services, not here.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, field_serializer, field_validator

from matchodds.core.pagination import PageResult
from matchodds.models import Sport

T = TypeVar("T")


def _not_blank(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be blank")
    return v


# ---------------------------------------------------------------------------
# Odds
# ---------------------------------------------------------------------------

class MatchOddsRequest(BaseModel):
    """
    Payload for creating or updating a single odd.

    Updates follow full replacement: both fields are required.
    """

    specifier: str = Field(..., min_length=1, max_length=16, description='e.g. "1", "X", "2"')
    odd: Decimal = Field(..., gt=0, max_digits=6, decimal_places=3, description="Decimal odd value")

    @field_validator("specifier")
    @classmethod
    def validate_specifier(cls, v: str) -> str:
        return _not_blank(v)

    model_config = {
        "json_schema_extra": {"example": {"specifier": "X", "odd": 1.50}}
    }


class MatchOddsResponse(BaseModel):
    id: int
    match_id: int
    specifier: str
    odd: Decimal

    @field_serializer("odd", when_used="json")
    def serialize_odd(self, v: Decimal) -> float:
        return float(v)


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------

class MatchRequest(BaseModel):
    """
    Payload for POST /api/matches and PUT /api/matches/{id}.

    ``odds`` is tri-state on update:
      absent / null  → existing odds are left untouched
      []             → existing odds are all deleted
      [...]          → existing odds are replaced by exactly these
    """

    description: str = Field(..., min_length=1, max_length=255)
    match_date: date
    match_time: time
    team_a: str = Field(..., min_length=1, max_length=100, description="Home team")
    team_b: str = Field(..., min_length=1, max_length=100, description="Away team")
    sport: Sport = Field(..., description="1 = Football, 2 = Basketball")
    odds: Optional[List[MatchOddsRequest]] = None

    @field_validator("description", "team_a", "team_b")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return _not_blank(v)

    @field_validator("sport", mode="before")
    @classmethod
    def validate_sport(cls, v):
        if isinstance(v, Sport):
            return v
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValueError(f"Invalid sport value: {v}")
        return Sport.from_code(v)

    model_config = {
        "json_schema_extra": {
            "example": {
                "description": "OSFP-PAO",
                "match_date": "2021-03-31",
                "match_time": "12:00",
                "team_a": "OSFP",
                "team_b": "PAO",
                "sport": 1,
                "odds": [
                    {"specifier": "1", "odd": 1.20},
                    {"specifier": "X", "odd": 3.00},
                ],
            }
        }
    }


class MatchResponse(BaseModel):
    """A match; ``odds`` is None when the caller did not ask for them."""

    id: int
    description: str
    match_date: date
    match_time: time
    team_a: str
    team_b: str
    sport: Sport
    odds: Optional[List[MatchOddsResponse]] = None


# ---------------------------------------------------------------------------
# Pagination / errors
# ---------------------------------------------------------------------------

class Page(BaseModel, Generic[T]):
    """One 0-based page of results."""

    content: List[T]
    page: int
    size: int
    total_elements: int
    total_pages: int

    @classmethod
    def build(cls, content: List[T], result: PageResult) -> "Page[T]":
        return cls(
            content=content,
            page=result.request.page,
            size=result.request.size,
            total_elements=result.total,
            total_pages=result.total_pages,
        )


class ApiError(BaseModel):
    """Standard error body."""
    status: int
    code: str
    message: str
    path: str
    timestamp: datetime
