"""
FastAPI application for the Match Odds API
CRUD for matches and their odds, with pagination and specifier uniqueness
"""

from fastapi import FastAPI, Body, Depends, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List
import logging
import os

from dotenv import load_dotenv

from matchodds.auth import verify_api_key, warn_if_unconfigured
from matchodds.core.errors import ConflictError, MatchOddsError, NotFoundError, ValidationError
from matchodds.core.pagination import PageRequest
from matchodds.models import get_db, init_db
from matchodds.repositories import MATCH_SORT_COLUMNS, ODDS_SORT_COLUMNS
from matchodds.schemas import (
    ApiError,
    MatchOddsRequest,
    MatchOddsResponse,
    MatchRequest,
    MatchResponse,
    Page,
)
from matchodds.services.match_service import MatchService
from matchodds.services.odds_service import MatchOddsService

load_dotenv()

# Logging setup
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

APP_VERSION = "1.0"
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "100"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("Starting Match Odds API %s", APP_VERSION)
    warn_if_unconfigured()

    if os.getenv("AUTO_CREATE_TABLES", "true").lower() == "true":
        init_db()

    yield

    logger.info("Shutting down Match Odds API")


app = FastAPI(
    title="Match Odds API",
    description="Matches and their odds; specifiers are unique per match",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_match_service(db: Session = Depends(get_db)) -> MatchService:
    return MatchService(db)


def get_odds_service(db: Session = Depends(get_db)) -> MatchOddsService:
    return MatchOddsService(db)


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    """Health check"""
    return {
        "app": "Match Odds API",
        "version": APP_VERSION,
        "status": "operational",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Health check endpoint"""
    health = {"status": "healthy", "database": "connected"}

    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Health check database error: %s", e)
        health["status"] = "degraded"
        health["database"] = f"error: {str(e)}"

    return health


# ============================================================================
# AUTHENTICATED ENDPOINTS - MATCHES
# ============================================================================

@app.post("/api/matches", response_model=MatchResponse, status_code=status.HTTP_201_CREATED)
def create_match(
    req: MatchRequest,
    user: str = Depends(verify_api_key),
    service: MatchService = Depends(get_match_service),
):
    """Create a match, optionally with an initial batch of odds."""
    return service.create(req)


@app.post("/api/matches/bulk", response_model=List[MatchResponse], status_code=status.HTTP_201_CREATED)
def create_matches_bulk(
    reqs: List[MatchRequest] = Body(...),
    user: str = Depends(verify_api_key),
    service: MatchService = Depends(get_match_service),
):
    """Create several matches in one transaction; any failure persists none."""
    return service.create_bulk(reqs)


@app.get("/api/matches/{match_id}", response_model=MatchResponse)
def get_match(
    match_id: int,
    user: str = Depends(verify_api_key),
    service: MatchService = Depends(get_match_service),
):
    """Get a match with all its odds."""
    return service.get(match_id)


@app.get("/api/matches", response_model=Page[MatchResponse])
def list_matches(
    include_odds: bool = Query(default=False),
    page: int = Query(default=0),
    size: int = Query(default=DEFAULT_PAGE_SIZE),
    sort: List[str] = Query(default=[], description="prop[,prop][,asc|desc]; repeatable"),
    user: str = Depends(verify_api_key),
    service: MatchService = Depends(get_match_service),
):
    """
    Page through matches.

    With include_odds=false each match carries ``odds: null``; with
    include_odds=true the odds are loaded for exactly the matches on the page.
    """
    page_request = PageRequest.of(page, size, sort, allowed=MATCH_SORT_COLUMNS, max_size=MAX_PAGE_SIZE)
    return service.list_page(include_odds, page_request)


@app.put("/api/matches/{match_id}", response_model=MatchResponse)
def update_match(
    match_id: int,
    req: MatchRequest,
    user: str = Depends(verify_api_key),
    service: MatchService = Depends(get_match_service),
):
    """
    Replace a match's fields.

    Omit ``odds`` (or send null) to keep the existing odds; send a list,
    even an empty one, to replace them all.
    """
    return service.update(match_id, req)


@app.delete("/api/matches/{match_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_match(
    match_id: int,
    user: str = Depends(verify_api_key),
    service: MatchService = Depends(get_match_service),
):
    """Delete a match and every odds row it owns."""
    service.delete(match_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# AUTHENTICATED ENDPOINTS - ODDS
# ============================================================================

@app.post(
    "/api/matches/{match_id}/odds",
    response_model=MatchOddsResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_odds(
    match_id: int,
    req: MatchOddsRequest,
    user: str = Depends(verify_api_key),
    service: MatchOddsService = Depends(get_odds_service),
):
    """Add one odd to a match. The specifier must be new for that match."""
    return service.create(match_id, req)


@app.post(
    "/api/matches/{match_id}/odds/bulk",
    response_model=List[MatchOddsResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_odds_bulk(
    match_id: int,
    reqs: List[MatchOddsRequest] = Body(...),
    user: str = Depends(verify_api_key),
    service: MatchOddsService = Depends(get_odds_service),
):
    """Add several odds to a match, all-or-nothing."""
    return service.create_bulk(match_id, reqs)


@app.get("/api/matches/{match_id}/odds", response_model=Page[MatchOddsResponse])
def list_odds(
    match_id: int,
    page: int = Query(default=0),
    size: int = Query(default=DEFAULT_PAGE_SIZE),
    sort: List[str] = Query(default=[], description="prop[,prop][,asc|desc]; repeatable"),
    user: str = Depends(verify_api_key),
    service: MatchOddsService = Depends(get_odds_service),
):
    """Page through the odds of one match."""
    page_request = PageRequest.of(page, size, sort, allowed=ODDS_SORT_COLUMNS, max_size=MAX_PAGE_SIZE)
    return service.list_by_match_page(match_id, page_request)


@app.get("/api/matches/{match_id}/odds/{odd_id}", response_model=MatchOddsResponse)
def get_odds(
    match_id: int,
    odd_id: int,
    user: str = Depends(verify_api_key),
    service: MatchOddsService = Depends(get_odds_service),
):
    return service.get(match_id, odd_id)


@app.put("/api/matches/{match_id}/odds/{odd_id}", response_model=MatchOddsResponse)
def update_odds(
    match_id: int,
    odd_id: int,
    req: MatchOddsRequest,
    user: str = Depends(verify_api_key),
    service: MatchOddsService = Depends(get_odds_service),
):
    """Replace specifier and value of one odd."""
    return service.update(match_id, odd_id, req)


@app.delete("/api/matches/{match_id}/odds/{odd_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_odds(
    match_id: int,
    odd_id: int,
    user: str = Depends(verify_api_key),
    service: MatchOddsService = Depends(get_odds_service),
):
    service.delete(match_id, odd_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.delete("/api/matches/{match_id}/odds", status_code=status.HTTP_204_NO_CONTENT)
def delete_all_odds(
    match_id: int,
    user: str = Depends(verify_api_key),
    service: MatchOddsService = Depends(get_odds_service),
):
    """Delete every odd of a match. The match itself is kept."""
    service.delete_all(match_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

_ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    ValidationError: status.HTTP_400_BAD_REQUEST,
}

_HTTP_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def _field_name(loc) -> str:
    # ("body", "odds", 0, "specifier") -> "odds.0.specifier"
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts) or "request"


def _error_response(request: Request, status_code: int, code: str, message: str, headers=None):
    body = ApiError(
        status=status_code,
        code=code,
        message=message,
        path=request.url.path,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


@app.exception_handler(MatchOddsError)
async def business_error_handler(request: Request, exc: MatchOddsError):
    status_code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if status_code == status.HTTP_404_NOT_FOUND:
        logger.info("Resource not found: %s", exc.message)
    else:
        logger.warning("%s: %s", exc.code, exc.message)
    return _error_response(request, status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    body_unreadable = any(
        e.get("type") == "json_invalid"
        or (e.get("type") == "missing" and tuple(e.get("loc", ())) == ("body",))
        for e in errors
    )
    if body_unreadable:
        logger.warning("Malformed request body on %s", request.url.path)
        return _error_response(
            request,
            status.HTTP_400_BAD_REQUEST,
            "BAD_REQUEST",
            "Request body is missing or malformed. Please ensure you send valid JSON.",
        )

    msg = ", ".join(f"{_field_name(e.get('loc', ()))}: {e.get('msg')}" for e in errors)
    logger.warning("Validation error: %s", msg)
    return _error_response(request, status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", msg)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    return _error_response(
        request, exc.status_code, code, str(exc.detail), headers=getattr(exc, "headers", None)
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.error("Database constraint violation: %s", exc.orig)
    return _error_response(
        request, status.HTTP_409_CONFLICT, "DB_CONSTRAINT", "Database constraint violation"
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler"""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An unexpected error occurred. Please try again later.",
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
