"""
Match aggregate operations.

A Match and its odds are one consistency boundary: every mutation below
either commits the match fields and all odds inserts/deletes together, or
nothing.  Specifier checks run before anything is added to the session.

Public API (all on MatchService):
  create(req)                    → MatchResponse
  create_bulk(reqs)              → List[MatchResponse]
  get(match_id)                  → MatchResponse
  list(include_odds)             → List[MatchResponse]
  list_page(include_odds, page)  → Page[MatchResponse]
  update(match_id, req)          → MatchResponse
  delete(match_id)               → None
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from matchodds.core.consistency import ensure_unique_specifiers
from matchodds.core.errors import NotFoundError
from matchodds.core.pagination import PageRequest
from matchodds.mapper import (
    to_match_entity,
    to_match_response,
    to_odds_entity,
    update_match_entity,
)
from matchodds.models import Match, unit_of_work
from matchodds.repositories import MatchRepository
from matchodds.schemas import MatchRequest, MatchResponse, Page
from matchodds.services.pagination import plan_match_page

logger = logging.getLogger(__name__)


def _build_aggregate(req: MatchRequest) -> Match:
    match = to_match_entity(req)
    for odds_req in req.odds or []:
        # Appending sets the odds -> match back-reference
        match.odds.append(to_odds_entity(odds_req))
    return match


class MatchService:
    def __init__(self, db: Session):
        self.db = db
        self.matches = MatchRepository(db)

    def _get_or_raise(self, match_id: int) -> Match:
        match = self.matches.find_by_id(match_id)
        if match is None:
            raise NotFoundError(f"Match not found: {match_id}")
        return match

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, req: MatchRequest) -> MatchResponse:
        ensure_unique_specifiers(req.odds)

        with unit_of_work(self.db):
            match = self.matches.add(_build_aggregate(req))

        logger.info("Match %d created (%s) with %d odds", match.id, match.description, len(match.odds))
        return to_match_response(match, include_odds=True)

    def create_bulk(self, reqs: Optional[Sequence[MatchRequest]]) -> List[MatchResponse]:
        """All-or-nothing: one bad item keeps every sibling out of the database."""
        if not reqs:
            return []

        for req in reqs:
            ensure_unique_specifiers(req.odds)

        with unit_of_work(self.db):
            saved = self.matches.add_all([_build_aggregate(r) for r in reqs])

        logger.info("Bulk-created %d matches", len(saved))
        return [to_match_response(m, include_odds=True) for m in saved]

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, match_id: int) -> MatchResponse:
        match = self.matches.find_by_id_with_odds(match_id)
        if match is None:
            raise NotFoundError(f"Match not found: {match_id}")
        return to_match_response(match, include_odds=True)

    def list(self, include_odds: bool = False) -> List[MatchResponse]:
        """Unpaginated listing.  Use list_page for anything client-facing."""
        if include_odds:
            matches = self.matches.find_all_with_odds()
        else:
            matches = self.matches.find_all()
        return [to_match_response(m, include_odds) for m in matches]

    def list_page(self, include_odds: bool, page_request: PageRequest) -> Page[MatchResponse]:
        result = plan_match_page(self.matches, page_request, include_odds)
        content = [to_match_response(m, include_odds) for m in result.items]
        return Page[MatchResponse].build(content, result)

    # ------------------------------------------------------------------
    # Update / delete
    # ------------------------------------------------------------------

    def update(self, match_id: int, req: MatchRequest) -> MatchResponse:
        """
        Full replacement of the match fields.

        ``req.odds is None`` leaves the odds collection untouched; any list
        (including ``[]``) deletes every existing odds row and inserts the
        new ones.
        """
        match = self._get_or_raise(match_id)
        if req.odds is not None:
            ensure_unique_specifiers(req.odds)

        with unit_of_work(self.db):
            update_match_entity(match, req)

            if req.odds is not None:
                removed = len(match.odds)
                match.odds.clear()
                # Old rows must be gone before re-inserting a reused specifier
                self.db.flush()
                for odds_req in req.odds:
                    match.odds.append(to_odds_entity(odds_req))
                logger.info(
                    "Match %d odds replaced: %d removed, %d added",
                    match_id, removed, len(req.odds),
                )

        logger.info("Match %d updated", match_id)
        return to_match_response(match, include_odds=True)

    def delete(self, match_id: int) -> None:
        match = self._get_or_raise(match_id)
        with unit_of_work(self.db):
            # cascade="all, delete-orphan" issues a DELETE per owned odds row
            self.matches.delete(match)
        logger.info("Match %d deleted", match_id)
