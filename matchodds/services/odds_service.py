"""
Odds operations scoped to an existing match.

Odds are always addressed through their match: an odds id that exists but
belongs to another match is reported as not found.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from matchodds.core.consistency import (
    ensure_specifier_available,
    ensure_specifiers_available,
    ensure_unique_specifiers,
    normalize_specifier,
)
from matchodds.core.errors import NotFoundError
from matchodds.core.pagination import PageRequest
from matchodds.mapper import to_odds_entity, to_odds_response
from matchodds.models import Match, MatchOdds, unit_of_work
from matchodds.repositories import MatchOddsRepository, MatchRepository
from matchodds.schemas import MatchOddsRequest, MatchOddsResponse, Page

logger = logging.getLogger(__name__)


class MatchOddsService:
    def __init__(self, db: Session):
        self.db = db
        self.matches = MatchRepository(db)
        self.odds = MatchOddsRepository(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_match_or_raise(self, match_id: int) -> Match:
        match = self.matches.find_by_id(match_id)
        if match is None:
            raise NotFoundError(f"Match not found: {match_id}")
        return match

    def _ensure_match_exists(self, match_id: int) -> None:
        if not self.matches.exists_by_id(match_id):
            raise NotFoundError(f"Match not found: {match_id}")

    def _get_odds_or_raise(self, match_id: int, odd_id: int) -> MatchOdds:
        odds = self.odds.find_by_id_and_match_id(odd_id, match_id)
        if odds is None:
            raise NotFoundError(f"Odds not found: {odd_id} for match {match_id}")
        return odds

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, match_id: int, req: MatchOddsRequest) -> MatchOddsResponse:
        match = self._get_match_or_raise(match_id)
        ensure_specifier_available(self.odds, match_id, req.specifier)

        with unit_of_work(self.db):
            odds = to_odds_entity(req)
            odds.match = match
            self.odds.add(odds)

        logger.info("Odds %d (%s=%s) created for match %d", odds.id, odds.specifier, odds.odd, match_id)
        return to_odds_response(odds)

    def create_bulk(
        self, match_id: int, reqs: Optional[Sequence[MatchOddsRequest]]
    ) -> List[MatchOddsResponse]:
        """
        Insert a batch of odds for one match, all-or-nothing.

        Every item is checked against the rest of the payload and against
        persisted rows before any row is added.
        """
        match = self._get_match_or_raise(match_id)
        if not reqs:
            return []

        ensure_unique_specifiers(reqs)
        ensure_specifiers_available(self.odds, match_id, [r.specifier for r in reqs])

        with unit_of_work(self.db):
            entities = []
            for req in reqs:
                odds = to_odds_entity(req)
                odds.match = match
                entities.append(odds)
            saved = self.odds.add_all(entities)
            self.odds.flush()

        logger.info("Bulk-created %d odds for match %d", len(saved), match_id)
        return [to_odds_response(o) for o in saved]

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, match_id: int, odd_id: int) -> MatchOddsResponse:
        return to_odds_response(self._get_odds_or_raise(match_id, odd_id))

    def list_by_match(self, match_id: int) -> List[MatchOddsResponse]:
        self._ensure_match_exists(match_id)
        return [to_odds_response(o) for o in self.odds.find_by_match_id(match_id)]

    def list_by_match_page(self, match_id: int, page_request: PageRequest) -> Page[MatchOddsResponse]:
        # Odds have no nested collection, so a single page query is safe here
        self._ensure_match_exists(match_id)
        result = self.odds.find_page_by_match_id(match_id, page_request)
        content = [to_odds_response(o) for o in result.items]
        return Page[MatchOddsResponse].build(content, result)

    # ------------------------------------------------------------------
    # Update / delete
    # ------------------------------------------------------------------

    def update(self, match_id: int, odd_id: int, req: MatchOddsRequest) -> MatchOddsResponse:
        """Full replacement of specifier and value.  Keeping the same specifier never conflicts."""
        odds = self._get_odds_or_raise(match_id, odd_id)

        new_spec = normalize_specifier(req.specifier)
        if new_spec != odds.specifier:
            ensure_specifier_available(self.odds, match_id, new_spec, exclude_id=odd_id)

        with unit_of_work(self.db):
            odds.specifier = new_spec
            odds.odd = req.odd

        logger.info("Odds %d of match %d updated (%s=%s)", odd_id, match_id, new_spec, req.odd)
        return to_odds_response(odds)

    def delete(self, match_id: int, odd_id: int) -> None:
        odds = self._get_odds_or_raise(match_id, odd_id)
        with unit_of_work(self.db):
            self.odds.delete(odds)
        logger.info("Odds %d of match %d deleted", odd_id, match_id)

    def delete_all(self, match_id: int) -> None:
        match = self._get_match_or_raise(match_id)
        with unit_of_work(self.db):
            removed = len(match.odds)
            # delete-orphan turns the clear into one DELETE per row
            match.odds.clear()
        logger.info("All %d odds of match %d deleted", removed, match_id)
