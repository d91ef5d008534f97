"""
Query layer over the SQLAlchemy session.

Both repositories take a Session and never commit; the services own the
unit of work.  Sort properties arrive already validated by
:func:`matchodds.core.pagination.parse_sort` and are mapped onto columns here.
"""

import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from matchodds.core.pagination import PageRequest, PageResult
from matchodds.models import Match, MatchOdds

logger = logging.getLogger(__name__)

MATCH_SORT_COLUMNS: Dict[str, object] = {
    "id": Match.id,
    "description": Match.description,
    "match_date": Match.match_date,
    "match_time": Match.match_time,
    "team_a": Match.team_a,
    "team_b": Match.team_b,
    "sport": Match.sport,
}

ODDS_SORT_COLUMNS: Dict[str, object] = {
    "id": MatchOdds.id,
    "specifier": MatchOdds.specifier,
    "odd": MatchOdds.odd,
}


def _order_by(columns: Dict[str, object], page_request: PageRequest) -> list:
    return [
        columns[o.prop].desc() if o.descending else columns[o.prop].asc()
        for o in page_request.orders
    ]


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------

class MatchRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, match: Match) -> Match:
        self.db.add(match)
        return match

    def add_all(self, matches: Sequence[Match]) -> List[Match]:
        self.db.add_all(matches)
        return list(matches)

    def find_by_id(self, match_id: int) -> Optional[Match]:
        return self.db.query(Match).filter(Match.id == match_id).first()

    def find_by_id_with_odds(self, match_id: int) -> Optional[Match]:
        return (
            self.db.query(Match)
            .options(joinedload(Match.odds))
            .filter(Match.id == match_id)
            .first()
        )

    def exists_by_id(self, match_id: int) -> bool:
        return self.db.query(
            self.db.query(Match.id).filter(Match.id == match_id).exists()
        ).scalar()

    def find_all(self) -> List[Match]:
        return self.db.query(Match).order_by(Match.id.asc()).all()

    def find_all_with_odds(self) -> List[Match]:
        # Legacy Query de-duplicates the parent rows of a joined collection
        return (
            self.db.query(Match)
            .options(joinedload(Match.odds))
            .order_by(Match.id.asc())
            .all()
        )

    def count(self) -> int:
        return self.db.query(func.count(Match.id)).scalar() or 0

    def find_page(self, page_request: PageRequest) -> PageResult:
        """Plain page of matches, no collection join."""
        rows = (
            self.db.query(Match)
            .order_by(*_order_by(MATCH_SORT_COLUMNS, page_request))
            .offset(page_request.offset)
            .limit(page_request.size)
            .all()
        )
        return PageResult(items=rows, total=self.count(), request=page_request)

    def find_id_page(self, page_request: PageRequest) -> PageResult:
        """Page of match ids only; count and bounds are unaffected by odds rows."""
        ids = [
            row[0]
            for row in self.db.query(Match.id)
            .order_by(*_order_by(MATCH_SORT_COLUMNS, page_request))
            .offset(page_request.offset)
            .limit(page_request.size)
            .all()
        ]
        return PageResult(items=ids, total=self.count(), request=page_request)

    def find_with_odds_by_ids(self, ids: Sequence[int]) -> List[Match]:
        """Matches for exactly ``ids`` with odds eagerly joined, in ``ids`` order."""
        if not ids:
            return []
        rows = (
            self.db.query(Match)
            .options(joinedload(Match.odds))
            .filter(Match.id.in_(list(ids)))
            .all()
        )
        by_id = {m.id: m for m in rows}
        return [by_id[i] for i in ids if i in by_id]

    def delete(self, match: Match) -> None:
        self.db.delete(match)


# ---------------------------------------------------------------------------
# Odds
# ---------------------------------------------------------------------------

class MatchOddsRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, odds: MatchOdds) -> MatchOdds:
        self.db.add(odds)
        return odds

    def add_all(self, odds: Sequence[MatchOdds]) -> List[MatchOdds]:
        self.db.add_all(odds)
        return list(odds)

    def flush(self) -> None:
        """Push pending writes so constraint violations surface now."""
        self.db.flush()

    def find_by_match_id(self, match_id: int) -> List[MatchOdds]:
        return (
            self.db.query(MatchOdds)
            .filter(MatchOdds.match_id == match_id)
            .order_by(MatchOdds.id.asc())
            .all()
        )

    def find_page_by_match_id(self, match_id: int, page_request: PageRequest) -> PageResult:
        q = self.db.query(MatchOdds).filter(MatchOdds.match_id == match_id)
        total = q.with_entities(func.count(MatchOdds.id)).scalar() or 0
        rows = (
            q.order_by(*_order_by(ODDS_SORT_COLUMNS, page_request))
            .offset(page_request.offset)
            .limit(page_request.size)
            .all()
        )
        return PageResult(items=rows, total=total, request=page_request)

    def find_by_id_and_match_id(self, odd_id: int, match_id: int) -> Optional[MatchOdds]:
        return (
            self.db.query(MatchOdds)
            .filter(MatchOdds.id == odd_id, MatchOdds.match_id == match_id)
            .first()
        )

    def find_by_match_id_and_specifier(self, match_id: int, specifier: str) -> Optional[MatchOdds]:
        return (
            self.db.query(MatchOdds)
            .filter(MatchOdds.match_id == match_id, MatchOdds.specifier == specifier)
            .first()
        )

    def exists_by_match_id_and_specifier(self, match_id: int, specifier: str) -> bool:
        q = self.db.query(MatchOdds.id).filter(
            MatchOdds.match_id == match_id,
            MatchOdds.specifier == specifier,
        )
        return self.db.query(q.exists()).scalar()

    def exists_by_match_id_and_specifier_excluding_id(
        self, match_id: int, specifier: str, odd_id: int
    ) -> bool:
        q = self.db.query(MatchOdds.id).filter(
            MatchOdds.match_id == match_id,
            MatchOdds.specifier == specifier,
            MatchOdds.id != odd_id,
        )
        return self.db.query(q.exists()).scalar()

    def delete(self, odds: MatchOdds) -> None:
        self.db.delete(odds)
