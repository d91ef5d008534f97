"""
Specifier uniqueness within a match.

Two kinds of check:

  ensure_unique_specifiers(requests)
      payload-only; the first repeated specifier (scanning in input order)
      raises ConflictError.  Used for match create, bulk create and
      odds-collection replacement.

  ensure_specifier_available(odds_repo, match_id, specifier, exclude_id=None)
  ensure_specifiers_available(odds_repo, match_id, specifiers)
      against persisted rows of the same match.  ``exclude_id`` lets an
      update keep its own specifier.

Specifiers are compared case-sensitively after stripping surrounding
whitespace.  Length and value bounds are not checked here; they belong to
request validation.
"""

import logging
from typing import Iterable, Optional

from matchodds.core.errors import ConflictError

logger = logging.getLogger(__name__)


def normalize_specifier(specifier: Optional[str]) -> Optional[str]:
    return specifier.strip() if specifier is not None else None


def ensure_unique_specifiers(requests: Optional[Iterable]) -> None:
    """Raise ConflictError on the first specifier repeated inside ``requests``."""
    if not requests:
        return

    seen = set()
    for req in requests:
        spec = normalize_specifier(req.specifier)
        if spec in seen:
            logger.warning("Duplicate specifier %r in request payload", spec)
            raise ConflictError(f"Duplicate odds specifier in request payload: {spec}")
        seen.add(spec)


def ensure_specifier_available(
    odds_repo,
    match_id: int,
    specifier: str,
    exclude_id: Optional[int] = None,
) -> None:
    """
    Raise ConflictError if another persisted odds row of ``match_id`` already
    carries ``specifier``.  With ``exclude_id`` set, that row is ignored.
    """
    spec = normalize_specifier(specifier)
    if exclude_id is None:
        taken = odds_repo.exists_by_match_id_and_specifier(match_id, spec)
    else:
        taken = odds_repo.exists_by_match_id_and_specifier_excluding_id(
            match_id, spec, exclude_id
        )
    if taken:
        logger.warning("Specifier %r already exists for match %s", spec, match_id)
        raise ConflictError(f"Odds specifier already exists for match {match_id}: {spec}")


def ensure_specifiers_available(odds_repo, match_id: int, specifiers: Iterable[str]) -> None:
    for spec in specifiers:
        ensure_specifier_available(odds_repo, match_id, spec)
