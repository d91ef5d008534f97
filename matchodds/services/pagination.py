"""
Read planner for paginated match listings.

Paginating a query that also eagerly joins the one-to-many ``odds``
collection applies LIMIT/OFFSET to the multiplied (match x odds) rows:
pages come back short or truncated and the total counts odds rows, not
matches.  So the with-odds path runs in two steps:

  1. page over ``matches.id`` alone (correct bounds and total)
  2. load exactly those matches with their odds joined, unpaginated

Step 2 is skipped when step 1 yields no ids.  The without-odds path is a
single plain page query.  Do not merge the two steps into one
paginated-and-joined query.
"""

import logging

from matchodds.core.pagination import PageRequest, PageResult

logger = logging.getLogger(__name__)


def plan_match_page(match_repo, page_request: PageRequest, include_odds: bool) -> PageResult:
    """Return a PageResult of Match entities (odds loaded when ``include_odds``)."""
    if not include_odds:
        return match_repo.find_page(page_request)

    id_page = match_repo.find_id_page(page_request)
    if not id_page.items:
        logger.debug(
            "Empty id page %d (size %d, total %d); skipping odds fetch",
            page_request.page, page_request.size, id_page.total,
        )
        return PageResult(items=[], total=id_page.total, request=page_request)

    matches = match_repo.find_with_odds_by_ids(id_page.items)
    return PageResult(items=matches, total=id_page.total, request=page_request)
