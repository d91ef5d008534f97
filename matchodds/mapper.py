"""
Translation between request/response schemas and ORM entities.

Pure functions: nothing here touches the session or enforces invariants.
"""

from typing import List, Optional

from matchodds.core.consistency import normalize_specifier
from matchodds.models import Match, MatchOdds
from matchodds.schemas import MatchOddsRequest, MatchOddsResponse, MatchRequest, MatchResponse


def to_match_entity(req: MatchRequest) -> Match:
    """New, unsaved Match from a request.  Odds are not attached."""
    return Match(
        description=req.description,
        match_date=req.match_date,
        match_time=req.match_time,
        team_a=req.team_a,
        team_b=req.team_b,
        sport=req.sport,
    )


def update_match_entity(match: Match, req: MatchRequest) -> None:
    """Full replacement of the match's own fields; the odds collection is left alone."""
    match.description = req.description
    match.match_date = req.match_date
    match.match_time = req.match_time
    match.team_a = req.team_a
    match.team_b = req.team_b
    match.sport = req.sport


def to_odds_entity(req: MatchOddsRequest) -> MatchOdds:
    """New, unsaved odds row; the caller sets the owning match."""
    return MatchOdds(specifier=normalize_specifier(req.specifier), odd=req.odd)


def to_odds_response(odds: MatchOdds) -> MatchOddsResponse:
    match_id = odds.match_id if odds.match_id is not None else odds.match.id
    return MatchOddsResponse(
        id=odds.id,
        match_id=match_id,
        specifier=odds.specifier,
        odd=odds.odd,
    )


def _by_id_nulls_last(odds: MatchOdds):
    return (odds.id is None, odds.id or 0)


def to_match_response(match: Match, include_odds: bool) -> MatchResponse:
    """
    Map a match to its response.

    With ``include_odds`` False the ``odds`` field stays None ("not asked
    for"), which clients can tell apart from ``[]`` ("no odds").
    """
    odds: Optional[List[MatchOddsResponse]] = None
    if include_odds:
        odds = [to_odds_response(o) for o in sorted(match.odds, key=_by_id_nulls_last)]

    return MatchResponse(
        id=match.id,
        description=match.description,
        match_date=match.match_date,
        match_time=match.match_time,
        team_a=match.team_a,
        team_b=match.team_b,
        sport=match.sport,
        odds=odds,
    )
