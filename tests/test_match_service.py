"""Tests for MatchService against an in-memory database."""

import pytest
from datetime import date, time
from decimal import Decimal

from matchodds.core.errors import ConflictError, NotFoundError
from matchodds.models import Match, MatchOdds, Sport
from matchodds.schemas import MatchRequest
from matchodds.services.match_service import MatchService


def _request(odds=None, **overrides):
    fields = dict(
        description="OSFP-PAO",
        match_date=date(2021, 3, 31),
        match_time=time(12, 0),
        team_a="OSFP",
        team_b="PAO",
        sport=1,
        odds=odds,
    )
    fields.update(overrides)
    return MatchRequest(**fields)


def _odds(*pairs):
    return [{"specifier": s, "odd": v} for s, v in pairs]


@pytest.fixture
def service(db):
    return MatchService(db)


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------

def test_create_without_odds(service):
    resp = service.create(_request())
    assert resp.id is not None
    assert resp.sport is Sport.FOOTBALL
    assert resp.odds == []


def test_create_with_odds_returns_them_by_id(service, db):
    resp = service.create(_request(odds=_odds(("1", "1.20"), ("X", "3.00"))))

    assert [o.specifier for o in resp.odds] == ["1", "X"]
    assert resp.odds[0].id < resp.odds[1].id
    assert all(o.match_id == resp.id for o in resp.odds)
    assert resp.odds[0].odd == Decimal("1.20")
    assert db.query(MatchOdds).count() == 2


def test_create_trims_specifiers(service):
    resp = service.create(_request(odds=_odds((" X ", "3.00"))))
    assert resp.odds[0].specifier == "X"


def test_create_duplicate_specifier_persists_nothing(service, db):
    with pytest.raises(ConflictError, match="Duplicate odds specifier in request payload: 1"):
        service.create(_request(odds=_odds(("1", "1.20"), ("X", "3.00"), ("1", "1.30"))))

    assert db.query(Match).count() == 0
    assert db.query(MatchOdds).count() == 0


# ---------------------------------------------------------------------------
# create_bulk
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("payload", [None, []])
def test_create_bulk_empty(service, db, payload):
    assert service.create_bulk(payload) == []
    assert db.query(Match).count() == 0


def test_create_bulk_persists_all(service, db):
    result = service.create_bulk([
        _request(description="A-B", odds=_odds(("1", "1.5"))),
        _request(description="C-D", odds=_odds(("1", "2.5"), ("2", "2.0"))),
    ])

    assert [m.description for m in result] == ["A-B", "C-D"]
    # The same specifier under sibling matches is fine
    assert db.query(MatchOdds).filter(MatchOdds.specifier == "1").count() == 2


def test_create_bulk_is_all_or_nothing(service, db):
    with pytest.raises(ConflictError, match="payload: X$"):
        service.create_bulk([
            _request(description="ok", odds=_odds(("1", "1.5"))),
            _request(description="bad", odds=_odds(("X", "3.0"), ("X", "3.1"))),
        ])

    assert db.query(Match).count() == 0
    assert db.query(MatchOdds).count() == 0


# ---------------------------------------------------------------------------
# get / list
# ---------------------------------------------------------------------------

def test_get_includes_odds(service):
    created = service.create(_request(odds=_odds(("1", "1.20"), ("X", "3.00"))))
    fetched = service.get(created.id)
    assert fetched == created


def test_get_missing(service):
    with pytest.raises(NotFoundError, match="Match not found: 404"):
        service.get(404)


def test_list_with_and_without_odds(service):
    service.create(_request(description="A", odds=_odds(("1", "1.5"), ("2", "2.5"))))
    service.create(_request(description="B"))

    plain = service.list(include_odds=False)
    full = service.list(include_odds=True)

    assert [m.description for m in plain] == ["A", "B"]
    assert all(m.odds is None for m in plain)
    assert [len(m.odds) for m in full] == [2, 0]


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------

def test_update_without_odds_keeps_collection(service, db):
    created = service.create(_request(odds=_odds(("1", "1.20"), ("X", "3.00"))))

    updated = service.update(created.id, _request(description="OSFP-AEK", team_b="AEK", sport=2))

    assert updated.description == "OSFP-AEK"
    assert updated.team_b == "AEK"
    assert updated.sport is Sport.BASKETBALL
    assert [o.id for o in updated.odds] == [o.id for o in created.odds]


def test_update_with_empty_odds_clears_collection(service, db):
    created = service.create(_request(odds=_odds(("1", "1.20"), ("X", "3.00"))))

    updated = service.update(created.id, _request(odds=[]))

    assert updated.odds == []
    assert db.query(MatchOdds).count() == 0


def test_update_replaces_collection(service, db):
    created = service.create(_request(odds=_odds(("1", "1.20"), ("X", "3.00"))))
    old_ids = {o.id for o in created.odds}

    updated = service.update(created.id, _request(odds=_odds(("1", "2.0"))))

    assert len(updated.odds) == 1
    assert updated.odds[0].specifier == "1"
    assert updated.odds[0].odd == Decimal("2.0")
    assert db.query(MatchOdds).filter(MatchOdds.specifier == "X").count() == 0
    assert db.query(MatchOdds).filter(MatchOdds.id.in_(old_ids)).count() == 0


def test_update_duplicate_odds_leaves_match_unchanged(service, db):
    created = service.create(_request(odds=_odds(("1", "1.20"))))

    with pytest.raises(ConflictError):
        service.update(created.id, _request(description="changed", odds=_odds(("2", "2.0"), ("2", "2.1"))))

    db.expire_all()
    assert service.get(created.id) == created


def test_update_missing(service):
    with pytest.raises(NotFoundError, match="Match not found: 9"):
        service.update(9, _request())


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------

def test_delete_cascades_to_odds(service, db):
    keep = service.create(_request(description="keep", odds=_odds(("1", "1.5"))))
    gone = service.create(_request(description="gone", odds=_odds(("1", "1.5"), ("X", "3.0"))))

    service.delete(gone.id)

    assert db.query(MatchOdds).filter(MatchOdds.match_id == gone.id).count() == 0
    assert db.query(MatchOdds).filter(MatchOdds.match_id == keep.id).count() == 1
    with pytest.raises(NotFoundError):
        service.get(gone.id)


def test_delete_missing(service):
    with pytest.raises(NotFoundError, match="Match not found: 3"):
        service.delete(3)


def test_deleted_match_id_is_not_reused(service):
    old = service.create(_request(description="old"))
    service.delete(old.id)

    new = service.create(_request(description="new"))

    assert new.id != old.id
    with pytest.raises(NotFoundError, match=f"Match not found: {old.id}"):
        service.get(old.id)
