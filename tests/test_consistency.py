"""Tests for consistency.py specifier-uniqueness checks."""

import pytest
from decimal import Decimal
from unittest.mock import MagicMock

from matchodds.core.consistency import (
    ensure_specifier_available,
    ensure_specifiers_available,
    ensure_unique_specifiers,
    normalize_specifier,
)
from matchodds.core.errors import ConflictError
from matchodds.schemas import MatchOddsRequest


def _reqs(*specifiers):
    return [MatchOddsRequest(specifier=s, odd=Decimal("1.5")) for s in specifiers]


def _repo(exists=False, exists_excluding=False):
    repo = MagicMock()
    repo.exists_by_match_id_and_specifier.return_value = exists
    repo.exists_by_match_id_and_specifier_excluding_id.return_value = exists_excluding
    return repo


# ---------------------------------------------------------------------------
# normalize_specifier
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("raw, expected", [
    ("X",      "X"),
    ("  X ",   "X"),
    ("\t1\n",  "1"),
    ("Over 2.5", "Over 2.5"),   # inner whitespace kept
    (None,     None),
])
def test_normalize_specifier(raw, expected):
    assert normalize_specifier(raw) == expected


# ---------------------------------------------------------------------------
# Payload uniqueness
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("payload", [None, []])
def test_empty_payload_passes(payload):
    ensure_unique_specifiers(payload)


def test_distinct_specifiers_pass():
    ensure_unique_specifiers(_reqs("1", "X", "2"))


def test_duplicate_specifier_raises():
    with pytest.raises(ConflictError) as exc_info:
        ensure_unique_specifiers(_reqs("1", "X", "1"))
    assert exc_info.value.message == "Duplicate odds specifier in request payload: 1"


def test_first_duplicate_in_input_order_wins():
    # "X" repeats at index 3, "1" only at index 4
    with pytest.raises(ConflictError, match="payload: X$"):
        ensure_unique_specifiers(_reqs("1", "X", "2", "X", "1"))


def test_duplicate_detected_after_trim():
    with pytest.raises(ConflictError, match="payload: X$"):
        ensure_unique_specifiers(_reqs("X", " X "))


def test_specifiers_are_case_sensitive():
    ensure_unique_specifiers(_reqs("x", "X"))


# ---------------------------------------------------------------------------
# Persisted collisions
# ---------------------------------------------------------------------------

def test_available_specifier_passes():
    repo = _repo(exists=False)
    ensure_specifier_available(repo, 1, "X")
    repo.exists_by_match_id_and_specifier.assert_called_once_with(1, "X")


def test_taken_specifier_raises():
    repo = _repo(exists=True)
    with pytest.raises(ConflictError) as exc_info:
        ensure_specifier_available(repo, 7, "X")
    assert exc_info.value.message == "Odds specifier already exists for match 7: X"


def test_lookup_uses_trimmed_specifier():
    repo = _repo(exists=False)
    ensure_specifier_available(repo, 1, "  2 ")
    repo.exists_by_match_id_and_specifier.assert_called_once_with(1, "2")


def test_exclude_id_uses_excluding_lookup():
    repo = _repo(exists=True, exists_excluding=False)
    # The plain lookup would conflict; the excluding one must be used instead
    ensure_specifier_available(repo, 1, "X", exclude_id=10)
    repo.exists_by_match_id_and_specifier_excluding_id.assert_called_once_with(1, "X", 10)
    repo.exists_by_match_id_and_specifier.assert_not_called()


def test_exclude_id_still_detects_other_rows():
    repo = _repo(exists_excluding=True)
    with pytest.raises(ConflictError):
        ensure_specifier_available(repo, 1, "1", exclude_id=10)


def test_batch_check_stops_at_first_taken():
    repo = MagicMock()
    repo.exists_by_match_id_and_specifier.side_effect = [False, True, False]
    with pytest.raises(ConflictError, match="match 3: X$"):
        ensure_specifiers_available(repo, 3, ["1", "X", "2"])
    assert repo.exists_by_match_id_and_specifier.call_count == 2
