import os
import sys

import pytest
from pydantic import ValidationError

# Ensure the project root is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from models import UserRecord
from verbosity import MAX_TIER, MIN_TIER, advance


def _simulate(uses: int) -> list[int]:
    tiers = []
    state = None
    for _ in range(uses):
        tier, state = advance(state)
        tiers.append(tier)
    return tiers


# ── First contact ─────────────────────────────────────────────────────────────

def test_first_invocation_starts_at_full_verbosity():
    tier, next_state = advance(None)
    assert tier == 3
    assert next_state == UserRecord(count=1, length=3)


# ── Scenarios ─────────────────────────────────────────────────────────────────

def test_first_reuse_decays_on_even_count():
    tier, next_state = advance(UserRecord(count=1, length=3))
    assert tier == 3
    assert next_state == UserRecord(count=2, length=2)


def test_odd_count_does_not_decay():
    tier, next_state = advance(UserRecord(count=4, length=2))
    assert tier == 2
    assert next_state == UserRecord(count=5, length=2)


def test_floored_length_stays_at_one_on_even_count():
    tier, next_state = advance(UserRecord(count=5, length=1))
    assert tier == 1
    assert next_state == UserRecord(count=6, length=1)


# ── Properties ────────────────────────────────────────────────────────────────

def test_returning_user_tier_sequence():
    assert _simulate(12) == [3, 3, 2, 2, 1, 1, 1, 1, 1, 1, 1, 1]


def test_tiers_never_increase():
    tiers = _simulate(50)
    assert all(a >= b for a, b in zip(tiers, tiers[1:]))


@pytest.mark.parametrize("count", range(1, 40))
@pytest.mark.parametrize("length", [1, 2, 3])
def test_next_state_stays_in_range_and_counts_by_one(count, length):
    tier, next_state = advance(UserRecord(count=count, length=length))
    assert tier == length
    assert MIN_TIER <= next_state.length <= MAX_TIER
    assert next_state.count == count + 1
    assert length - 1 <= next_state.length <= length


@pytest.mark.parametrize("count", [1, 2, 3, 10, 11, 1000])
def test_length_one_is_never_changed(count):
    _, next_state = advance(UserRecord(count=count, length=1))
    assert next_state.length == 1


# ── Out-of-domain input ───────────────────────────────────────────────────────

@pytest.mark.parametrize("fields", [
    {"count": 0, "length": 3},
    {"count": -1, "length": 2},
    {"count": 1, "length": 0},
    {"count": 1, "length": 4},
])
def test_user_record_rejects_out_of_range_values(fields):
    with pytest.raises(ValidationError):
        UserRecord(**fields)


def test_advance_rejects_unvalidated_out_of_range_record():
    bogus = UserRecord.model_construct(count=3, length=7)
    with pytest.raises(ValueError):
        advance(bogus)
