"""
verbosity.py - Adaptive response length.

Every returning user hears the tier stored on their record, and the stored
tier drops by one on each even-numbered use until it reaches the floor:

    use:   1  2  3  4  5  6  7 ...
    tier:  3  3  2  2  1  1  1 ...

`advance` only computes; persisting `next_state` is the caller's job.
"""

from typing import NamedTuple

from models import UserRecord

MAX_TIER = 3
MIN_TIER = 1


class Advance(NamedTuple):
    tier: int
    next_state: UserRecord


def advance(previous: UserRecord | None) -> Advance:
    """Return the tier to speak now and the record to store for next time."""
    if previous is None:
        return Advance(MAX_TIER, UserRecord(count=1, length=MAX_TIER))

    if previous.count < 1 or not MIN_TIER <= previous.length <= MAX_TIER:
        raise ValueError(
            f"user record out of range: count={previous.count}, length={previous.length}"
        )

    count = previous.count + 1
    length = previous.length
    # Decay is checked against the post-increment count.
    if count > 1 and count % 2 == 0 and length > MIN_TIER:
        length -= 1

    return Advance(previous.length, UserRecord(count=count, length=length))
