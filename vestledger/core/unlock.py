"""
vestledger/core/unlock.py

Unlock Calculator — pure, integer-only.

    cutoff = min(as_of, end_time, revoked_at or +inf)
    vested = 0                                              if cutoff <= start_time
    vested = floor(total * (cutoff - start) / (end - start))  otherwise

The cliff does NOT appear here. It gates when a claim may execute
(see vestledger.settlement.claims), not how much has accrued.

No floats anywhere: the same inputs give the same amount bit-for-bit
in every implementation.
"""

from typing import Optional

from vestledger.core.models import VestingSchedule


def vesting_cutoff(schedule: VestingSchedule, as_of: int) -> int:
    """The instant accrual is measured up to."""
    cutoff = min(as_of, schedule.end_time)
    if schedule.revoked_at is not None:
        cutoff = min(cutoff, schedule.revoked_at)
    return cutoff


def vested_amount(schedule: VestingSchedule, as_of: int) -> int:
    """Units unlocked by linear accrual as of `as_of`, capped at revocation."""
    cutoff = vesting_cutoff(schedule, as_of)
    if cutoff <= schedule.start_time:
        return 0

    elapsed    = cutoff - schedule.start_time
    total_span = schedule.end_time - schedule.start_time
    vested     = (schedule.total_amount * elapsed) // total_span

    return max(0, min(vested, schedule.total_amount))


def claimable_amount(schedule: VestingSchedule, as_of: int) -> int:
    """Vested but not yet withdrawn. Ignores the cliff gate."""
    return max(0, vested_amount(schedule, as_of) - schedule.total_withdrawn)


def final_vested_amount(schedule: VestingSchedule) -> Optional[int]:
    """
    The amount the schedule will ever vest, if it is already fixed.

    Fixed for revoked schedules (frozen at revoked_at). None for active
    ones, whose final amount is total_amount unless revoked later.
    """
    if schedule.revoked_at is None:
        return None
    return vested_amount(schedule, schedule.revoked_at)
