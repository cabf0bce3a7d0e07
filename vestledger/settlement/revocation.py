"""
Revocation Processor.

Authority-only, write-once. Sets revoked_at and from then on the
schedule's vested amount is frozen at its value as of revoked_at.
total_withdrawn and the vested-but-unclaimed balance are untouched.

revoked_at is never earlier than start_time. A revocation requested
before the schedule starts is recorded at start_time, which freezes
vesting at zero.
"""

import logging
from dataclasses import replace
from typing import Optional

from vestledger.core.exceptions import AlreadyRevoked, RecordNotFound, Unauthorized
from vestledger.core.models import VestingAuthority, VestingSchedule, is_instant
from vestledger.core.unlock import vested_amount
from vestledger.journal.emitter import EventJournal
from vestledger.journal.entry import RecordType
from vestledger.storage.store import RecordStore

logger = logging.getLogger(__name__)


class RevocationProcessor:

    def __init__(self, store: RecordStore, journal: Optional[EventJournal] = None):
        self.store   = store
        self.journal = journal

    def revoke(
        self,
        schedule_address: str,
        authority:        VestingAuthority,
        as_of:            int,
        caller:           str,
    ) -> VestingSchedule:
        if not is_instant(as_of):
            raise TypeError(f"as_of must be int seconds, got {type(as_of).__name__}")

        with self.store.locked(schedule_address):
            schedule = self.store.get_schedule(schedule_address)
            if schedule is None:
                raise RecordNotFound("No schedule at address", {"address": schedule_address[:16]})

            if caller != authority.owner:
                raise Unauthorized(
                    "Only the authority owner may revoke",
                    {"authority": authority.id},
                )
            if schedule.authority_ref != authority.address:
                raise Unauthorized(
                    "Schedule is not bound to this authority",
                    {"authority": authority.id},
                )
            if schedule.revoked_at is not None:
                raise AlreadyRevoked(
                    "Schedule has already been revoked",
                    {"revoked_at": schedule.revoked_at},
                )

            updated = replace(schedule, revoked_at=max(as_of, schedule.start_time))
            frozen  = vested_amount(updated, updated.revoked_at)

            if self.journal is not None:
                self.journal.emit(
                    RecordType.SCHEDULE_REVOKED,
                    {
                        "authority_id":     authority.id,
                        "schedule":         schedule.address,
                        "beneficiary":      schedule.beneficiary,
                        "requested_at":     as_of,
                        "revoked_at":       updated.revoked_at,
                        "vested_amount":    frozen,
                        "unclaimed_amount": schedule.total_amount - schedule.total_withdrawn,
                    },
                    actor=caller,
                )
            self.store.replace_schedule(updated)

        logger.info(
            "Schedule for %s under %r revoked at %d; vesting frozen at %d/%d",
            schedule.beneficiary, authority.id, updated.revoked_at,
            frozen, schedule.total_amount,
        )
        return updated
