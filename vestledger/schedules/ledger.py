"""
Vesting Schedule Ledger.

PROTOCOL INVARIANT: validation order is fixed, each step its own error.
    1. Unauthorized      caller != authority.owner
    2. InvalidAmount     total_amount not in (0, MAX_AMOUNT]
    3. InvalidTimeRange  end_time <= start_time
    4. InvalidCliff      cliff_time outside [start_time, end_time]
    5. AlreadyExists     a schedule lives at (beneficiary, authority)

Treasury funding is NOT checked here. Schedules may be created before
funds arrive; claims fail with InsufficientFunds until they do.
"""

import logging
from typing import List, Optional

from vestledger.core.address import DEFAULT_NAMESPACE, schedule_address
from vestledger.core.exceptions import (
    AlreadyExists,
    InvalidAmount,
    InvalidCliff,
    InvalidId,
    InvalidTimeRange,
    RecordNotFound,
    Unauthorized,
)
from vestledger.core.models import VestingAuthority, VestingSchedule, is_amount, is_instant
from vestledger.journal.emitter import EventJournal
from vestledger.journal.entry import RecordType
from vestledger.storage.store import RecordStore

logger = logging.getLogger(__name__)


class ScheduleLedger:

    def __init__(
        self,
        store:     RecordStore,
        namespace: str = DEFAULT_NAMESPACE,
        journal:   Optional[EventJournal] = None,
    ):
        self.store     = store
        self.namespace = namespace
        self.journal   = journal

    def create(
        self,
        authority:    VestingAuthority,
        caller:       str,
        beneficiary:  str,
        start_time:   int,
        end_time:     int,
        cliff_time:   int,
        total_amount: int,
    ) -> VestingSchedule:
        if caller != authority.owner:
            raise Unauthorized(
                "Only the authority owner may create schedules",
                {"authority": authority.id},
            )

        if not is_amount(total_amount) or total_amount == 0:
            raise InvalidAmount(
                "total_amount must be a positive 64-bit integer",
                {"total_amount": total_amount},
            )

        if not all(is_instant(t) for t in (start_time, end_time, cliff_time)):
            raise InvalidTimeRange("start, end and cliff must be integer seconds")
        if end_time <= start_time:
            raise InvalidTimeRange(
                "end_time must be after start_time",
                {"start_time": start_time, "end_time": end_time},
            )

        if cliff_time < start_time or cliff_time > end_time:
            raise InvalidCliff(
                "cliff_time must fall within [start_time, end_time]",
                {"cliff_time": cliff_time, "start_time": start_time, "end_time": end_time},
            )

        if not isinstance(beneficiary, str) or not beneficiary:
            raise InvalidId("beneficiary must be a non-empty string", {"field": "beneficiary"})

        address = schedule_address(beneficiary, authority.address, self.namespace)

        with self.store.locked(address):
            if self.store.get_schedule(address) is not None:
                raise AlreadyExists(
                    "Schedule already exists for this beneficiary",
                    {"authority": authority.id, "beneficiary": beneficiary},
                )

            record = VestingSchedule(
                address=       address,
                authority_ref= authority.address,
                beneficiary=   beneficiary,
                start_time=    start_time,
                cliff_time=    cliff_time,
                end_time=      end_time,
                total_amount=  total_amount,
            )

            if self.journal is not None:
                payload = record.to_dict()
                payload["authority_id"] = authority.id
                self.journal.emit(RecordType.SCHEDULE_CREATED, payload, actor=caller)
            self.store.insert_schedule(record)

        logger.info(
            "Schedule created under %r for %s: %d units over [%d, %d], cliff %d",
            authority.id, beneficiary, total_amount, start_time, end_time, cliff_time,
        )
        return record

    def get(self, authority: VestingAuthority, beneficiary: str) -> VestingSchedule:
        if not isinstance(beneficiary, str) or not beneficiary:
            raise InvalidId("beneficiary must be a non-empty string", {"field": "beneficiary"})
        record = self.store.get_schedule(
            schedule_address(beneficiary, authority.address, self.namespace)
        )
        if record is None:
            raise RecordNotFound(
                "No schedule for this beneficiary",
                {"authority": authority.id, "beneficiary": beneficiary},
            )
        return record

    def for_authority(self, authority: VestingAuthority) -> List[VestingSchedule]:
        return sorted(
            (s for s in self.store.schedules() if s.authority_ref == authority.address),
            key=lambda s: s.beneficiary,
        )

    def for_beneficiary(self, beneficiary: str) -> List[VestingSchedule]:
        return sorted(
            (s for s in self.store.schedules() if s.beneficiary == beneficiary),
            key=lambda s: s.authority_ref,
        )
