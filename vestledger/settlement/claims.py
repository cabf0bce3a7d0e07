"""
Claim Processor.

Preconditions, checked in this order against the record as it stands
under the schedule lock (never against a caller's stale copy):

    Unauthorized          caller != schedule.beneficiary,
                          or the schedule is not bound to this authority
    ClaimNotYetAvailable  as_of < cliff_time
    NothingToClaim        vested(as_of) <= total_withdrawn

Effect, all-or-nothing:
    1. bank.transfer(treasury → beneficiary, claimable)   may raise InsufficientFunds
    2. journal.emit(tokens_claimed)                       on failure, transfer is reversed
    3. store.replace_schedule(total_withdrawn += claimable)

Revocation does not block claims. Whatever vested before revoked_at
stays claimable.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from vestledger.core.exceptions import (
    ClaimNotYetAvailable,
    NothingToClaim,
    RecordNotFound,
    Unauthorized,
)
from vestledger.core.models import TransferInstruction, VestingAuthority, VestingSchedule, is_instant
from vestledger.core.unlock import vested_amount
from vestledger.journal.emitter import EventJournal
from vestledger.journal.entry import RecordType
from vestledger.storage.store import RecordStore
from vestledger.treasury.bank import AssetBank

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaimReceipt:
    amount:     int
    claimed_at: int
    schedule:   VestingSchedule
    transfer:   TransferInstruction

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount":     self.amount,
            "claimed_at": self.claimed_at,
            "schedule":   self.schedule.to_dict(),
            "transfer":   self.transfer.to_dict(),
        }


class ClaimProcessor:

    def __init__(
        self,
        store:   RecordStore,
        bank:    AssetBank,
        journal: Optional[EventJournal] = None,
    ):
        self.store   = store
        self.bank    = bank
        self.journal = journal

    def claim(
        self,
        schedule_address: str,
        authority:        VestingAuthority,
        as_of:            int,
        caller:           str,
    ) -> ClaimReceipt:
        if not is_instant(as_of):
            raise TypeError(f"as_of must be int seconds, got {type(as_of).__name__}")

        with self.store.locked(schedule_address):
            schedule = self.store.get_schedule(schedule_address)
            if schedule is None:
                raise RecordNotFound("No schedule at address", {"address": schedule_address[:16]})

            if caller != schedule.beneficiary:
                raise Unauthorized(
                    "Only the beneficiary may claim",
                    {"beneficiary": schedule.beneficiary},
                )
            if schedule.authority_ref != authority.address:
                raise Unauthorized(
                    "Schedule is not bound to this authority",
                    {"authority": authority.id},
                )

            if as_of < schedule.cliff_time:
                raise ClaimNotYetAvailable(
                    "Claim not available before the cliff",
                    {"as_of": as_of, "cliff_time": schedule.cliff_time},
                )

            vested = vested_amount(schedule, as_of)
            if vested <= schedule.total_withdrawn:
                raise NothingToClaim(
                    "No vested tokens left to claim",
                    {"vested": vested, "total_withdrawn": schedule.total_withdrawn},
                )

            claimable = vested - schedule.total_withdrawn
            transfer  = TransferInstruction(
                source=      authority.treasury_address,
                destination= schedule.beneficiary,
                asset_id=    authority.asset_id,
                amount=      claimable,
            )
            updated = replace(schedule, total_withdrawn=vested)

            self.bank.transfer(transfer)
            try:
                if self.journal is not None:
                    self.journal.emit(
                        RecordType.TOKENS_CLAIMED,
                        {
                            "authority_id":    authority.id,
                            "schedule":        schedule.address,
                            "beneficiary":     schedule.beneficiary,
                            "amount":          claimable,
                            "claimed_at":      as_of,
                            "total_withdrawn": updated.total_withdrawn,
                            "transfer":        transfer.to_dict(),
                        },
                        actor=caller,
                    )
            except Exception:
                self.bank.transfer(transfer.reversed())
                raise
            self.store.replace_schedule(updated)

        logger.info(
            "Beneficiary %s claimed %d %s under %r (withdrawn %d/%d)",
            caller, claimable, authority.asset_id, authority.id,
            updated.total_withdrawn, updated.total_amount,
        )
        return ClaimReceipt(
            amount=     claimable,
            claimed_at= as_of,
            schedule=   updated,
            transfer=   transfer,
        )
