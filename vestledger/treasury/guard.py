"""
Treasury Funding Guard (advisory).

Read-only. Compares an authority's treasury balance against what it
still owes:

    active_liability    = Σ (total_amount - total_withdrawn)  over non-revoked schedules
    sufficiently_funded = treasury_balance >= active_liability

Revoked schedules can still hold vested-but-unclaimed units. Those are
reported as revoked_outstanding but do not enter the predicate.

Ledger correctness never depends on this check. An underfunded treasury
only means claims fail with InsufficientFunds.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict

from vestledger.core.models import VestingAuthority
from vestledger.core.unlock import final_vested_amount
from vestledger.storage.store import RecordStore
from vestledger.treasury.bank import AssetBank

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FundingReport:
    authority_id:        str
    asset_id:            str
    treasury_balance:    int
    active_liability:    int
    revoked_outstanding: int
    active_schedules:    int
    revoked_schedules:   int

    @property
    def sufficiently_funded(self) -> bool:
        return self.treasury_balance >= self.active_liability

    @property
    def shortfall(self) -> int:
        return max(0, self.active_liability - self.treasury_balance)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "authority_id":        self.authority_id,
            "asset_id":            self.asset_id,
            "treasury_balance":    self.treasury_balance,
            "active_liability":    self.active_liability,
            "revoked_outstanding": self.revoked_outstanding,
            "active_schedules":    self.active_schedules,
            "revoked_schedules":   self.revoked_schedules,
            "shortfall":           self.shortfall,
            "sufficiently_funded": self.sufficiently_funded,
        }


class FundingGuard:
    def __init__(self, store: RecordStore, bank: AssetBank):
        self.store = store
        self.bank  = bank

    def report(self, authority: VestingAuthority) -> FundingReport:
        active_liability    = 0
        revoked_outstanding = 0
        active = revoked = 0

        for schedule in self.store.schedules():
            if schedule.authority_ref != authority.address:
                continue
            if schedule.revoked_at is None:
                active += 1
                active_liability += schedule.total_amount - schedule.total_withdrawn
            else:
                revoked += 1
                revoked_outstanding += max(
                    0, final_vested_amount(schedule) - schedule.total_withdrawn
                )

        report = FundingReport(
            authority_id=        authority.id,
            asset_id=            authority.asset_id,
            treasury_balance=    self.bank.balance(authority.treasury_address, authority.asset_id),
            active_liability=    active_liability,
            revoked_outstanding= revoked_outstanding,
            active_schedules=    active,
            revoked_schedules=   revoked,
        )

        if not report.sufficiently_funded:
            logger.warning(
                "Treasury for authority %r is short by %d %s "
                "(balance=%d, liability=%d)",
                authority.id, report.shortfall, authority.asset_id,
                report.treasury_balance, report.active_liability,
            )
        return report

    def is_sufficiently_funded(self, authority: VestingAuthority) -> bool:
        return self.report(authority).sufficiently_funded
