"""
vestledger/core/models.py

Ledger records.

Two record kinds are persisted, both addressable through
vestledger.core.address:

    VestingAuthority  — one per issuer configuration, append-only
    VestingSchedule   — one per (beneficiary, authority), mutated only by
                        claims (total_withdrawn) and revocation (revoked_at)

Records are frozen. A transition builds a new record with
dataclasses.replace() and the store swaps it in atomically, so a reader
never observes a half-applied mutation.

Schedule invariants, true at every observation point:
    0 <= total_withdrawn <= total_amount
    revoked_at is None or revoked_at >= start_time
    start_time <= cliff_time <= end_time and end_time > start_time
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


# Amounts are unsigned 64-bit token units.
MAX_AMOUNT = 2 ** 64 - 1


def is_amount(value) -> bool:
    """True for a non-bool int in [0, MAX_AMOUNT]."""
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and 0 <= value <= MAX_AMOUNT
    )


def is_instant(value) -> bool:
    """True for a non-bool int (seconds since epoch)."""
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class VestingAuthority:
    """Issuer configuration: one treasury and one asset per record."""

    id:               str
    owner:            str
    asset_id:         str
    address:          str
    treasury_address: str
    created_at:       int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id":               self.id,
            "owner":            self.owner,
            "asset_id":         self.asset_id,
            "address":          self.address,
            "treasury_address": self.treasury_address,
            "created_at":       self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VestingAuthority":
        return cls(
            id=               data["id"],
            owner=            data["owner"],
            asset_id=         data["asset_id"],
            address=          data["address"],
            treasury_address= data["treasury_address"],
            created_at=       data["created_at"],
        )


@dataclass(frozen=True)
class VestingSchedule:
    """A beneficiary's linear unlock schedule under one authority."""

    address:         str
    authority_ref:   str
    beneficiary:     str
    start_time:      int
    cliff_time:      int
    end_time:        int
    total_amount:    int
    total_withdrawn: int = 0
    revoked_at:      Optional[int] = None

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address":         self.address,
            "authority_ref":   self.authority_ref,
            "beneficiary":     self.beneficiary,
            "start_time":      self.start_time,
            "cliff_time":      self.cliff_time,
            "end_time":        self.end_time,
            "total_amount":    self.total_amount,
            "total_withdrawn": self.total_withdrawn,
            "revoked_at":      self.revoked_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VestingSchedule":
        return cls(
            address=         data["address"],
            authority_ref=   data["authority_ref"],
            beneficiary=     data["beneficiary"],
            start_time=      data["start_time"],
            cliff_time=      data["cliff_time"],
            end_time=        data["end_time"],
            total_amount=    data["total_amount"],
            total_withdrawn= data.get("total_withdrawn", 0),
            revoked_at=      data.get("revoked_at"),
        )


@dataclass(frozen=True)
class TransferInstruction:
    """Move `amount` units of `asset_id` from `source` to `destination`."""

    source:      str
    destination: str
    asset_id:    str
    amount:      int

    def reversed(self) -> "TransferInstruction":
        """The compensating transfer that undoes this one."""
        return TransferInstruction(
            source=      self.destination,
            destination= self.source,
            asset_id=    self.asset_id,
            amount=      self.amount,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source":      self.source,
            "destination": self.destination,
            "asset_id":    self.asset_id,
            "amount":      self.amount,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransferInstruction":
        return cls(
            source=      data["source"],
            destination= data["destination"],
            asset_id=    data["asset_id"],
            amount=      data["amount"],
        )
