"""
VestLedger Schedule Ledger

Per-beneficiary unlock schedules, each bound to one authority record.
"""

from vestledger.schedules.ledger import ScheduleLedger

__all__ = ["ScheduleLedger"]
