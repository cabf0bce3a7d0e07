"""
VestLedger Settlement

The two processors that mutate a schedule after creation:

- ClaimProcessor: withdraws the claimable balance, instructs a transfer
- RevocationProcessor: freezes future unlocking, write-once

Both re-read the schedule under its record lock, so concurrent calls
against one schedule serialize.
"""

from vestledger.settlement.claims import ClaimProcessor, ClaimReceipt
from vestledger.settlement.revocation import RevocationProcessor

__all__ = ["ClaimProcessor", "ClaimReceipt", "RevocationProcessor"]
