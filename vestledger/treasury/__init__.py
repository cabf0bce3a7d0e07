"""
VestLedger Treasury

- AssetBank: the external transfer primitive the engine instructs
- FundingGuard: advisory treasury-vs-liability check
"""

from vestledger.treasury.bank import AssetBank, InMemoryAssetBank
from vestledger.treasury.guard import FundingGuard, FundingReport

__all__ = ["AssetBank", "InMemoryAssetBank", "FundingGuard", "FundingReport"]
