"""
vestledger/__init__.py

VestLedger: Token Vesting Ledger Engine

Tracks, per issuing authority and per beneficiary, how much of a fungible
asset unlocks over time. Unlocked balances can be withdrawn exactly once;
revocation freezes further unlocking while preserving what already vested.
"""

__version__ = "0.1.0"

from vestledger.config import EngineConfig, load_config
from vestledger.core.address import DEFAULT_NAMESPACE, derive_address
from vestledger.core.crypto import Ed25519KeyManager
from vestledger.core.exceptions import (
    AlreadyExists,
    AlreadyRevoked,
    ClaimNotYetAvailable,
    InsufficientFunds,
    InvalidAmount,
    InvalidCliff,
    InvalidId,
    InvalidTimeRange,
    JournalError,
    NothingToClaim,
    RecordNotFound,
    Unauthorized,
    VestingError,
)
from vestledger.core.models import TransferInstruction, VestingAuthority, VestingSchedule
from vestledger.core.unlock import claimable_amount, vested_amount
from vestledger.engine import VestingEngine
from vestledger.journal import EventJournal, JournalReplay
from vestledger.settlement import ClaimReceipt
from vestledger.treasury import FundingReport, InMemoryAssetBank

__all__ = [
    # Engine
    "VestingEngine",
    "EngineConfig",
    "load_config",
    # Records
    "VestingAuthority",
    "VestingSchedule",
    "TransferInstruction",
    "ClaimReceipt",
    "FundingReport",
    # Pure functions
    "vested_amount",
    "claimable_amount",
    "derive_address",
    # Collaborators
    "InMemoryAssetBank",
    "EventJournal",
    "JournalReplay",
    "Ed25519KeyManager",
    # Errors
    "VestingError",
    "Unauthorized",
    "AlreadyExists",
    "InvalidId",
    "InvalidAmount",
    "InvalidTimeRange",
    "InvalidCliff",
    "ClaimNotYetAvailable",
    "NothingToClaim",
    "AlreadyRevoked",
    "InsufficientFunds",
    "RecordNotFound",
    "JournalError",
    # Constants
    "DEFAULT_NAMESPACE",
]
