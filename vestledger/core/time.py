"""
vestledger/core/time.py

Two notions of time live in VestLedger and they never mix:

    journal_timestamp()  wall-clock stamp written on journal entries.
                         Wire format: YYYY-MM-DDTHH:MM:SS.mmmZ
    unix_now()           default trusted time source for as_of.
                         Integer seconds since epoch.

The engine never reads the clock on its own. as_of is always supplied
by the caller; unix_now() is only the default the CLI and engine
facade fall back to.
"""

import time
from datetime import datetime, timezone


def journal_timestamp() -> str:
    """
    Return current UTC time in journal wire format.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"


def unix_now() -> int:
    """Current time as integer seconds since epoch."""
    return int(time.time())
