"""
VestLedger Exception Hierarchy

All exceptions inherit from VestingError for easy catching.

Every member of the engine's error taxonomy is local, terminal and
non-retryable from the engine's point of view. Retry policy belongs
to the caller.
"""


class VestingError(Exception):
    """Base exception for all VestLedger errors"""

    code = "VestingError"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class Unauthorized(VestingError):
    """Raised when the caller is not the principal a record names"""
    code = "Unauthorized"


class AlreadyExists(VestingError):
    """Raised when a record already lives at the derived address"""
    code = "AlreadyExists"


class InvalidId(VestingError):
    """Raised when an authority id is empty or too long"""
    code = "InvalidId"


class InvalidAmount(VestingError):
    """Raised when an amount is not a positive u64 integer"""
    code = "InvalidAmount"


class InvalidTimeRange(VestingError):
    """Raised when end_time does not come after start_time"""
    code = "InvalidTimeRange"


class InvalidCliff(VestingError):
    """Raised when the cliff falls outside [start_time, end_time]"""
    code = "InvalidCliff"


class ClaimNotYetAvailable(VestingError):
    """Raised when a claim is attempted before the cliff"""
    code = "ClaimNotYetAvailable"


class NothingToClaim(VestingError):
    """Raised when vested amount does not exceed what was withdrawn"""
    code = "NothingToClaim"


class AlreadyRevoked(VestingError):
    """Raised when revoking a schedule that carries revoked_at"""
    code = "AlreadyRevoked"


class InsufficientFunds(VestingError):
    """Raised when the treasury cannot cover a transfer"""
    code = "InsufficientFunds"


class RecordNotFound(VestingError):
    """Raised when no record lives at the derived address"""
    code = "RecordNotFound"


class JournalError(VestingError):
    """Raised when journal I/O or integrity checks fail"""
    code = "JournalError"
