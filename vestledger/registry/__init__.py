"""
VestLedger Authority Registry

Owns the lifecycle of per-issuer vesting configurations.
"""

from vestledger.registry.authority import DEFAULT_MAX_ID_LENGTH, AuthorityRegistry

__all__ = ["AuthorityRegistry", "DEFAULT_MAX_ID_LENGTH"]
