"""
vestledger/core/address.py

Deterministic Address Deriver.

An address is a pure function of (namespace, domain, seeds):

    address = SHA-256(JCS({"namespace": namespace,
                           "domain":    domain,
                           "seeds":     [hex(seed), ...]}))

Any party holding the seed material recomputes the same 64-char hex
address without a directory lookup. "Does a schedule already exist for
(beneficiary, authority)?" is an existence check at a computed address.

Seed layout per domain:
    authority  → (id,)
    treasury   → (id,)
    schedule   → (beneficiary, authority_address)

namespace separates deployments: identical seeds under "devnet" and
"mainnet" land on unrelated addresses.
"""

from typing import FrozenSet

from vestledger.core.canonical import canonical_hash


DEFAULT_NAMESPACE = "vestledger"

DOMAIN_AUTHORITY = "authority"
DOMAIN_TREASURY  = "treasury"
DOMAIN_SCHEDULE  = "schedule"

_DOMAINS: FrozenSet[str] = frozenset(
    {DOMAIN_AUTHORITY, DOMAIN_TREASURY, DOMAIN_SCHEDULE}
)

ADDRESS_HEX_LENGTH = 64


def derive_address(domain: str, *seeds: bytes, namespace: str = DEFAULT_NAMESPACE) -> str:
    """
    Derive the address for an ordered seed sequence under a domain tag.

    Raises:
        ValueError — unknown domain or empty namespace
        TypeError  — a seed is not bytes
    """
    if domain not in _DOMAINS:
        raise ValueError(
            f"Unknown address domain '{domain}'. Valid: {sorted(_DOMAINS)}"
        )
    if not namespace:
        raise ValueError("namespace must be a non-empty string")
    for seed in seeds:
        if not isinstance(seed, (bytes, bytearray)):
            raise TypeError(
                f"address seeds must be bytes, got {type(seed).__name__}"
            )

    return canonical_hash({
        "namespace": namespace,
        "domain":    domain,
        "seeds":     [bytes(seed).hex() for seed in seeds],
    })


def authority_address(authority_id: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    return derive_address(
        DOMAIN_AUTHORITY, authority_id.encode("utf-8"), namespace=namespace
    )


def treasury_address(authority_id: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    return derive_address(
        DOMAIN_TREASURY, authority_id.encode("utf-8"), namespace=namespace
    )


def schedule_address(
    beneficiary:   str,
    authority_ref: str,
    namespace:     str = DEFAULT_NAMESPACE,
) -> str:
    """authority_ref is the authority record's address (hex)."""
    return derive_address(
        DOMAIN_SCHEDULE,
        beneficiary.encode("utf-8"),
        bytes.fromhex(authority_ref),
        namespace=namespace,
    )


def is_address(value) -> bool:
    """True for a 64-char lowercase hex string."""
    if not isinstance(value, str) or len(value) != ADDRESS_HEX_LENGTH:
        return False
    return all(c in "0123456789abcdef" for c in value)
