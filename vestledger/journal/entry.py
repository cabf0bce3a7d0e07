"""
vestledger/journal/entry.py

Journal entry — one signed, hash-chained record per state transition.

CONTRACT 1 — Signing
    bytes_signed = canonicalize(entry.to_signing_dict())
    algorithm    = Ed25519, base64url without padding

CONTRACT 2 — Chain
    causal_hash  = SHA-256(canonicalize(prev.to_signing_dict()))
    first_entry  = GENESIS_HASH ("0" * 64)

CONTRACT 3 — Timestamp
    YYYY-MM-DDTHH:MM:SS.mmmZ from journal_timestamp()

CONTRACT 4 — Nonce
    exactly 32 hex characters, unique per journal

The timestamp is when the entry was written. The ledger instant the
transition applied at (as_of) travels inside the payload.
"""

import re
import secrets
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from vestledger.core.canonical import canonical_hash, canonicalize
from vestledger.core.crypto import Ed25519KeyManager
from vestledger.core.time import journal_timestamp


JOURNAL_VERSION = "1.0"
GENESIS_HASH    = "0" * 64

_NONCE_HEX_LENGTH      = 32
_PUBLIC_KEY_HEX_LENGTH = 64
_RECORD_ID_PREFIX      = "vle-"

_TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$"
)


class RecordType:
    """The only valid values for JournalEntry.record_type."""
    AUTHORITY_CREATED = "authority_created"
    SCHEDULE_CREATED  = "schedule_created"
    TOKENS_CLAIMED    = "tokens_claimed"
    SCHEDULE_REVOKED  = "schedule_revoked"
    TREASURY_FUNDED   = "treasury_funded"


VALID_RECORD_TYPES = frozenset({
    RecordType.AUTHORITY_CREATED,
    RecordType.SCHEDULE_CREATED,
    RecordType.TOKENS_CLAIMED,
    RecordType.SCHEDULE_REVOKED,
    RecordType.TREASURY_FUNDED,
})


def _is_hex(value: str, length: int) -> bool:
    if not isinstance(value, str) or len(value) != length:
        return False
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return True


@dataclass
class JournalEntry:

    journal_version:   str
    record_id:         str
    record_type:       str
    actor:             str
    signer_public_key: str
    sequence:          int
    nonce:             str
    timestamp:         str
    causal_hash:       str
    payload:           Dict[str, Any]
    signature:         Optional[str] = None

    # ── Constructor ───────────────────────────────────────────

    @classmethod
    def create(
        cls,
        record_type:       str,
        actor:             str,
        signer_public_key: str,
        sequence:          int,
        payload:           Dict[str, Any],
        prev:              Optional["JournalEntry"] = None,
    ) -> "JournalEntry":
        """
        Create an unsigned entry chained onto prev.

            entry = JournalEntry.create(...).sign(key_manager)
        """
        if record_type not in VALID_RECORD_TYPES:
            raise ValueError(
                f"Invalid record_type '{record_type}'. "
                f"Valid: {sorted(VALID_RECORD_TYPES)}"
            )
        if not isinstance(payload, dict):
            raise TypeError(
                f"payload must be dict, got {type(payload).__name__}"
            )
        if not isinstance(sequence, int) or sequence < 0:
            raise ValueError(
                f"sequence must be non-negative int, got {sequence!r}"
            )
        if not _is_hex(signer_public_key, _PUBLIC_KEY_HEX_LENGTH):
            raise ValueError(
                f"signer_public_key must be {_PUBLIC_KEY_HEX_LENGTH}-char hex string"
            )

        return cls(
            journal_version=   JOURNAL_VERSION,
            record_id=         f"{_RECORD_ID_PREFIX}{uuid.uuid4()}",
            record_type=       record_type,
            actor=             actor,
            signer_public_key= signer_public_key,
            sequence=          sequence,
            nonce=             secrets.token_hex(_NONCE_HEX_LENGTH // 2),
            timestamp=         journal_timestamp(),
            causal_hash=       cls.causal_hash_of(prev),
            payload=           payload,
            signature=         None,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        """
        Deserialize from a JSONL line dict.
        Trusts persisted data; callers run validate_schema() afterwards.
        """
        return cls(
            journal_version=   data["journal_version"],
            record_id=         data["record_id"],
            record_type=       data["record_type"],
            actor=             data["actor"],
            signer_public_key= data["signer_public_key"],
            sequence=          data["sequence"],
            nonce=             data["nonce"],
            timestamp=         data["timestamp"],
            causal_hash=       data["causal_hash"],
            payload=           data.get("payload", {}),
            signature=         data.get("signature"),
        )

    # ── Schema Validation ─────────────────────────────────────

    def validate_schema(self) -> List[str]:
        """Return every schema violation found. Empty list means valid."""
        errors: List[str] = []

        if self.journal_version != JOURNAL_VERSION:
            errors.append(
                f"journal_version: expected '{JOURNAL_VERSION}', got '{self.journal_version}'"
            )
        if self.record_type not in VALID_RECORD_TYPES:
            errors.append(f"record_type '{self.record_type}' is not recognised")
        if not isinstance(self.record_id, str) or not self.record_id.startswith(_RECORD_ID_PREFIX):
            errors.append(
                f"record_id must start with '{_RECORD_ID_PREFIX}', got {self.record_id!r}"
            )
        if not isinstance(self.actor, str) or not self.actor:
            errors.append("actor must be a non-empty string")
        if not _is_hex(self.signer_public_key, _PUBLIC_KEY_HEX_LENGTH):
            errors.append(
                f"signer_public_key must be exactly {_PUBLIC_KEY_HEX_LENGTH} hex chars"
            )
        if not isinstance(self.sequence, int) or self.sequence < 0:
            errors.append(f"sequence must be non-negative int, got {self.sequence!r}")
        if not _is_hex(self.nonce, _NONCE_HEX_LENGTH):
            errors.append(f"nonce must be exactly {_NONCE_HEX_LENGTH} hex chars")
        if not isinstance(self.timestamp, str) or not _TIMESTAMP_RE.match(self.timestamp):
            errors.append(
                f"timestamp {self.timestamp!r} is not YYYY-MM-DDTHH:MM:SS.mmmZ"
            )
        if not _is_hex(self.causal_hash, 64):
            errors.append("causal_hash must be 64 hex chars")
        if not isinstance(self.payload, dict):
            errors.append(f"payload must be dict, got {type(self.payload).__name__}")

        return errors

    # ── Canonical Forms ───────────────────────────────────────

    def to_signing_dict(self) -> Dict[str, Any]:
        """Every field except the signature. Also the chain-hash input."""
        return {
            "actor":             self.actor,
            "causal_hash":       self.causal_hash,
            "journal_version":   self.journal_version,
            "nonce":             self.nonce,
            "payload":           self.payload,
            "record_id":         self.record_id,
            "record_type":       self.record_type,
            "sequence":          self.sequence,
            "signer_public_key": self.signer_public_key,
            "timestamp":         self.timestamp,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Full serialization including signature. JSONL persistence only."""
        d = self.to_signing_dict()
        d["signature"] = self.signature
        return d

    # ── Chain ─────────────────────────────────────────────────

    @staticmethod
    def causal_hash_of(prev: Optional["JournalEntry"]) -> str:
        if prev is None:
            return GENESIS_HASH
        return canonical_hash(prev.to_signing_dict())

    def verify_chain(self, prev: Optional["JournalEntry"]) -> bool:
        return self.causal_hash == JournalEntry.causal_hash_of(prev)

    # ── Signing ───────────────────────────────────────────────

    def sign(self, key_manager: Ed25519KeyManager) -> "JournalEntry":
        """Sign in place and return self."""
        self.signature = key_manager.sign(canonicalize(self.to_signing_dict()))
        return self

    def verify_signature(self, public_key_hex: Optional[str] = None) -> bool:
        """
        Verify against the embedded signer key, or an expected one.
        Never raises.
        """
        if not self.signature:
            return False
        return Ed25519KeyManager.verify_detached(
            canonicalize(self.to_signing_dict()),
            self.signature,
            public_key_hex or self.signer_public_key,
        )
