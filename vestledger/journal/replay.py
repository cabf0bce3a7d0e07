"""
vestledger/journal/replay.py

Journal replay — verification and state rebuild.

Load:
    json.loads(line) → JournalEntry.from_dict() → validate_schema()
    Any failure here is fatal (ValueError): the file is not a journal.

Verify (sequential; each causal_hash depends on the previous entry):
    sequence_gap       entry i does not carry sequence i
    chain_break        causal_hash != SHA-256(JCS(prev))
    duplicate_nonce    nonce seen earlier in this journal
    invalid_signature  signature does not verify
    foreign_signer     signed by a key other than the expected one

Rebuild:
    Re-executes every entry against a fresh engine through its public
    operations, so each historical transition is validated again by the
    same rules that admitted it. An entry the engine rejects, or whose
    outcome differs from what the journal recorded, raises JournalError.
"""

import json
import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional

from vestledger.core.exceptions import JournalError, VestingError
from vestledger.journal.entry import JournalEntry, RecordType

if TYPE_CHECKING:
    from vestledger.engine import VestingEngine

logger = logging.getLogger(__name__)


@dataclass
class JournalViolation:
    at_sequence:    int
    record_id:      str
    violation_type: str
    detail:         str

    def to_dict(self) -> Dict[str, object]:
        return {
            "at_sequence":    self.at_sequence,
            "record_id":      self.record_id,
            "violation_type": self.violation_type,
            "detail":         self.detail,
        }


@dataclass
class ReplaySummary:
    total_entries:      int
    violations:         List[JournalViolation]
    valid_signatures:   int
    invalid_signatures: int
    record_type_counts: Dict[str, int]
    signers_seen:       List[str]
    first_timestamp:    Optional[str]
    last_timestamp:     Optional[str]
    head_hash:          Optional[str]

    @property
    def valid(self) -> bool:
        return not self.violations

    def to_dict(self) -> Dict[str, object]:
        return {
            "total_entries":      self.total_entries,
            "valid":              self.valid,
            "valid_signatures":   self.valid_signatures,
            "invalid_signatures": self.invalid_signatures,
            "record_type_counts": self.record_type_counts,
            "signers_seen":       self.signers_seen,
            "first_timestamp":    self.first_timestamp,
            "last_timestamp":     self.last_timestamp,
            "head_hash":          self.head_hash,
            "violations":         [v.to_dict() for v in self.violations],
        }


class JournalReplay:
    """
    Usage:
        replay = JournalReplay(expected_signer=key.public_key_hex)
        replay.load(Path(".vestledger/journal.jsonl"))
        summary = replay.verify()
        replay.rebuild(engine)
    """

    def __init__(self, expected_signer: Optional[str] = None):
        self.entries:         List[JournalEntry] = []
        self.expected_signer: Optional[str]      = expected_signer
        self._path:           Optional[Path]     = None

    # ── Load ──────────────────────────────────────────────────

    def load(self, journal_path: Path) -> None:
        """
        Raises:
            FileNotFoundError — journal does not exist
            ValueError        — malformed JSON, missing field or schema violation
        """
        journal_path = Path(journal_path)
        self._path   = journal_path
        self.entries = []

        if not journal_path.exists():
            raise FileNotFoundError(f"Journal not found: {journal_path}")

        with open(journal_path, "r", encoding="utf-8") as f:
            for line_num, raw in enumerate(f, 1):
                raw = raw.strip()
                if not raw:
                    continue
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError as e:
                    raise ValueError(f"Malformed JSON at journal line {line_num}: {e}") from e
                try:
                    entry = JournalEntry.from_dict(data)
                except (KeyError, TypeError) as e:
                    raise ValueError(f"Missing journal field at line {line_num}: {e}") from e

                errors = entry.validate_schema()
                if errors:
                    raise ValueError(f"Schema violation at journal line {line_num}: {errors}")
                self.entries.append(entry)

        logger.debug("Loaded %d journal entries from %s", len(self.entries), journal_path)

    # ── Verify ────────────────────────────────────────────────

    def verify(self) -> ReplaySummary:
        violations: List[JournalViolation] = []
        seen_nonces = set()
        valid_sigs = invalid_sigs = 0

        for i, entry in enumerate(self.entries):
            prev = self.entries[i - 1] if i > 0 else None

            if entry.sequence != i:
                violations.append(JournalViolation(
                    i, entry.record_id, "sequence_gap",
                    f"Expected sequence {i}, got {entry.sequence}",
                ))
            if not entry.verify_chain(prev):
                expected = JournalEntry.causal_hash_of(prev)
                violations.append(JournalViolation(
                    entry.sequence, entry.record_id, "chain_break",
                    f"causal_hash mismatch: expected ...{expected[-12:]}, "
                    f"got ...{entry.causal_hash[-12:]}",
                ))
            if entry.nonce in seen_nonces:
                violations.append(JournalViolation(
                    entry.sequence, entry.record_id, "duplicate_nonce",
                    f"Nonce {entry.nonce} appears more than once",
                ))
            seen_nonces.add(entry.nonce)

            if (
                self.expected_signer is not None
                and entry.signer_public_key != self.expected_signer
            ):
                violations.append(JournalViolation(
                    entry.sequence, entry.record_id, "foreign_signer",
                    f"Signed by {entry.signer_public_key[:16]}..., "
                    f"expected {self.expected_signer[:16]}...",
                ))

            if entry.verify_signature():
                valid_sigs += 1
            else:
                invalid_sigs += 1
                violations.append(JournalViolation(
                    entry.sequence, entry.record_id, "invalid_signature",
                    f"Signature invalid (signer: {entry.signer_public_key[:16]}...)",
                ))

        counts = Counter(e.record_type for e in self.entries)
        return ReplaySummary(
            total_entries=      len(self.entries),
            violations=         violations,
            valid_signatures=   valid_sigs,
            invalid_signatures= invalid_sigs,
            record_type_counts= dict(counts),
            signers_seen=       sorted({e.signer_public_key for e in self.entries}),
            first_timestamp=    self.entries[0].timestamp if self.entries else None,
            last_timestamp=     self.entries[-1].timestamp if self.entries else None,
            head_hash=          (
                JournalEntry.causal_hash_of(self.entries[-1]) if self.entries else None
            ),
        )

    def verify_or_raise(self) -> ReplaySummary:
        summary = self.verify()
        if not summary.valid:
            first = summary.violations[0]
            raise JournalError(
                f"Journal failed verification: {first.violation_type} — {first.detail}",
                {"violations": len(summary.violations), "at_sequence": first.at_sequence},
            )
        return summary

    # ── Rebuild ───────────────────────────────────────────────

    def rebuild(self, engine: "VestingEngine") -> int:
        """
        Re-apply every loaded entry to `engine`, which must be empty and
        have no journal attached. Returns the number of entries applied.
        """
        if engine.journal is not None:
            raise JournalError("Rebuild target must not have a journal attached")
        if engine.store.authorities() or engine.store.schedules():
            raise JournalError("Rebuild target must start empty")

        for entry in self.entries:
            try:
                self._apply(engine, entry)
            except VestingError as exc:
                if isinstance(exc, JournalError):
                    raise
                raise JournalError(
                    f"Journal entry rejected on replay: {exc}",
                    {"sequence": entry.sequence, "record_type": entry.record_type},
                ) from exc
            except (KeyError, TypeError) as exc:
                raise JournalError(
                    f"Journal payload incomplete: {exc}",
                    {"sequence": entry.sequence, "record_type": entry.record_type},
                ) from exc

        logger.info("Rebuilt engine state from %d journal entries", len(self.entries))
        return len(self.entries)

    @staticmethod
    def _apply(engine: "VestingEngine", entry: JournalEntry) -> None:
        p = entry.payload

        if entry.record_type == RecordType.AUTHORITY_CREATED:
            record = engine.create_authority(
                p["id"], owner=entry.actor, asset_id=p["asset_id"], as_of=p["created_at"],
            )
            _expect(entry, "address", record.address, p["address"])

        elif entry.record_type == RecordType.SCHEDULE_CREATED:
            record = engine.create_schedule(
                p["authority_id"],
                caller=       entry.actor,
                beneficiary=  p["beneficiary"],
                start_time=   p["start_time"],
                end_time=     p["end_time"],
                cliff_time=   p["cliff_time"],
                total_amount= p["total_amount"],
            )
            _expect(entry, "address", record.address, p["address"])

        elif entry.record_type == RecordType.TOKENS_CLAIMED:
            receipt = engine.claim(
                p["authority_id"], p["beneficiary"], caller=entry.actor, as_of=p["claimed_at"],
            )
            _expect(entry, "amount", receipt.amount, p["amount"])

        elif entry.record_type == RecordType.SCHEDULE_REVOKED:
            record = engine.revoke(
                p["authority_id"], p["beneficiary"], caller=entry.actor, as_of=p["requested_at"],
            )
            _expect(entry, "revoked_at", record.revoked_at, p["revoked_at"])

        elif entry.record_type == RecordType.TREASURY_FUNDED:
            engine.fund_treasury(p["authority_id"], p["amount"], funder=entry.actor)

    # ── Export ────────────────────────────────────────────────

    def export_json(self, output_path: Path) -> None:
        """Write the verification summary as a JSON audit report."""
        summary     = self.verify()
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        report = {
            "vestledger_journal_report": {
                "journal": str(self._path or "in-memory"),
                **summary.to_dict(),
            }
        }
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2)


def _expect(entry: JournalEntry, field: str, actual, recorded) -> None:
    if actual != recorded:
        raise JournalError(
            f"Replayed {field} differs from journal",
            {"sequence": entry.sequence, "replayed": actual, "recorded": recorded},
        )
