"""
vestledger/journal/emitter.py

Event journal — append-only JSONL of signed, hash-chained entries.

emit() MUST, in this exact order:
  1. Acquire lock
  2. JournalEntry.create(..., prev=last_entry)
  3. entry.sign(key_manager)
  4. Assert chain invariants  — causal_hash, sequence
  5. Append to JSONL file
  6. Advance internal state   — only after confirmed write
  7. Return signed entry

If emit() raises, nothing was written and the caller must not commit
the transition it was recording.
"""

import json
import logging
import os
import threading
import warnings
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from vestledger.core.crypto import Ed25519KeyManager
from vestledger.core.exceptions import JournalError
from vestledger.journal.entry import GENESIS_HASH, JOURNAL_VERSION, JournalEntry

logger = logging.getLogger(__name__)


class EventJournal:
    """
    Synchronous signed journal bound to one file.

    Thread-safe via internal lock (single-process only).
    Chain state survives process restart by reading the last line on __init__.
    """

    def __init__(
        self,
        key_manager:  Ed25519KeyManager,
        journal_path: str = ".vestledger/journal.jsonl",
    ) -> None:
        self.key_manager = key_manager

        self._lock:       threading.Lock         = threading.Lock()
        self._sequence:   int                    = 0
        self._last_entry: Optional[JournalEntry] = None

        self._path = Path(journal_path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

        self._restore_state()

    @property
    def path(self) -> Path:
        return self._path

    # ── Public API ────────────────────────────────────────────

    def emit(
        self,
        record_type: str,
        payload:     Dict[str, Any],
        actor:       str,
    ) -> JournalEntry:
        """
        Append one signed entry. Signature is guaranteed non-empty on return.
        Raises JournalError on invariant violation or write failure.
        """
        with self._lock:
            entry = JournalEntry.create(
                record_type=       record_type,
                actor=             actor,
                signer_public_key= self.key_manager.public_key_hex,
                sequence=          self._sequence,
                payload=           payload,
                prev=              self._last_entry,
            ).sign(self.key_manager)

            self._assert_chain_invariants(entry)
            self._append(entry)

            self._sequence   += 1
            self._last_entry  = entry

        logger.debug(
            "Journal entry %d (%s) written by %s", entry.sequence, record_type, actor
        )
        return entry

    def read(self) -> Iterator[JournalEntry]:
        """Yield every entry currently on disk, in file order."""
        if not self._path.exists():
            return
        with open(self._path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield JournalEntry.from_dict(json.loads(line))
                except (json.JSONDecodeError, KeyError) as exc:
                    raise JournalError(
                        f"Unreadable journal line {line_num}: {exc}",
                        {"path": str(self._path)},
                    ) from exc

    def get_stats(self) -> Dict[str, Any]:
        return {
            "journal_file":     str(self._path),
            "next_sequence":    self._sequence,
            "last_record_id":   self._last_entry.record_id if self._last_entry else None,
            "last_causal_hash": (
                JournalEntry.causal_hash_of(self._last_entry)
                if self._last_entry else GENESIS_HASH
            ),
            "signer":           self.key_manager.public_key_hex,
            "journal_version":  JOURNAL_VERSION,
        }

    # ── Internal ──────────────────────────────────────────────

    def _restore_state(self) -> None:
        """
        Restore sequence and last entry from an existing journal.
        A corrupted last line leaves genesis defaults and warns.
        """
        if not self._path.exists():
            return

        last_line = None
        with open(self._path, "r", encoding="utf-8") as f:
            for line in f:
                stripped = line.strip()
                if stripped:
                    last_line = stripped

        if not last_line:
            return

        try:
            entry  = JournalEntry.from_dict(json.loads(last_line))
            errors = entry.validate_schema()
            if errors:
                raise ValueError(f"schema violation in last journal line: {errors}")
        except (ValueError, KeyError) as exc:
            warnings.warn(
                f"EventJournal: could not restore state from {self._path}: {exc}. "
                "Run `vestledger verify` before emitting.",
                RuntimeWarning,
                stacklevel=3,
            )
            return

        self._sequence   = entry.sequence + 1
        self._last_entry = entry

    def _assert_chain_invariants(self, entry: JournalEntry) -> None:
        if entry.sequence != self._sequence:
            raise JournalError(
                "Chain invariant violated — sequence mismatch",
                {"expected": self._sequence, "got": entry.sequence},
            )
        if not entry.verify_chain(self._last_entry):
            raise JournalError(
                "Chain invariant violated — causal_hash mismatch",
                {"got": entry.causal_hash[-12:]},
            )

    def _append(self, entry: JournalEntry) -> None:
        try:
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_dict()) + "\n")
                f.flush()
                os.fsync(f.fileno())
        except OSError as exc:
            raise JournalError(
                f"Journal write failed — {exc}", {"path": str(self._path)}
            ) from exc
