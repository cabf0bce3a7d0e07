"""
tests/test_journal.py

Signed, hash-chained event journal.

  ENTRY     signature covers every field; chain links to previous entry
  EMITTER   one entry per transition, sequence and chain survive restart
  REPLAY    tampering, gaps and foreign signers are reported
  REBUILD   a fresh engine replays the journal into identical state
  ATOMIC    a failed journal write leaves no claim behind
"""

import json
from pathlib import Path

import pytest

from vestledger import EngineConfig, VestingEngine
from vestledger.core.crypto import Ed25519KeyManager
from vestledger.core.exceptions import AlreadyExists, JournalError
from vestledger.journal import (
    GENESIS_HASH,
    EventJournal,
    JournalEntry,
    JournalReplay,
    RecordType,
)


# ─────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────

@pytest.fixture
def key():
    return Ed25519KeyManager.generate()


@pytest.fixture
def config(tmp_path):
    return EngineConfig(
        journal_path= str(tmp_path / "journal.jsonl"),
        key_path=     str(tmp_path / "signer.pem"),
    )


def make_entry(key, sequence=0, prev=None, payload=None):
    return JournalEntry.create(
        record_type=       RecordType.TREASURY_FUNDED,
        actor=             "alice",
        signer_public_key= key.public_key_hex,
        sequence=          sequence,
        payload=           payload or {"amount": 10},
        prev=              prev,
    ).sign(key)


def populate(engine: VestingEngine) -> None:
    """A short history touching every record type."""
    engine.create_authority("acme", owner="alice", asset_id="ACME", as_of=0)
    engine.fund_treasury("acme", 2000, funder="alice")
    for beneficiary in ("bob", "carol"):
        engine.create_schedule(
            "acme", caller="alice", beneficiary=beneficiary,
            start_time=0, end_time=1000, cliff_time=100, total_amount=1000,
        )
    engine.claim("acme", "bob", caller="bob", as_of=250)
    engine.revoke("acme", "carol", caller="alice", as_of=400)
    engine.claim("acme", "carol", caller="carol", as_of=900)


def snapshot(engine: VestingEngine) -> dict:
    return {
        "authorities": sorted(a.to_dict()["address"] for a in engine.store.authorities()),
        "schedules":   sorted((s.address, s.total_withdrawn, s.revoked_at) for s in engine.store.schedules()),
        "treasury":    engine.treasury_balance("acme"),
        "bob":         engine.bank.balance("bob", "ACME"),
        "carol":       engine.bank.balance("carol", "ACME"),
    }


def rewrite_line(path: Path, index: int, mutate) -> None:
    lines = path.read_text(encoding="utf-8").splitlines()
    data  = json.loads(lines[index])
    mutate(data)
    lines[index] = json.dumps(data)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


# ─────────────────────────────────────────────────────────────
# Entry
# ─────────────────────────────────────────────────────────────

class TestJournalEntry:

    def test_signature_verifies(self, key):
        assert make_entry(key).verify_signature()

    def test_payload_change_breaks_signature(self, key):
        entry = make_entry(key)
        entry.payload = {"amount": 10_000}
        assert not entry.verify_signature()

    def test_actor_change_breaks_signature(self, key):
        entry = make_entry(key)
        entry.actor = "mallory"
        assert not entry.verify_signature()

    def test_wrong_key_does_not_verify(self, key):
        other = Ed25519KeyManager.generate()
        assert not make_entry(key).verify_signature(other.public_key_hex)

    def test_unsigned_does_not_verify(self, key):
        entry = JournalEntry.create(
            RecordType.TREASURY_FUNDED, "alice", key.public_key_hex, 0, {"amount": 1},
        )
        assert not entry.verify_signature()

    def test_first_entry_is_genesis(self, key):
        assert make_entry(key).causal_hash == GENESIS_HASH

    def test_chain_links(self, key):
        first  = make_entry(key)
        second = make_entry(key, sequence=1, prev=first)
        assert second.verify_chain(first)
        first.payload = {"amount": 11}
        assert not second.verify_chain(first)

    def test_unknown_record_type_rejected(self, key):
        with pytest.raises(ValueError):
            JournalEntry.create("tokens_minted", "alice", key.public_key_hex, 0, {})

    def test_schema_errors_reported(self, key):
        entry = make_entry(key)
        entry.nonce = "abc"
        entry.timestamp = "2024-01-01T00:00:00Z"
        errors = entry.validate_schema()
        assert any("nonce" in e for e in errors)
        assert any("timestamp" in e for e in errors)

    def test_round_trips_through_dict(self, key):
        entry = make_entry(key)
        again = JournalEntry.from_dict(json.loads(json.dumps(entry.to_dict())))
        assert again == entry
        assert again.verify_signature()


# ─────────────────────────────────────────────────────────────
# Emitter
# ─────────────────────────────────────────────────────────────

class TestEventJournal:

    def test_one_entry_per_transition(self, config):
        engine = VestingEngine.open(config)
        populate(engine)
        types = [e.record_type for e in engine.journal.read()]
        assert types == [
            RecordType.AUTHORITY_CREATED,
            RecordType.TREASURY_FUNDED,
            RecordType.SCHEDULE_CREATED,
            RecordType.SCHEDULE_CREATED,
            RecordType.TOKENS_CLAIMED,
            RecordType.SCHEDULE_REVOKED,
            RecordType.TOKENS_CLAIMED,
        ]

    def test_rejected_operations_are_not_journaled(self, config):
        engine = VestingEngine.open(config)
        engine.create_authority("acme", owner="alice", asset_id="ACME", as_of=0)
        with pytest.raises(AlreadyExists):
            engine.create_authority("acme", owner="alice", asset_id="ACME", as_of=0)
        assert len(list(engine.journal.read())) == 1

    def test_revocation_payload(self, config):
        engine = VestingEngine.open(config)
        populate(engine)
        revoked = [e for e in engine.journal.read() if e.record_type == RecordType.SCHEDULE_REVOKED][0]
        assert revoked.actor == "alice"
        assert revoked.payload["revoked_at"] == 400
        assert revoked.payload["vested_amount"] == 400
        assert revoked.payload["unclaimed_amount"] == 1000

    def test_sequence_survives_restart(self, key, tmp_path):
        path = tmp_path / "journal.jsonl"
        EventJournal(key, str(path)).emit(RecordType.TREASURY_FUNDED, {"amount": 1}, actor="a")
        journal = EventJournal(key, str(path))
        entry   = journal.emit(RecordType.TREASURY_FUNDED, {"amount": 2}, actor="a")
        assert entry.sequence == 1
        assert journal.get_stats()["next_sequence"] == 2

    def test_corrupt_last_line_warns(self, key, tmp_path):
        path = tmp_path / "journal.jsonl"
        path.write_text("{not json\n", encoding="utf-8")
        with pytest.warns(RuntimeWarning):
            EventJournal(key, str(path))


# ─────────────────────────────────────────────────────────────
# Replay verification
# ─────────────────────────────────────────────────────────────

class TestJournalReplay:

    def test_clean_journal(self, config):
        engine = VestingEngine.open(config)
        populate(engine)
        replay = JournalReplay(expected_signer=engine.journal.key_manager.public_key_hex)
        replay.load(Path(config.journal_path))
        summary = replay.verify()
        assert summary.valid
        assert summary.total_entries == 7
        assert summary.record_type_counts[RecordType.TOKENS_CLAIMED] == 2
        assert summary.head_hash == engine.journal.get_stats()["last_causal_hash"]

    def test_tampered_payload(self, config):
        populate(VestingEngine.open(config))
        path = Path(config.journal_path)
        rewrite_line(path, 1, lambda d: d["payload"].update(amount=999_999))
        replay = JournalReplay()
        replay.load(path)
        kinds = {v.violation_type for v in replay.verify().violations}
        assert "invalid_signature" in kinds
        assert "chain_break" in kinds

    def test_deleted_entry(self, config):
        populate(VestingEngine.open(config))
        path  = Path(config.journal_path)
        lines = path.read_text(encoding="utf-8").splitlines()
        del lines[3]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        replay = JournalReplay()
        replay.load(path)
        kinds = {v.violation_type for v in replay.verify().violations}
        assert {"sequence_gap", "chain_break"} <= kinds

    def test_foreign_signer(self, config):
        populate(VestingEngine.open(config))
        replay = JournalReplay(expected_signer=Ed25519KeyManager.generate().public_key_hex)
        replay.load(Path(config.journal_path))
        summary = replay.verify()
        assert {v.violation_type for v in summary.violations} == {"foreign_signer"}
        with pytest.raises(JournalError):
            replay.verify_or_raise()

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "journal.jsonl"
        path.write_text('{"journal_version": \n', encoding="utf-8")
        with pytest.raises(ValueError):
            JournalReplay().load(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            JournalReplay().load(tmp_path / "absent.jsonl")

    def test_export(self, config, tmp_path):
        populate(VestingEngine.open(config))
        replay = JournalReplay()
        replay.load(Path(config.journal_path))
        out = tmp_path / "reports" / "audit.json"
        replay.export_json(out)
        report = json.loads(out.read_text(encoding="utf-8"))["vestledger_journal_report"]
        assert report["valid"] is True
        assert report["total_entries"] == 7


# ─────────────────────────────────────────────────────────────
# Rebuild
# ─────────────────────────────────────────────────────────────

class TestRebuild:

    def test_reopen_restores_state(self, config):
        first = VestingEngine.open(config)
        populate(first)
        expected = snapshot(first)

        second = VestingEngine.open(config)
        assert snapshot(second) == expected
        assert second.get_schedule("acme", "carol").revoked_at == 400

    def test_reopened_engine_keeps_appending(self, config):
        populate(VestingEngine.open(config))
        engine = VestingEngine.open(config)
        engine.claim("acme", "bob", caller="bob", as_of=1000)

        third = VestingEngine.open(config)
        assert third.get_schedule("acme", "bob").total_withdrawn == 1000
        replay = JournalReplay()
        replay.load(Path(config.journal_path))
        assert replay.verify().valid

    def test_open_rejects_tampered_journal(self, config):
        populate(VestingEngine.open(config))
        rewrite_line(Path(config.journal_path), 4, lambda d: d["payload"].update(amount=1))
        with pytest.raises(JournalError):
            VestingEngine.open(config)

    def test_open_rejects_malformed_journal(self, config):
        populate(VestingEngine.open(config))
        with open(config.journal_path, "a", encoding="utf-8") as f:
            f.write("garbage\n")
        with pytest.raises(JournalError):
            VestingEngine.open(config)

    def test_signed_but_impossible_entry_rejected(self, config):
        engine = VestingEngine.open(config)
        engine.create_authority("acme", owner="alice", asset_id="ACME", as_of=0)
        engine.journal.emit(
            RecordType.TOKENS_CLAIMED,
            {"authority_id": "acme", "beneficiary": "bob", "claimed_at": 10, "amount": 5},
            actor="bob",
        )
        with pytest.raises(JournalError):
            VestingEngine.open(config)

    def test_rebuild_requires_empty_target(self, config):
        populate(VestingEngine.open(config))
        replay = JournalReplay()
        replay.load(Path(config.journal_path))
        target = VestingEngine()
        target.create_authority("other", owner="x", asset_id="X", as_of=0)
        with pytest.raises(JournalError):
            replay.rebuild(target)


# ─────────────────────────────────────────────────────────────
# Atomicity with journal writes
# ─────────────────────────────────────────────────────────────

class FailingJournal:
    """Journal stand-in whose writes fail for one record type."""

    def __init__(self, fail_on: str):
        self.fail_on = fail_on

    def emit(self, record_type, payload, actor):
        if record_type == self.fail_on:
            raise JournalError("Journal write failed — disk full")
        return None


class TestJournalFailure:

    def _engine(self, fail_on):
        engine = VestingEngine()
        engine.create_authority("acme", owner="alice", asset_id="ACME", as_of=0)
        engine.fund_treasury("acme", 1000, funder="alice")
        engine.create_schedule(
            "acme", caller="alice", beneficiary="bob",
            start_time=0, end_time=1000, cliff_time=0, total_amount=1000,
        )
        engine.attach_journal(FailingJournal(fail_on))
        return engine

    def test_claim_transfer_is_compensated(self):
        engine = self._engine(RecordType.TOKENS_CLAIMED)
        with pytest.raises(JournalError):
            engine.claim("acme", "bob", caller="bob", as_of=500)
        assert engine.get_schedule("acme", "bob").total_withdrawn == 0
        assert engine.treasury_balance("acme") == 1000
        assert engine.bank.balance("bob", "ACME") == 0

    def test_revoke_not_committed(self):
        engine = self._engine(RecordType.SCHEDULE_REVOKED)
        with pytest.raises(JournalError):
            engine.revoke("acme", "bob", caller="alice", as_of=500)
        assert engine.get_schedule("acme", "bob").revoked_at is None

    def test_funding_not_committed(self):
        engine = self._engine(RecordType.TREASURY_FUNDED)
        with pytest.raises(JournalError):
            engine.fund_treasury("acme", 50, funder="alice")
        assert engine.treasury_balance("acme") == 1000
