"""
tests/test_cli.py

vestledger CLI via click's CliRunner.

Every invocation opens the journal-backed engine afresh, so these tests
also cover persistence across process boundaries.
"""

import json

import pytest
from click.testing import CliRunner

from vestledger.cli import cli


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in ("VESTLEDGER_NAMESPACE", "VESTLEDGER_JOURNAL", "VESTLEDGER_KEY", "VESTLEDGER_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def run(tmp_path):
    runner  = CliRunner()
    journal = str(tmp_path / "journal.jsonl")
    key     = str(tmp_path / "signer.pem")

    def invoke(*args):
        return runner.invoke(cli, ["--journal", journal, "--key", key, *args])

    invoke.journal = journal
    return invoke


def setup_schedule(run):
    assert run("authority", "create", "acme", "--owner", "alice", "--asset", "ACME", "--as-of", "0").exit_code == 0
    assert run("fund", "acme", "5000", "--funder", "alice").exit_code == 0
    result = run(
        "schedule", "create", "acme", "bob", "--caller", "alice",
        "--start", "0", "--end", "1000", "--cliff", "100", "--amount", "1000",
    )
    assert result.exit_code == 0, result.output


class TestLedgerCommands:

    def test_authority_create_and_show(self, run):
        result = run("authority", "create", "acme", "--owner", "alice", "--asset", "ACME", "--as-of", "0")
        assert result.exit_code == 0, result.output
        created = json.loads(result.stdout)
        assert created["id"] == "acme"

        shown = json.loads(run("authority", "show", "acme").stdout)
        assert shown["address"] == created["address"]
        assert shown["treasury_balance"] == 0

    def test_authority_list(self, run):
        run("authority", "create", "acme", "--owner", "alice", "--asset", "ACME", "--as-of", "0")
        listed = json.loads(run("authority", "list", "--owner", "alice").stdout)
        assert [a["id"] for a in listed] == ["acme"]

    def test_schedule_show_and_list(self, run):
        setup_schedule(run)
        shown = json.loads(run("schedule", "show", "acme", "bob").stdout)
        assert shown["total_amount"] == 1000
        by_authority   = json.loads(run("schedule", "list", "--authority", "acme").stdout)
        by_beneficiary = json.loads(run("schedule", "list", "--beneficiary", "bob").stdout)
        assert by_authority == by_beneficiary == [shown]

    def test_schedule_list_needs_one_filter(self, run):
        assert run("schedule", "list").exit_code == 2

    def test_claim_vested_and_funding(self, run):
        setup_schedule(run)
        vested = json.loads(run("vested", "acme", "bob", "--as-of", "400").stdout)
        assert vested["vested"] == 400
        assert vested["claimable"] == 400

        receipt = json.loads(run("claim", "acme", "bob", "--as-of", "400").stdout)
        assert receipt["amount"] == 400
        assert receipt["schedule"]["total_withdrawn"] == 400

        report = json.loads(run("funding", "acme").stdout)
        assert report["treasury_balance"] == 4600
        assert report["active_liability"] == 600
        assert report["sufficiently_funded"] is True

    def test_revoke_then_claim(self, run):
        setup_schedule(run)
        revoked = json.loads(run("revoke", "acme", "bob", "--caller", "alice", "--as-of", "500").stdout)
        assert revoked["revoked_at"] == 500
        receipt = json.loads(run("claim", "acme", "bob", "--as-of", "900").stdout)
        assert receipt["amount"] == 500


class TestErrors:

    def test_engine_error_exits_1(self, run):
        setup_schedule(run)
        result = run("revoke", "acme", "bob", "--caller", "mallory", "--as-of", "500")
        assert result.exit_code == 1
        assert "ERROR [Unauthorized]" in result.output

    def test_cliff_gate(self, run):
        setup_schedule(run)
        result = run("claim", "acme", "bob", "--as-of", "50")
        assert result.exit_code == 1
        assert "ERROR [ClaimNotYetAvailable]" in result.output

    def test_unknown_authority(self, run):
        result = run("authority", "show", "nobody")
        assert result.exit_code == 1
        assert "ERROR [RecordNotFound]" in result.output

    def test_tampered_journal_exits_2(self, run):
        setup_schedule(run)
        with open(run.journal, "a", encoding="utf-8") as f:
            f.write("not json\n")
        assert run("authority", "show", "acme").exit_code == 2

    def test_bad_config_file(self, tmp_path):
        (tmp_path / "bad.yaml").write_text("retries: 3\n", encoding="utf-8")
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "bad.yaml"), "authority", "show", "x"])
        assert result.exit_code == 2


class TestVerifyCommand:

    def test_valid_journal(self, run):
        setup_schedule(run)
        result = run("verify", "--format", "json", "--rebuild")
        assert result.exit_code == 0, result.output
        out = json.loads(result.stdout)["vestledger_verify"]
        assert out["journal_valid"] is True
        assert out["total_entries"] == 3

    def test_human_output(self, run):
        setup_schedule(run)
        result = run("verify", "--no-color")
        assert result.exit_code == 0
        assert "VALID" in result.output

    def test_tampered_journal_exits_1(self, run):
        setup_schedule(run)
        with open(run.journal, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
        data = json.loads(lines[1])
        data["payload"]["amount"] = 10**9
        lines[1] = json.dumps(data)
        with open(run.journal, "w", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

        result = run("verify", "--format", "compact", "--no-color")
        assert result.exit_code == 1
        assert result.output.startswith("INVALID")

    def test_missing_journal_exits_2(self, run, tmp_path):
        assert run("verify", str(tmp_path / "absent.jsonl"), "--quiet").exit_code == 2

    def test_export(self, run, tmp_path):
        setup_schedule(run)
        out = tmp_path / "audit.json"
        assert run("verify", "--quiet", "--export", str(out)).exit_code == 0
        assert json.loads(out.read_text(encoding="utf-8"))["vestledger_journal_report"]["valid"]
