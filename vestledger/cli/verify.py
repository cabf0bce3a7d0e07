"""
vestledger/cli/verify.py

vestledger verify — Journal Verification CLI
============================================

Usage:
    vestledger verify [JOURNAL]                      Human output (default)
    vestledger verify [JOURNAL] --format json        Machine-readable JSON
    vestledger verify [JOURNAL] --format compact     One-line pipeline output
    vestledger verify [JOURNAL] --export report.json Export full audit report
    vestledger verify [JOURNAL] --quiet              Exit code only
    vestledger verify [JOURNAL] --signer <hex>       Require one signer key
    vestledger verify [JOURNAL] --rebuild            Also re-apply every entry

JOURNAL defaults to the configured journal_path.

Exit codes:
    0  Journal fully valid  (chain + signatures + schema [+ rebuild])
    1  Journal has violations, or an entry is rejected on rebuild
    2  Error  (file missing, malformed JSON, schema failure)
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from vestledger.core.exceptions import JournalError
from vestledger.engine import VestingEngine
from vestledger.journal.replay import JournalReplay, ReplaySummary


# ── ANSI color ────────────────────────────────────────────────────────────────

class _Color:
    """Auto-disables when not a TTY or --no-color is passed."""
    _on: bool = True

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def green(cls, s: str) -> str:
        return f"\033[32m{s}\033[0m" if cls._on else s

    @classmethod
    def red(cls, s: str) -> str:
        return f"\033[31m{s}\033[0m" if cls._on else s

    @classmethod
    def yellow(cls, s: str) -> str:
        return f"\033[33m{s}\033[0m" if cls._on else s

    @classmethod
    def dim(cls, s: str) -> str:
        return f"\033[2m{s}\033[0m" if cls._on else s


def _row(label: str, value: str) -> str:
    return f"  {_Color.dim(f'{label:<16}')}  {value}"


# ── CLI command ───────────────────────────────────────────────────────────────

@click.command(name="verify")
@click.argument("journal", type=click.Path(dir_okay=False), required=False)
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json", "compact"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format: human (default), json (CI/automation), compact (pipelines).",
)
@click.option(
    "--export", "export_path",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="Export full audit report to a JSON file.",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress all output. Use exit code only (0=valid, 1=invalid, 2=error).",
)
@click.option(
    "--signer",
    type=str,
    default=None,
    metavar="HEX",
    help="Expected Ed25519 public key; entries signed by any other key are violations.",
)
@click.option(
    "--rebuild",
    is_flag=True,
    default=False,
    help="Re-apply every entry to a fresh engine and check the outcomes match.",
)
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
@click.pass_context
def verify_command(
    ctx:         click.Context,
    journal:     Optional[str],
    fmt:         str,
    export_path: Optional[str],
    quiet:       bool,
    signer:      Optional[str],
    rebuild:     bool,
    no_color:    bool,
) -> None:
    """
    Verify a journal — chain integrity, signatures, schema.

    \b
    Examples:
      vestledger verify
      vestledger verify .vestledger/journal.jsonl --format json
      vestledger verify journal.jsonl --rebuild --quiet && echo "clean"
    """
    _Color.configure(not no_color)
    config       = ctx.obj["config"]
    journal_path = Path(journal or config.journal_path)

    if not journal_path.exists():
        _emit_error(f"Journal not found: {journal_path}", fmt, quiet)
        sys.exit(2)

    replay = JournalReplay(expected_signer=signer)
    try:
        replay.load(journal_path)
    except ValueError as e:
        _emit_error(str(e), fmt, quiet)
        sys.exit(2)

    summary = replay.verify()

    rebuild_error: Optional[str] = None
    if rebuild and summary.valid:
        engine = VestingEngine(namespace=config.namespace, max_id_length=config.max_id_length)
        try:
            replay.rebuild(engine)
        except JournalError as e:
            rebuild_error = str(e)

    journal_valid = summary.valid and rebuild_error is None

    if export_path:
        try:
            replay.export_json(Path(export_path))
        except OSError as e:
            if not quiet and fmt == "human":
                click.echo(_Color.yellow(f"\n  Export failed: {e}"), err=True)

    if quiet:
        sys.exit(0 if journal_valid else 1)

    if fmt == "json":
        _output_json(summary, journal_path, rebuild, rebuild_error, journal_valid)
    elif fmt == "compact":
        _output_compact(summary, journal_path, journal_valid)
    else:
        _output_human(summary, journal_path, rebuild, rebuild_error, journal_valid, export_path)

    sys.exit(0 if journal_valid else 1)


# ── Human output ──────────────────────────────────────────────────────────────

def _output_human(
    summary:       ReplaySummary,
    journal_path:  Path,
    rebuild:       bool,
    rebuild_error: Optional[str],
    journal_valid: bool,
    export_path:   Optional[str],
) -> None:
    BAR = "─" * 68
    total = summary.total_entries

    click.echo()
    click.echo("  VestLedger  ·  Journal Verification")
    click.echo(f"  {BAR}")
    click.echo(_row("Journal", str(journal_path)))
    click.echo(_row("Entries", f"{total:,}"))
    click.echo(_row("Signers", ", ".join(k[:16] + "..." for k in summary.signers_seen) or "-"))

    by_type = {}
    for v in summary.violations:
        by_type.setdefault(v.violation_type, []).append(v)

    def status(kind: str, ok_text: str) -> str:
        found = by_type.get(kind, [])
        return _Color.green(ok_text) if not found else _Color.red(f"{len(found)} violation(s)")

    click.echo(_row("Chain",      status("chain_break", "intact")))
    click.echo(_row("Sequence",   status("sequence_gap", "contiguous")))
    click.echo(_row("Nonces",     status("duplicate_nonce", "unique")))
    click.echo(_row("Signatures", status(
        "invalid_signature", f"{summary.valid_signatures:,} / {total:,} valid",
    )))
    if "foreign_signer" in by_type:
        click.echo(_row("Signer", _Color.red(f"{len(by_type['foreign_signer'])} foreign")))

    if rebuild:
        if rebuild_error is None and summary.valid:
            click.echo(_row("Rebuild", _Color.green("all entries re-applied")))
        elif rebuild_error is not None:
            click.echo(_row("Rebuild", _Color.red(rebuild_error)))
        else:
            click.echo(_row("Rebuild", _Color.dim("skipped (journal invalid)")))

    if summary.record_type_counts:
        click.echo(_row("Record types", "  ".join(
            f"{k}: {v:,}" for k, v in sorted(summary.record_type_counts.items())
        )))
    if summary.head_hash:
        click.echo(_row("Chain head", summary.head_hash))
    if export_path:
        click.echo(_row("Exported", export_path))

    if summary.violations:
        click.echo(f"  {BAR}")
        for v in summary.violations:
            click.echo(f"  {v.at_sequence:>6}  {_Color.yellow(f'{v.violation_type:<18}')}  {v.detail}")

    click.echo(f"  {BAR}")
    if journal_valid:
        click.echo(_Color.green("  VALID  ·  journal integrity confirmed"))
    else:
        n = len(summary.violations) + (1 if rebuild_error else 0)
        click.echo(_Color.red(f"  INVALID  ·  {n} problem(s)"))
    click.echo()


# ── JSON output ───────────────────────────────────────────────────────────────

def _output_json(
    summary:       ReplaySummary,
    journal_path:  Path,
    rebuild:       bool,
    rebuild_error: Optional[str],
    journal_valid: bool,
) -> None:
    out = {
        "vestledger_verify": {
            "journal":       str(journal_path),
            "journal_valid": journal_valid,
            "rebuild":       rebuild,
            "rebuild_error": rebuild_error,
            **summary.to_dict(),
        }
    }
    click.echo(json.dumps(out, indent=2))


# ── Compact output ────────────────────────────────────────────────────────────

def _output_compact(summary: ReplaySummary, journal_path: Path, journal_valid: bool) -> None:
    """
    Format:
        VALID    journal.jsonl     120 entries  0 violations
    """
    status = "VALID" if journal_valid else "INVALID"
    colour = _Color.green if journal_valid else _Color.red
    click.echo(
        colour(f"{status:<8}")
        + f"  {journal_path.name:<30}  {summary.total_entries:>10,} entries  "
        + f"{len(summary.violations)} violations"
    )


# ── Error output ──────────────────────────────────────────────────────────────

def _emit_error(msg: str, fmt: str, quiet: bool) -> None:
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({
            "vestledger_verify": {
                "error":         msg,
                "journal_valid": False,
            }
        }))
    else:
        click.echo(_Color.red(f"\n  ERROR: {msg}\n"), err=True)
