"""
VestLedger: Basic Usage Example

Demonstrates:
- Creating an authority and funding its treasury
- A one-year schedule with a 30-day cliff
- Claiming, revoking, and claiming what stayed vested
- Reopening the engine from its signed journal
"""

import tempfile
from pathlib import Path

from vestledger import (
    ClaimNotYetAvailable,
    EngineConfig,
    VestingEngine,
)

DAY  = 86400
YEAR = 365 * DAY


def main():
    """Basic VestLedger usage."""

    print("=" * 60)
    print("VestLedger: Basic Usage Example")
    print("=" * 60)
    print()

    workdir = Path(tempfile.mkdtemp(prefix="vestledger-"))
    config  = EngineConfig(
        journal_path= str(workdir / "journal.jsonl"),
        key_path=     str(workdir / "signer.pem"),
    )

    # 1. Authority and treasury
    engine = VestingEngine.open(config)
    engine.create_authority("acme", owner="alice", asset_id="ACME", as_of=0)
    engine.fund_treasury("acme", 100_000, funder="alice")
    print(f"1. Treasury funded: {engine.treasury_balance('acme'):,} ACME")

    # 2. Schedule for bob
    engine.create_schedule(
        "acme",
        caller=       "alice",
        beneficiary=  "bob",
        start_time=   0,
        end_time=     YEAR,
        cliff_time=   30 * DAY,
        total_amount= 100_000,
    )
    print("2. Schedule: 100,000 ACME over one year, 30-day cliff")

    # 3. Before the cliff nothing can be claimed, even though some has accrued
    try:
        engine.claim("acme", "bob", caller="bob", as_of=29 * DAY)
    except ClaimNotYetAvailable as e:
        accrued = engine.vested_amount("acme", "bob", 29 * DAY)
        print(f"3. Day 29: {accrued:,} accrued, claim refused ({e.code})")

    # 4. Half-way claim
    receipt = engine.claim("acme", "bob", caller="bob", as_of=YEAR // 2)
    print(f"4. Day 182: claimed {receipt.amount:,}")

    # 5. Revoke at nine months; bob keeps what vested until then
    engine.revoke("acme", "bob", caller="alice", as_of=YEAR * 3 // 4)
    receipt = engine.claim("acme", "bob", caller="bob", as_of=YEAR)
    print(f"5. Revoked at 9 months; final claim {receipt.amount:,}")

    report = engine.funding_report("acme")
    print(f"   Treasury left: {report.treasury_balance:,}  liability: {report.active_liability:,}")

    # 6. Reopen from the journal
    reopened = VestingEngine.open(config)
    schedule = reopened.get_schedule("acme", "bob")
    print(f"6. Reopened: bob withdrew {schedule.total_withdrawn:,}, revoked_at={schedule.revoked_at}")
    print(f"   Journal: {config.journal_path}")
    print()
    print("Verify it with:")
    print(f"   vestledger --journal {config.journal_path} verify --rebuild")


if __name__ == "__main__":
    main()
