"""
VestingEngine — the single service instance.

Wires the registry, schedule ledger, claim and revocation processors and
funding guard over one injected RecordStore and AssetBank. Callers name
records by (authority_id, beneficiary); addresses are derived here.

    engine = VestingEngine()
    engine.create_authority("acme", owner="alice", asset_id="ACME", as_of=0)
    engine.fund_treasury("acme", 100_000, funder="alice")
    engine.create_schedule("acme", caller="alice", beneficiary="bob",
                           start_time=0, end_time=1000, cliff_time=100,
                           total_amount=1000)
    receipt = engine.claim("acme", beneficiary="bob", caller="bob", as_of=500)

as_of defaults to the injected clock. The engine never ticks on its own.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional

from vestledger.config import EngineConfig
from vestledger.core.address import DEFAULT_NAMESPACE, schedule_address
from vestledger.core.crypto import Ed25519KeyManager
from vestledger.core.exceptions import InvalidAmount, JournalError, Unauthorized
from vestledger.core.models import VestingAuthority, VestingSchedule, is_amount
from vestledger.core.time import unix_now
from vestledger.core.unlock import claimable_amount, vested_amount
from vestledger.journal.emitter import EventJournal
from vestledger.journal.entry import RecordType
from vestledger.journal.replay import JournalReplay
from vestledger.registry.authority import DEFAULT_MAX_ID_LENGTH, AuthorityRegistry
from vestledger.schedules.ledger import ScheduleLedger
from vestledger.settlement.claims import ClaimProcessor, ClaimReceipt
from vestledger.settlement.revocation import RevocationProcessor
from vestledger.storage.store import InMemoryRecordStore, RecordStore
from vestledger.treasury.bank import AssetBank, InMemoryAssetBank
from vestledger.treasury.guard import FundingGuard, FundingReport

logger = logging.getLogger(__name__)


class VestingEngine:

    def __init__(
        self,
        store:         Optional[RecordStore] = None,
        bank:          Optional[AssetBank] = None,
        journal:       Optional[EventJournal] = None,
        namespace:     str = DEFAULT_NAMESPACE,
        max_id_length: int = DEFAULT_MAX_ID_LENGTH,
        clock:         Callable[[], int] = unix_now,
    ):
        self.store     = store if store is not None else InMemoryRecordStore()
        self.bank      = bank if bank is not None else InMemoryAssetBank()
        self.namespace = namespace
        self.clock     = clock

        self.registry   = AuthorityRegistry(self.store, namespace, max_id_length)
        self.schedules  = ScheduleLedger(self.store, namespace)
        self.claims     = ClaimProcessor(self.store, self.bank)
        self.revocation = RevocationProcessor(self.store)
        self.funding    = FundingGuard(self.store, self.bank)

        self.journal: Optional[EventJournal] = None
        if journal is not None:
            self.attach_journal(journal)

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def open(cls, config: EngineConfig, clock: Callable[[], int] = unix_now) -> "VestingEngine":
        """
        Open a journal-backed engine.

        Loads (or creates) the signer key, verifies the existing journal,
        rebuilds state from it, then attaches it for further writes.

        Raises:
            JournalError — the journal fails verification or cannot be replayed
        """
        key    = Ed25519KeyManager.load_or_create(Path(config.key_path))
        engine = cls(
            namespace=     config.namespace,
            max_id_length= config.max_id_length,
            clock=         clock,
        )

        journal_path = Path(config.journal_path)
        if journal_path.exists():
            replay = JournalReplay(expected_signer=key.public_key_hex)
            try:
                replay.load(journal_path)
            except ValueError as exc:
                raise JournalError(str(exc), {"path": str(journal_path)}) from exc
            replay.verify_or_raise()
            replay.rebuild(engine)

        engine.attach_journal(EventJournal(key, str(journal_path)))
        return engine

    def attach_journal(self, journal: EventJournal) -> None:
        """Record every subsequent transition in `journal`."""
        self.journal            = journal
        self.registry.journal   = journal
        self.schedules.journal  = journal
        self.claims.journal     = journal
        self.revocation.journal = journal

    # ── State-changing operations ─────────────────────────────

    def create_authority(
        self,
        authority_id: str,
        owner:        str,
        asset_id:     str,
        as_of:        Optional[int] = None,
    ) -> VestingAuthority:
        return self.registry.create(authority_id, owner, asset_id, self._as_of(as_of))

    def create_schedule(
        self,
        authority_id: str,
        caller:       str,
        beneficiary:  str,
        start_time:   int,
        end_time:     int,
        cliff_time:   int,
        total_amount: int,
    ) -> VestingSchedule:
        authority = self.registry.get(authority_id)
        return self.schedules.create(
            authority,
            caller=       caller,
            beneficiary=  beneficiary,
            start_time=   start_time,
            end_time=     end_time,
            cliff_time=   cliff_time,
            total_amount= total_amount,
        )

    def claim(
        self,
        authority_id: str,
        beneficiary:  str,
        caller:       str,
        as_of:        Optional[int] = None,
    ) -> ClaimReceipt:
        """Withdraw the claimable balance. receipt.amount is the withdrawn delta."""
        authority = self.registry.get(authority_id)
        schedule  = self.schedules.get(authority, beneficiary)
        return self.claims.claim(schedule.address, authority, self._as_of(as_of), caller)

    def revoke(
        self,
        authority_id: str,
        beneficiary:  str,
        caller:       str,
        as_of:        Optional[int] = None,
    ) -> VestingSchedule:
        authority = self.registry.get(authority_id)
        schedule  = self.schedules.get(authority, beneficiary)
        return self.revocation.revoke(schedule.address, authority, self._as_of(as_of), caller)

    def fund_treasury(self, authority_id: str, amount: int, funder: str) -> int:
        """
        Deposit `amount` of the authority's asset into its treasury.
        Returns the new treasury balance.
        """
        if not isinstance(funder, str) or not funder:
            raise Unauthorized("An authenticated funder identity is required")
        if not is_amount(amount) or amount == 0:
            raise InvalidAmount("Funding amount must be a positive integer", {"amount": amount})

        authority = self.registry.get(authority_id)
        with self.store.locked(authority.address):
            if self.journal is not None:
                self.journal.emit(
                    RecordType.TREASURY_FUNDED,
                    {
                        "authority_id": authority.id,
                        "treasury":     authority.treasury_address,
                        "asset_id":     authority.asset_id,
                        "amount":       amount,
                    },
                    actor=funder,
                )
            self.bank.deposit(authority.treasury_address, authority.asset_id, amount)

        balance = self.treasury_balance(authority_id)
        logger.info("Treasury of %r funded with %d by %s (balance %d)",
                    authority_id, amount, funder, balance)
        return balance

    # ── Queries ───────────────────────────────────────────────

    def get_authority(self, authority_id: str) -> VestingAuthority:
        return self.registry.get(authority_id)

    def get_schedule(self, authority_id: str, beneficiary: str) -> VestingSchedule:
        return self.schedules.get(self.registry.get(authority_id), beneficiary)

    def authorities_owned_by(self, owner: str) -> List[VestingAuthority]:
        return self.registry.owned_by(owner)

    def schedules_for_authority(self, authority_id: str) -> List[VestingSchedule]:
        return self.schedules.for_authority(self.registry.get(authority_id))

    def schedules_for_beneficiary(self, beneficiary: str) -> List[VestingSchedule]:
        return self.schedules.for_beneficiary(beneficiary)

    def schedule_address(self, authority_id: str, beneficiary: str) -> str:
        """Where the schedule lives (or would live). No lookup involved."""
        authority = self.registry.get(authority_id)
        return schedule_address(beneficiary, authority.address, self.namespace)

    def vested_amount(
        self, authority_id: str, beneficiary: str, as_of: Optional[int] = None
    ) -> int:
        return vested_amount(self.get_schedule(authority_id, beneficiary), self._as_of(as_of))

    def claimable_amount(
        self, authority_id: str, beneficiary: str, as_of: Optional[int] = None
    ) -> int:
        return claimable_amount(self.get_schedule(authority_id, beneficiary), self._as_of(as_of))

    def treasury_balance(self, authority_id: str) -> int:
        authority = self.registry.get(authority_id)
        return self.bank.balance(authority.treasury_address, authority.asset_id)

    def funding_report(self, authority_id: str) -> FundingReport:
        return self.funding.report(self.registry.get(authority_id))

    def is_sufficiently_funded(self, authority_id: str) -> bool:
        return self.funding_report(authority_id).sufficiently_funded

    # ── Internal ──────────────────────────────────────────────

    def _as_of(self, as_of: Optional[int]) -> int:
        return self.clock() if as_of is None else as_of

    def __repr__(self) -> str:
        return (
            f"VestingEngine(namespace={self.namespace!r}, "
            f"records={len(self.store.authorities()) + len(self.store.schedules())}, "
            f"journal={str(self.journal.path) if self.journal else None!r})"
        )
