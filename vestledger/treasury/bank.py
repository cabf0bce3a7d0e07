"""
Asset transfer primitive.

The engine never moves tokens itself. It hands a TransferInstruction to
an AssetBank, which either applies it in full or raises
InsufficientFunds and changes nothing.
"""

import logging
import threading
from typing import Dict, Tuple

from vestledger.core.exceptions import InsufficientFunds, InvalidAmount
from vestledger.core.models import TransferInstruction, is_amount

logger = logging.getLogger(__name__)


class AssetBank:
    """Transfer primitive contract: transfer(from, to, amount) → ok | InsufficientFunds."""

    def balance(self, account: str, asset_id: str) -> int:
        raise NotImplementedError

    def deposit(self, account: str, asset_id: str, amount: int) -> None:
        raise NotImplementedError

    def transfer(self, instruction: TransferInstruction) -> None:
        raise NotImplementedError


class InMemoryAssetBank(AssetBank):
    """Balances per (account, asset_id). All operations are atomic."""

    def __init__(self) -> None:
        self._balances: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def balance(self, account: str, asset_id: str) -> int:
        with self._lock:
            return self._balances.get((account, asset_id), 0)

    def deposit(self, account: str, asset_id: str, amount: int) -> None:
        if not is_amount(amount) or amount == 0:
            raise InvalidAmount(
                "Deposit amount must be a positive integer",
                {"amount": amount},
            )
        with self._lock:
            key = (account, asset_id)
            self._balances[key] = self._balances.get(key, 0) + amount
        logger.debug("Deposited %d %s into %s", amount, asset_id, account[:12])

    def transfer(self, instruction: TransferInstruction) -> None:
        if not is_amount(instruction.amount) or instruction.amount == 0:
            raise InvalidAmount(
                "Transfer amount must be a positive integer",
                {"amount": instruction.amount},
            )
        source = (instruction.source, instruction.asset_id)
        dest   = (instruction.destination, instruction.asset_id)

        with self._lock:
            available = self._balances.get(source, 0)
            if available < instruction.amount:
                raise InsufficientFunds(
                    "Source account cannot cover transfer",
                    {
                        "source":    instruction.source,
                        "asset_id":  instruction.asset_id,
                        "requested": instruction.amount,
                        "available": available,
                    },
                )
            self._balances[source] = available - instruction.amount
            self._balances[dest]   = self._balances.get(dest, 0) + instruction.amount

        logger.debug(
            "Transferred %d %s from %s to %s",
            instruction.amount, instruction.asset_id,
            instruction.source[:12], instruction.destination[:12],
        )
