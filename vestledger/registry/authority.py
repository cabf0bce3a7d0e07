"""
Vesting Authority Registry.

Append-only: authorities are created once and never updated or deleted.
Creating an authority also fixes its treasury account, derived from the
same id under the "treasury" domain and bound to this record alone.
"""

import logging
from typing import List, Optional

from vestledger.core.address import (
    DEFAULT_NAMESPACE,
    authority_address,
    treasury_address,
)
from vestledger.core.exceptions import AlreadyExists, InvalidId, RecordNotFound, Unauthorized
from vestledger.core.models import VestingAuthority, is_instant
from vestledger.journal.emitter import EventJournal
from vestledger.journal.entry import RecordType
from vestledger.storage.store import RecordStore

logger = logging.getLogger(__name__)

# Longest authority id, in UTF-8 bytes.
DEFAULT_MAX_ID_LENGTH = 30


class AuthorityRegistry:

    def __init__(
        self,
        store:         RecordStore,
        namespace:     str = DEFAULT_NAMESPACE,
        max_id_length: int = DEFAULT_MAX_ID_LENGTH,
        journal:       Optional[EventJournal] = None,
    ):
        self.store         = store
        self.namespace     = namespace
        self.max_id_length = max_id_length
        self.journal       = journal

    def create(
        self,
        authority_id: str,
        owner:        str,
        asset_id:     str,
        as_of:        int,
    ) -> VestingAuthority:
        """
        Register a new authority owned by `owner`.

        Raises:
            Unauthorized  — no authenticated owner identity
            InvalidId     — id empty, over max_id_length UTF-8 bytes, or asset_id empty
            AlreadyExists — the derived authority address is occupied
        """
        if not isinstance(owner, str) or not owner:
            raise Unauthorized("An authenticated owner identity is required")
        self._check_id(authority_id)
        if not isinstance(asset_id, str) or not asset_id:
            raise InvalidId("asset_id must be a non-empty string", {"field": "asset_id"})
        if not is_instant(as_of):
            raise TypeError(f"as_of must be int seconds, got {type(as_of).__name__}")

        address = authority_address(authority_id, self.namespace)

        with self.store.locked(address):
            if self.store.get_authority(address) is not None:
                raise AlreadyExists(
                    "Authority already exists",
                    {"id": authority_id, "address": address[:16]},
                )

            record = VestingAuthority(
                id=               authority_id,
                owner=            owner,
                asset_id=         asset_id,
                address=          address,
                treasury_address= treasury_address(authority_id, self.namespace),
                created_at=       as_of,
            )

            if self.journal is not None:
                self.journal.emit(RecordType.AUTHORITY_CREATED, record.to_dict(), actor=owner)
            self.store.insert_authority(record)

        logger.info("Authority %r created by %s for asset %s", authority_id, owner, asset_id)
        return record

    def get(self, authority_id: str) -> VestingAuthority:
        self._check_id(authority_id)
        record = self.store.get_authority(authority_address(authority_id, self.namespace))
        if record is None:
            raise RecordNotFound("No authority with this id", {"id": authority_id})
        return record

    def owned_by(self, owner: str) -> List[VestingAuthority]:
        return sorted(
            (a for a in self.store.authorities() if a.owner == owner),
            key=lambda a: a.id,
        )

    def _check_id(self, authority_id: str) -> None:
        if not isinstance(authority_id, str) or not authority_id:
            raise InvalidId("Authority id must be a non-empty string")
        size = len(authority_id.encode("utf-8"))
        if size > self.max_id_length:
            raise InvalidId(
                "Authority id is too long",
                {"bytes": size, "max": self.max_id_length},
            )
