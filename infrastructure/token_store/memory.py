"""In-process TokenStore.

Writes are serialised by a lock; records are frozen models that are replaced,
never mutated, so readers iterate a snapshot without taking the lock.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, Optional

from bson import ObjectId

from errors import AlreadyRevokedError, NotFoundError, StorageError
from schemas.models.api_token import ApiTokenDoc
from schemas.models.base import parse_object_id
from shared.result import Err, Ok, Result

TOKEN_NOT_FOUND = "token not found"


class InMemoryTokenStore:
    def __init__(self) -> None:
        self._records: Dict[ObjectId, ApiTokenDoc] = {}
        self._write_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def persist(self, record: ApiTokenDoc) -> Result[ApiTokenDoc]:
        if record.id is None:
            return Err(StorageError("record has no id"))
        with self._write_lock:
            current = self._records.get(record.id)
            if record.revoked_at is None:
                if current is not None:
                    return Err(StorageError("duplicate token id"))
                self._records[record.id] = record
                return Ok(record)

            if current is None or current.principal_id != record.principal_id:
                return Err(NotFoundError(TOKEN_NOT_FOUND))
            if current.revoked:
                return Err(AlreadyRevokedError("token already revoked", field="token_id"))
            updated = current.revoked_copy(record.revoked_at)
            self._records[record.id] = updated
            return Ok(updated)

    def list_by_principal(self, principal_id: str) -> Result[list[ApiTokenDoc]]:
        owned = [r for r in list(self._records.values()) if r.principal_id == principal_id]
        owned.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return Ok(owned)

    def find_by_principal_and_id(
        self, principal_id: str, token_id: str
    ) -> Result[ApiTokenDoc]:
        oid = parse_object_id(token_id)
        record = self._records.get(oid) if oid is not None else None
        if record is None or record.principal_id != principal_id:
            return Err(NotFoundError(TOKEN_NOT_FOUND))
        return Ok(record)

    def find_active_by_digest(
        self, digest: str, now: Optional[datetime] = None
    ) -> Result[ApiTokenDoc]:
        for record in list(self._records.values()):
            if record.token_digest == digest and record.is_active(now):
                return Ok(record)
        return Err(NotFoundError(TOKEN_NOT_FOUND))
