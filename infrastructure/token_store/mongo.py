"""MongoDB-backed TokenStore.

Revocation is a single find_one_and_update filtered on ``revoked_at: None``,
so of several concurrent revokes of one token exactly one matches.

Expiry is checked on the decoded document rather than in the query; stored
datetimes come back naive and are normalised to UTC by ApiTokenDoc.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from errors import AlreadyRevokedError, NotFoundError, StorageError
from schemas.models.api_token import ApiTokenDoc
from schemas.models.base import parse_object_id
from shared.logging import get_logger
from shared.result import Err, Ok, Result

log = get_logger(__name__)

TOKEN_NOT_FOUND = "token not found"


class MongoTokenStore:
    def __init__(self, collection: Collection) -> None:
        self._collection = collection

    def ensure_indexes(self) -> None:
        self._collection.create_index([("principal_id", ASCENDING)])
        self._collection.create_index([("token_digest", ASCENDING)], unique=True)
        self._collection.create_index(
            [("principal_id", ASCENDING), ("created_at", DESCENDING)]
        )

    def persist(self, record: ApiTokenDoc) -> Result[ApiTokenDoc]:
        if record.revoked_at is None:
            return self._insert(record)
        return self._mark_revoked(record)

    def _insert(self, record: ApiTokenDoc) -> Result[ApiTokenDoc]:
        try:
            self._collection.insert_one(record.to_mongo())
        except PyMongoError as e:
            return self._storage_error("insert", e, token_id=str(record.id))
        return Ok(record)

    def _mark_revoked(self, record: ApiTokenDoc) -> Result[ApiTokenDoc]:
        owned = {"_id": record.id, "principal_id": record.principal_id}
        try:
            doc = self._collection.find_one_and_update(
                {**owned, "revoked_at": None},
                {"$set": {"revoked_at": record.revoked_at}},
                return_document=ReturnDocument.AFTER,
            )
            if doc is None:
                exists = self._collection.count_documents(owned, limit=1) > 0
        except PyMongoError as e:
            return self._storage_error("revoke", e, token_id=str(record.id))

        if doc is not None:
            return Ok(ApiTokenDoc.from_mongo(doc))
        if exists:
            return Err(AlreadyRevokedError("token already revoked", field="token_id"))
        return Err(NotFoundError(TOKEN_NOT_FOUND))

    def list_by_principal(self, principal_id: str) -> Result[list[ApiTokenDoc]]:
        try:
            cursor = self._collection.find({"principal_id": principal_id}).sort(
                [("created_at", DESCENDING), ("_id", DESCENDING)]
            )
            docs = list(cursor)
        except PyMongoError as e:
            return self._storage_error("list", e, principal_id=principal_id)
        return Ok([ApiTokenDoc.from_mongo(d) for d in docs])

    def find_by_principal_and_id(
        self, principal_id: str, token_id: str
    ) -> Result[ApiTokenDoc]:
        oid = parse_object_id(token_id)
        if oid is None:
            return Err(NotFoundError(TOKEN_NOT_FOUND))
        try:
            doc = self._collection.find_one({"_id": oid, "principal_id": principal_id})
        except PyMongoError as e:
            return self._storage_error("find", e, token_id=str(token_id))
        if doc is None:
            return Err(NotFoundError(TOKEN_NOT_FOUND))
        return Ok(ApiTokenDoc.from_mongo(doc))

    def find_active_by_digest(
        self, digest: str, now: Optional[datetime] = None
    ) -> Result[ApiTokenDoc]:
        try:
            doc = self._collection.find_one({"token_digest": digest, "revoked_at": None})
        except PyMongoError as e:
            return self._storage_error("find_by_digest", e)
        record: Optional[ApiTokenDoc] = ApiTokenDoc.from_mongo(doc)
        if record is None or not record.is_active(now):
            return Err(NotFoundError(TOKEN_NOT_FOUND))
        return Ok(record)

    def _storage_error(self, operation: str, exc: PyMongoError, **context) -> Err:
        log.error(
            "api_token_store_error",
            operation=operation,
            error=str(exc),
            error_type=type(exc).__name__,
            **context,
        )
        return Err(StorageError(f"token store {operation} failed"))
