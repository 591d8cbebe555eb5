"""Unit tests for the TokenStore implementations.

Every test in TestTokenStoreContract runs against both MongoTokenStore
(mongomock) and InMemoryTokenStore via the parametrized ``store`` fixture.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from errors import AlreadyRevokedError, NotFoundError, StorageError
from infrastructure.token_store.mongo import MongoTokenStore
from schemas.models.api_token import ApiTokenDoc
from shared.crypto import hash_token

T0 = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_record(principal_id="user-1", *, minutes=0, secret=None, **overrides):
    secret = secret or f"apt_{ObjectId()}"
    fields = dict(
        id=ObjectId(),
        principal_id=principal_id,
        name="token",
        token_prefix=secret[:8],
        token_digest=hash_token(secret),
        scopes=["read:projects"],
        created_at=T0 + timedelta(minutes=minutes),
    )
    fields.update(overrides)
    return ApiTokenDoc(**fields)


class TestTokenStoreContract:
    def test_persist_and_find(self, store):
        record = make_record()
        assert store.persist(record).unwrap() == record
        found = store.find_by_principal_and_id("user-1", str(record.id)).unwrap()
        assert found.id == record.id
        assert found.token_digest == record.token_digest
        assert found.scopes == record.scopes

    def test_persist_duplicate_id_is_storage_error(self, store):
        record = make_record()
        store.persist(record)
        assert isinstance(store.persist(record).unwrap_err(), StorageError)

    def test_list_newest_first(self, store):
        older = make_record(minutes=0)
        newer = make_record(minutes=5)
        store.persist(older)
        store.persist(newer)
        ids = [r.id for r in store.list_by_principal("user-1").unwrap()]
        assert ids == [newer.id, older.id]

    def test_list_scoped_by_principal(self, store):
        mine = make_record("user-1")
        theirs = make_record("user-2")
        store.persist(mine)
        store.persist(theirs)
        listed = store.list_by_principal("user-1").unwrap()
        assert [r.id for r in listed] == [mine.id]
        assert store.list_by_principal("nobody").unwrap() == []

    @pytest.mark.parametrize(
        "principal, token_id",
        [
            ("user-2", None),  # exists, other principal
            ("user-1", str(ObjectId())),  # unknown id
            ("user-1", "not-an-object-id"),  # malformed id
        ],
        ids=["other_principal", "unknown", "malformed"],
    )
    def test_find_not_found_is_indistinguishable(self, store, principal, token_id):
        record = make_record("user-1")
        store.persist(record)
        result = store.find_by_principal_and_id(principal, token_id or str(record.id))
        error = result.unwrap_err()
        assert type(error) is NotFoundError
        assert error.message == "token not found"

    def test_find_active_by_digest(self, store):
        record = make_record(secret="apt_known")
        store.persist(record)
        found = store.find_active_by_digest(hash_token("apt_known"), T0)
        assert found.unwrap().id == record.id

    def test_find_active_by_digest_unknown(self, store):
        result = store.find_active_by_digest(hash_token("apt_never"), T0)
        assert isinstance(result.unwrap_err(), NotFoundError)

    def test_find_active_by_digest_skips_expired(self, store):
        record = make_record(secret="apt_exp", expires_at=T0 + timedelta(hours=1))
        store.persist(record)
        assert store.find_active_by_digest(hash_token("apt_exp"), T0).is_ok()
        later = store.find_active_by_digest(hash_token("apt_exp"), T0 + timedelta(hours=2))
        assert isinstance(later.unwrap_err(), NotFoundError)

    def test_revoke_via_persist(self, store):
        record = make_record(secret="apt_rev")
        store.persist(record)
        updated = store.persist(record.revoked_copy(T0 + timedelta(minutes=1))).unwrap()
        assert updated.revoked_at == T0 + timedelta(minutes=1)
        assert store.find_by_principal_and_id("user-1", str(record.id)).unwrap().revoked
        result = store.find_active_by_digest(hash_token("apt_rev"), T0)
        assert isinstance(result.unwrap_err(), NotFoundError)

    def test_second_revoke_is_conflict_and_keeps_first_timestamp(self, store):
        record = make_record()
        store.persist(record)
        first = T0 + timedelta(minutes=1)
        store.persist(record.revoked_copy(first))
        second = store.persist(record.revoked_copy(T0 + timedelta(minutes=9)))
        assert isinstance(second.unwrap_err(), AlreadyRevokedError)
        stored = store.find_by_principal_and_id("user-1", str(record.id)).unwrap()
        assert stored.revoked_at == first

    def test_revoke_other_principals_token_is_not_found(self, store):
        record = make_record("user-1")
        store.persist(record)
        forged = record.model_copy(update={"principal_id": "user-2"})
        result = store.persist(forged.revoked_copy(T0))
        assert type(result.unwrap_err()) is NotFoundError
        assert not store.find_by_principal_and_id("user-1", str(record.id)).unwrap().revoked

    def test_revoke_unknown_token_is_not_found(self, store):
        result = store.persist(make_record().revoked_copy(T0))
        assert isinstance(result.unwrap_err(), NotFoundError)


class TestMongoTokenStore:
    def test_indexes(self, mongo_collection, mongo_store):
        info = mongo_collection.index_information()
        digest_index = [v for v in info.values() if v["key"] == [("token_digest", 1)]]
        assert digest_index and digest_index[0].get("unique") is True

    def test_stored_document_has_no_raw_secret(self, mongo_collection, mongo_store):
        record = make_record(secret="apt_plaintext")
        mongo_store.persist(record)
        doc = mongo_collection.find_one({"_id": record.id})
        assert "apt_plaintext" not in str(doc)
        assert doc["token_digest"] == hash_token("apt_plaintext")

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.persist(make_record()),
            lambda s: s.persist(make_record().revoked_copy(T0)),
            lambda s: s.list_by_principal("user-1"),
            lambda s: s.find_by_principal_and_id("user-1", str(ObjectId())),
            lambda s: s.find_active_by_digest("ab" * 32),
        ],
        ids=["insert", "revoke", "list", "find", "find_by_digest"],
    )
    def test_backend_failure_is_storage_error(self, call):
        collection = MagicMock()
        failure = ServerSelectionTimeoutError("no servers")
        collection.insert_one.side_effect = failure
        collection.find_one_and_update.side_effect = failure
        collection.find.side_effect = failure
        collection.find_one.side_effect = failure
        result = call(MongoTokenStore(collection))
        assert isinstance(result.unwrap_err(), StorageError)

    def test_programming_errors_propagate(self):
        collection = MagicMock()
        collection.find_one.side_effect = TypeError("bug")
        with pytest.raises(TypeError):
            MongoTokenStore(collection).find_active_by_digest("ab" * 32)


class TestInMemoryTokenStore:
    def test_len(self, memory_store):
        memory_store.persist(make_record())
        assert len(memory_store) == 1

    def test_record_without_id_rejected(self, memory_store):
        result = memory_store.persist(make_record(id=None))
        assert isinstance(result.unwrap_err(), StorageError)
