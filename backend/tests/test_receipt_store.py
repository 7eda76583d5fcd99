from __future__ import annotations

import pytest
from bson import ObjectId

from receipt_scanner.services.receipt_store import StorageFailure, parse_object_id


def test_parse_object_id():
    oid = ObjectId()
    assert parse_object_id(str(oid)) == oid
    assert parse_object_id("not-an-id") is None
    assert parse_object_id("") is None
    assert parse_object_id(None) is None
    assert parse_object_id(12345) is None


def test_create_stamps_timestamps(store, clock):
    rid = store.create({"processedData": {"items": []}})
    doc = store.get_by_id(rid)
    assert str(doc["_id"]) == rid
    assert doc["createdAt"] == doc["updatedAt"] == clock.now
    assert doc["processedData"] == {"items": []}


def test_create_does_not_mutate_input(store):
    payload = {"originalData": {"imageUri": "x"}}
    store.create(payload)
    assert payload == {"originalData": {"imageUri": "x"}}


def test_get_by_id_missing_or_invalid(store):
    assert store.get_by_id(str(ObjectId())) is None
    assert store.get_by_id("garbage") is None


def test_update_merges_top_level_keys(store):
    rid = store.create({"originalData": {"a": 1}, "processedData": {"items": [1]}})
    assert store.update_by_id(rid, {"processedData": {"items": [2]}, "extra": True}) is True
    doc = store.get_by_id(rid)
    assert doc["originalData"] == {"a": 1}
    assert doc["processedData"] == {"items": [2]}
    assert doc["extra"] is True


def test_update_preserves_created_at_and_refreshes_updated_at(store):
    rid = store.create({"originalData": {}})
    created = store.get_by_id(rid)
    store.update_by_id(rid, {"createdAt": "overwritten?", "note": "x"})
    updated = store.get_by_id(rid)
    assert updated["createdAt"] == created["createdAt"]
    assert updated["updatedAt"] > created["updatedAt"]


def test_update_ignores_id_in_patch(store):
    rid = store.create({"originalData": {}})
    assert store.update_by_id(rid, {"_id": ObjectId(), "note": "x"}) is True


def test_update_missing_document_returns_false(store):
    assert store.update_by_id(str(ObjectId()), {"note": "x"}) is False
    assert store._collection().count_documents({}) == 0


def test_update_invalid_id_returns_false(store):
    assert store.update_by_id("nope", {"note": "x"}) is False


def test_noop_update_still_succeeds(store):
    rid = store.create({"note": "same"})
    assert store.update_by_id(rid, {"note": "same"}) is True


def test_create_rejects_unencodable_value(store):
    with pytest.raises(StorageFailure):
        store.create({"originalData": {"n": 10**30}})
    assert store._collection().count_documents({}) == 0


def test_update_with_unencodable_value_returns_false(store):
    rid = store.create({"note": "x"})
    assert store.update_by_id(rid, {"note": 10**30}) is False
