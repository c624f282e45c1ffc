import asyncio
from unittest.mock import MagicMock

import pytest

from common.exceptions import RecordStoreException, ValidationException
from repositories.base import (
    SERVER_TIMESTAMP,
    Increment,
    MergePolicy,
    SupabaseRecordStore,
    resolve_fields,
)
from repositories.memory_store import InMemoryRecordStore


def test_merge_keeps_untouched_fields(record_store):
    async def scenario():
        await record_store.upsert("Users", "u1", {"name": "Alex", "interest_sentence": "hi"})
        await record_store.upsert("Users", "u1", {"interest_tags": ["Jazz"], "interest_sentence": None})
        return await record_store.get("Users", "u1")

    doc = asyncio.run(scenario())
    assert doc == {"id": "u1", "name": "Alex", "interest_tags": ["Jazz"], "interest_sentence": None}


def test_replace_drops_previous_fields(record_store):
    async def scenario():
        await record_store.upsert("PhotoReports", "r1", {"reason": "Spam", "extra": 1})
        await record_store.upsert("PhotoReports", "r1", {"reason": "Violence"}, merge_policy=MergePolicy.REPLACE)
        return await record_store.get("PhotoReports", "r1")

    assert asyncio.run(scenario()) == {"id": "r1", "reason": "Violence"}


def test_increment_and_server_timestamp(record_store):
    fields = {"photo_reports_made": Increment(1), "last_report_time": SERVER_TIMESTAMP}

    async def scenario():
        await record_store.upsert("UserDevData", "d1", fields)
        return await record_store.upsert("UserDevData", "d1", fields)

    doc = asyncio.run(scenario())
    assert doc["photo_reports_made"] == 2
    assert isinstance(doc["last_report_time"], int)


def test_resolve_fields_treats_non_numbers_as_zero():
    resolved = resolve_fields({"n": Increment(3), "t": SERVER_TIMESTAMP, "x": "y"}, {"n": "oops"}, 1000)
    assert resolved == {"n": 3, "t": 1000, "x": "y"}


def test_failing_collection_raises_record_store_exception(record_store):
    record_store.failing_collections.add("Users")
    with pytest.raises(RecordStoreException) as exc_info:
        asyncio.run(record_store.upsert("Users", "u1", {"a": 1}))
    assert exc_info.value.status_code == 503


def test_empty_document_id_is_rejected(record_store):
    with pytest.raises(ValidationException):
        asyncio.run(record_store.get("Users", ""))


def test_returned_documents_are_copies(record_store):
    record_store.seed("Users", "u1", {"tags": ["a"]})
    doc = asyncio.run(record_store.get("Users", "u1"))
    doc["tags"].append("b")
    assert asyncio.run(record_store.get("Users", "u1"))["tags"] == ["a"]


def test_calls_are_recorded():
    store = InMemoryRecordStore()

    async def scenario():
        await store.upsert("A", "1", {"x": 1})
        await store.get("A", "1")
        await store.upsert("B", "2", {"y": 1}, merge_policy=MergePolicy.REPLACE)
        await store.delete("A", "1")

    asyncio.run(scenario())
    assert store.calls == [
        ("upsert:merge", "A", "1"),
        ("get", "A", "1"),
        ("upsert:replace", "B", "2"),
        ("delete", "A", "1"),
    ]
    assert store.writes("B") == [("upsert:replace", "B", "2")]


def make_supabase(rows):
    client = MagicMock()
    table = client.table.return_value
    table.select.return_value.eq.return_value.limit.return_value.execute.return_value = MagicMock(data=rows)
    table.upsert.return_value.execute.return_value = MagicMock(data=[{"id": "u1", "a": 1}])
    table.insert.return_value.execute.return_value = MagicMock(data=[{"id": "r1", "reason": "Spam"}])
    return client, table


def test_supabase_merge_uses_upsert_on_id():
    client, table = make_supabase([])
    store = SupabaseRecordStore(client)

    stored = asyncio.run(store.upsert("Users", "u1", {"a": 1}))

    table.upsert.assert_called_once_with({"a": 1, "id": "u1"}, on_conflict="id")
    assert stored == {"id": "u1", "a": 1}


def test_supabase_replace_deletes_then_inserts():
    client, table = make_supabase([])
    store = SupabaseRecordStore(client)

    asyncio.run(store.upsert("PhotoReports", "r1", {"reason": "Spam"}, merge_policy=MergePolicy.REPLACE))

    table.delete.return_value.eq.assert_called_with("id", "r1")
    table.insert.assert_called_once_with({"reason": "Spam", "id": "r1"})


def test_supabase_increment_reads_existing_row():
    client, table = make_supabase([{"id": "d1", "photo_reports_made": 4}])
    store = SupabaseRecordStore(client)

    asyncio.run(store.upsert("UserDevData", "d1", {"photo_reports_made": Increment(1)}))

    row = table.upsert.call_args.args[0]
    assert row["photo_reports_made"] == 5


def test_supabase_errors_are_wrapped():
    client = MagicMock()
    client.table.side_effect = ConnectionError("down")
    store = SupabaseRecordStore(client)

    with pytest.raises(RecordStoreException) as exc_info:
        asyncio.run(store.get("Users", "u1"))
    assert isinstance(exc_info.value.__cause__, ConnectionError)
