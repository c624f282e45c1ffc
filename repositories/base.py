"""
Base record store interface and the Supabase implementation.

A record store keeps keyed documents grouped in collections. Writes are
upserts of a partial field set, merged into or replacing the stored document.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from common.exceptions import RecordStoreException, ValidationException
from common.logging import get_logger

logger = get_logger("record_store")


class MergePolicy(str, Enum):
    """How an upsert treats fields already stored on the document."""
    MERGE = "merge"
    REPLACE = "replace"


@dataclass(frozen=True)
class Increment:
    """Field value that adds `amount` to the stored number (0 when absent)."""
    amount: int = 1


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


# Field value resolved to the store's current time in epoch milliseconds
SERVER_TIMESTAMP = _ServerTimestamp()


def now_ms() -> int:
    return int(time.time() * 1000)


def needs_existing(fields: Mapping[str, Any]) -> bool:
    return any(isinstance(v, Increment) for v in fields.values())


def resolve_fields(
    fields: Mapping[str, Any],
    existing: Optional[Mapping[str, Any]],
    timestamp_ms: int
) -> Dict[str, Any]:
    """Replace Increment / SERVER_TIMESTAMP sentinels with concrete values."""
    existing = existing or {}
    resolved: Dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, Increment):
            current = existing.get(key)
            if isinstance(current, bool) or not isinstance(current, (int, float)):
                current = 0
            resolved[key] = current + value.amount
        elif value is SERVER_TIMESTAMP:
            resolved[key] = timestamp_ms
        else:
            resolved[key] = value
    return resolved


class BaseRecordStore(ABC):
    """
    Abstract remote record store.
    """

    @abstractmethod
    async def upsert(
        self,
        collection: str,
        document_id: str,
        fields: Mapping[str, Any],
        merge_policy: MergePolicy = MergePolicy.MERGE
    ) -> Dict[str, Any]:
        """Write `fields` into the keyed document and return the stored document."""
        pass

    @abstractmethod
    async def get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a document, or None when it does not exist."""
        pass

    @abstractmethod
    async def delete(self, collection: str, document_id: str) -> bool:
        """Delete a document. Returns True if one was removed."""
        pass

    async def exists(self, collection: str, document_id: str) -> bool:
        return await self.get(collection, document_id) is not None

    def _require_key(self, collection: str, document_id: str) -> None:
        if not collection:
            raise ValidationException(detail="Collection name is required", field="collection")
        if not document_id:
            raise ValidationException(
                detail=f"Document id is required for collection '{collection}'",
                field="document_id",
                value=document_id
            )


class SupabaseRecordStore(BaseRecordStore):
    """
    Record store over Supabase: one table per collection, the document id
    kept in `id_column`.

    The Supabase client is synchronous, so every request runs in a worker
    thread and is awaited back on the event loop.
    """

    def __init__(self, supabase_client, id_column: str = "id"):
        self.supabase = supabase_client
        self.id_column = id_column

    async def get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        self._require_key(collection, document_id)
        try:
            return await asyncio.to_thread(self._select_one, collection, document_id)
        except Exception as e:
            logger.error(f"Failed to read {collection}/{document_id}: {e}", exc_info=True)
            raise RecordStoreException(
                detail=f"Failed to read document from {collection}",
                collection=collection,
                operation="get"
            ) from e

    async def upsert(
        self,
        collection: str,
        document_id: str,
        fields: Mapping[str, Any],
        merge_policy: MergePolicy = MergePolicy.MERGE
    ) -> Dict[str, Any]:
        self._require_key(collection, document_id)

        existing = None
        if needs_existing(fields):
            # Increments are read-modify-write; concurrent increments may race
            existing = await self.get(collection, document_id)

        row = resolve_fields(fields, existing, now_ms())
        row[self.id_column] = document_id

        try:
            if merge_policy == MergePolicy.REPLACE:
                stored = await asyncio.to_thread(self._replace_row, collection, document_id, row)
            else:
                stored = await asyncio.to_thread(self._upsert_row, collection, row)
        except Exception as e:
            logger.error(
                f"Failed to write {collection}/{document_id} ({merge_policy.value}): {e}",
                exc_info=True
            )
            raise RecordStoreException(
                detail=f"Failed to write document to {collection}",
                collection=collection,
                operation=f"upsert:{merge_policy.value}"
            ) from e

        logger.debug(f"Wrote {collection}/{document_id} ({merge_policy.value})")
        return stored

    async def delete(self, collection: str, document_id: str) -> bool:
        self._require_key(collection, document_id)
        try:
            res = await asyncio.to_thread(
                lambda: self.supabase.table(collection)
                .delete()
                .eq(self.id_column, document_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to delete {collection}/{document_id}: {e}", exc_info=True)
            raise RecordStoreException(
                detail=f"Failed to delete document from {collection}",
                collection=collection,
                operation="delete"
            ) from e
        return bool(getattr(res, "data", None))

    def _select_one(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table(collection)\
            .select("*")\
            .eq(self.id_column, document_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def _upsert_row(self, collection: str, row: Dict[str, Any]) -> Dict[str, Any]:
        # Postgres ON CONFLICT only updates the columns present in the row
        result = self.supabase.table(collection)\
            .upsert(row, on_conflict=self.id_column)\
            .execute()
        return result.data[0] if result.data else dict(row)

    def _replace_row(self, collection: str, document_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
        self.supabase.table(collection)\
            .delete()\
            .eq(self.id_column, document_id)\
            .execute()
        result = self.supabase.table(collection)\
            .insert(row)\
            .execute()
        return result.data[0] if result.data else dict(row)
