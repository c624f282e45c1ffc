"""
In-memory record store used by tests and local development.
"""

import asyncio
import copy
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from common.exceptions import RecordStoreException
from common.logging import get_logger
from repositories.base import (
    BaseRecordStore,
    MergePolicy,
    now_ms,
    resolve_fields,
)

logger = get_logger("memory_record_store")


class InMemoryRecordStore(BaseRecordStore):
    """
    Dictionary-backed record store.

    `delay_ms` simulates network latency; collections listed in
    `failing_collections` raise RecordStoreException on every access.
    """

    def __init__(self, delay_ms: int = 0, id_column: str = "id"):
        self.delay_ms = delay_ms
        self.id_column = id_column
        self.failing_collections: Set[str] = set()
        self.calls: List[Tuple[str, str, str]] = []
        self._documents: Dict[str, Dict[str, Dict[str, Any]]] = {}

    async def _simulate_latency(self) -> None:
        await asyncio.sleep(self.delay_ms / 1000 if self.delay_ms else 0)

    def _check_failure(self, collection: str, operation: str) -> None:
        if collection in self.failing_collections:
            raise RecordStoreException(
                detail=f"Simulated failure for {collection}",
                collection=collection,
                operation=operation
            )

    async def get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        self._require_key(collection, document_id)
        self.calls.append(("get", collection, document_id))
        await self._simulate_latency()
        self._check_failure(collection, "get")
        doc = self._documents.get(collection, {}).get(document_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def upsert(
        self,
        collection: str,
        document_id: str,
        fields: Mapping[str, Any],
        merge_policy: MergePolicy = MergePolicy.MERGE
    ) -> Dict[str, Any]:
        self._require_key(collection, document_id)
        self.calls.append((f"upsert:{merge_policy.value}", collection, document_id))
        await self._simulate_latency()
        self._check_failure(collection, f"upsert:{merge_policy.value}")

        docs = self._documents.setdefault(collection, {})
        existing = docs.get(document_id)
        resolved = resolve_fields(fields, existing, now_ms())

        if merge_policy == MergePolicy.MERGE and existing is not None:
            stored = {**existing, **resolved}
        else:
            stored = dict(resolved)
        stored[self.id_column] = document_id

        docs[document_id] = copy.deepcopy(stored)
        logger.debug(f"Wrote {collection}/{document_id} ({merge_policy.value})")
        return copy.deepcopy(stored)

    async def delete(self, collection: str, document_id: str) -> bool:
        self._require_key(collection, document_id)
        self.calls.append(("delete", collection, document_id))
        await self._simulate_latency()
        self._check_failure(collection, "delete")
        return self._documents.get(collection, {}).pop(document_id, None) is not None

    def writes(self, collection: Optional[str] = None) -> List[Tuple[str, str, str]]:
        """Recorded upsert calls, optionally for one collection."""
        return [
            call for call in self.calls
            if call[0].startswith("upsert") and (collection is None or call[1] == collection)
        ]

    def seed(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        """Place a document directly, bypassing call recording."""
        doc = dict(fields)
        doc[self.id_column] = document_id
        self._documents.setdefault(collection, {})[document_id] = doc
