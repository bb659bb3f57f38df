"""
Document store backends for site records.

Provides a Supabase-backed store for clustered deployments and an in-memory
store for single node development. Both implement the domain's
DocumentStoreInterface.
"""

import asyncio
import copy
import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from supabase import AsyncClient, acreate_client

from app.core.config import Settings, get_settings
from src.domain.exceptions import TransportError
from src.domain.interfaces import CaseInsensitive, DocumentStoreInterface, NotEqual

logger = logging.getLogger(__name__)

ID_FIELD = "_id"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so that ``ilike`` performs an exact match."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SupabaseDocumentStore(DocumentStoreInterface):
    """
    Document store on top of Supabase tables.

    Each collection is a table whose columns mirror the record fields.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._client: Optional[AsyncClient] = None
        self._lock = asyncio.Lock()

    async def client(self) -> AsyncClient:
        """Get or create the Supabase client instance."""
        if self._client is None:
            async with self._lock:
                if self._client is None:
                    self._client = await acreate_client(
                        self.settings.SUPABASE_URL,
                        self.settings.SUPABASE_SERVICE_ROLE_KEY,
                    )
        return self._client

    @staticmethod
    def _apply_filters(query, where: Dict[str, Any]):
        for field, value in where.items():
            if isinstance(value, CaseInsensitive):
                query = query.ilike(field, escape_like(value.value))
            elif isinstance(value, NotEqual):
                query = query.neq(field, value.value)
            else:
                query = query.eq(field, value)
        return query

    @staticmethod
    def _case_insensitive_fields(where: Dict[str, Any]) -> List[str]:
        return [field for field, value in where.items() if isinstance(value, CaseInsensitive)]

    @staticmethod
    def _exact_rows(rows: List[Dict[str, Any]], where: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Keep the rows whose case-insensitive fields equal the filter value.

        PostgREST reads ``*`` in an ``ilike`` pattern as a wildcard and offers
        no escape for it, so ``ilike`` only narrows the candidates.
        """
        return [
            row
            for row in rows
            if all(
                value.matches(row.get(field))
                for field, value in where.items()
                if isinstance(value, CaseInsensitive)
            )
        ]

    async def query(self, collection: str, where: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            client = await self.client()
            query = self._apply_filters(client.table(collection).select("*"), where)
            response = await query.execute()
        except Exception as e:
            logger.error(f"Supabase query on {collection} failed: {e}")
            raise TransportError(
                f"Query on {collection} failed: {e}", backend="supabase", operation="query"
            ) from e
        return self._exact_rows(response.data or [], where)

    async def count(self, collection: str, where: Dict[str, Any]) -> int:
        checked = self._case_insensitive_fields(where)
        try:
            client = await self.client()
            if checked:
                table = client.table(collection).select(",".join([ID_FIELD] + checked))
            else:
                table = client.table(collection).select(ID_FIELD, count="exact")
            response = await self._apply_filters(table, where).execute()
        except Exception as e:
            logger.error(f"Supabase count on {collection} failed: {e}")
            raise TransportError(
                f"Count on {collection} failed: {e}", backend="supabase", operation="count"
            ) from e
        if checked:
            return len(self._exact_rows(response.data or [], where))
        return response.count or 0

    async def exists(self, collection: str, where: Dict[str, Any]) -> bool:
        return await self.count(collection, where) > 0

    async def load_by_values(
        self, collection: str, where: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        try:
            client = await self.client()
            query = self._apply_filters(client.table(collection).select("*"), where)
            if not self._case_insensitive_fields(where):
                query = query.limit(1)
            response = await query.execute()
        except Exception as e:
            logger.error(f"Supabase load on {collection} failed: {e}")
            raise TransportError(
                f"Load on {collection} failed: {e}", backend="supabase", operation="load"
            ) from e
        rows = self._exact_rows(response.data or [], where)
        return rows[0] if rows else None

    async def save(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        record = dict(record)
        try:
            client = await self.client()
            if record.get(ID_FIELD):
                fields = {k: v for k, v in record.items() if k != ID_FIELD}
                response = await (
                    client.table(collection).update(fields).eq(ID_FIELD, record[ID_FIELD]).execute()
                )
            else:
                record[ID_FIELD] = uuid4().hex
                response = await client.table(collection).insert(record).execute()
        except Exception as e:
            logger.error(f"Supabase save on {collection} failed: {e}")
            raise TransportError(
                f"Save on {collection} failed: {e}", backend="supabase", operation="save"
            ) from e
        return response.data[0] if response.data else record

    async def health_check(self) -> Dict[str, Any]:
        """Perform document store health check."""
        try:
            await self.count(self.settings.SITE_COLLECTION, {})
            return {"status": "healthy", "backend": "supabase"}
        except TransportError as e:
            return {"status": "unhealthy", "backend": "supabase", "error": e.message}


class InMemoryDocumentStore(DocumentStoreInterface):
    """Process-local document store; records live only as long as the process."""

    def __init__(self):
        self._collections: Dict[str, List[Dict[str, Any]]] = {}

    @staticmethod
    def _matches(record: Dict[str, Any], where: Dict[str, Any]) -> bool:
        for field, value in where.items():
            candidate = record.get(field)
            if isinstance(value, (CaseInsensitive, NotEqual)):
                if not value.matches(candidate):
                    return False
            elif candidate != value:
                return False
        return True

    def _select(self, collection: str, where: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [r for r in self._collections.get(collection, []) if self._matches(r, where)]

    async def query(self, collection: str, where: Dict[str, Any]) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._select(collection, where))

    async def count(self, collection: str, where: Dict[str, Any]) -> int:
        return len(self._select(collection, where))

    async def exists(self, collection: str, where: Dict[str, Any]) -> bool:
        return any(True for _ in self._select(collection, where))

    async def load_by_values(
        self, collection: str, where: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        matches = self._select(collection, where)
        return copy.deepcopy(matches[0]) if matches else None

    async def save(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        records = self._collections.setdefault(collection, [])
        record = copy.deepcopy(record)
        if record.get(ID_FIELD):
            for index, existing in enumerate(records):
                if existing[ID_FIELD] == record[ID_FIELD]:
                    records[index] = record
                    return copy.deepcopy(record)
        else:
            record[ID_FIELD] = uuid4().hex
        records.append(record)
        return copy.deepcopy(record)

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "backend": "memory",
            "collections": {name: len(records) for name, records in self._collections.items()},
        }


def create_document_store(settings: Optional[Settings] = None) -> DocumentStoreInterface:
    """Build the document store selected by ``DOCUMENT_STORE_BACKEND``."""
    settings = settings or get_settings()
    if settings.DOCUMENT_STORE_BACKEND == "supabase":
        logger.info("Using Supabase document store")
        return SupabaseDocumentStore(settings)
    logger.info("Using in-memory document store")
    return InMemoryDocumentStore()
