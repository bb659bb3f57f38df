"""
Tests for the document store backends.
"""

from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest

from app.core.config import Settings
from app.services.database import (
    InMemoryDocumentStore,
    SupabaseDocumentStore,
    create_document_store,
    escape_like,
)
from src.domain.exceptions import TransportError
from src.domain.interfaces import CaseInsensitive, NotEqual


class TestInMemoryDocumentStore:
    """Test cases for InMemoryDocumentStore."""

    def setup_method(self):
        """Set up test fixtures."""
        self.store = InMemoryDocumentStore()

    @pytest.mark.asyncio
    async def test_save_assigns_id_and_updates_in_place(self):
        saved = await self.store.save("site", {"uid": "a", "displayName": "Acme"})
        assert saved["_id"]

        saved["displayName"] = "Acme Corp"
        await self.store.save("site", saved)

        records = await self.store.query("site", {})
        assert len(records) == 1
        assert records[0]["displayName"] == "Acme Corp"

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self):
        await self.store.save("site", {"uid": "a", "active": False})

        record = await self.store.load_by_values("site", {"uid": "a"})
        record["active"] = True

        assert (await self.store.load_by_values("site", {"uid": "a"}))["active"] is False

    @pytest.mark.asyncio
    async def test_filters(self):
        first = await self.store.save("site", {"uid": "a", "displayName": "Acme"})
        await self.store.save("site", {"uid": "b", "displayName": "Beta"})

        assert await self.store.count("site", {"displayName": CaseInsensitive("ACME")}) == 1
        assert await self.store.count("site", {"_id": NotEqual(first["_id"])}) == 1
        assert await self.store.exists("site", {"uid": "b"})
        assert not await self.store.exists("site", {"uid": "c"})
        assert await self.store.load_by_values("site", {"uid": "c"}) is None
        assert await self.store.query("other", {}) == []

    @pytest.mark.asyncio
    async def test_health_check(self):
        await self.store.save("site", {"uid": "a"})
        health = await self.store.health_check()
        assert health["status"] == "healthy"
        assert health["collections"] == {"site": 1}


class TestSupabaseDocumentStore:
    """Test cases for SupabaseDocumentStore with a mocked client."""

    def setup_method(self):
        """Set up test fixtures."""
        self.settings = Settings(
            DOCUMENT_STORE_BACKEND="supabase",
            SUPABASE_URL="https://test.supabase.co",
            SUPABASE_SERVICE_ROLE_KEY="test-key",
        )
        self.store = SupabaseDocumentStore(self.settings)

        # query builder methods chain on the same object
        self.builder = MagicMock()
        for method in ("select", "eq", "ilike", "neq", "limit", "insert", "update"):
            getattr(self.builder, method).return_value = self.builder
        self.builder.execute = AsyncMock(return_value=Mock(data=[], count=0))
        self.client = MagicMock()
        self.client.table.return_value = self.builder

    @patch("app.services.database.acreate_client", new_callable=AsyncMock)
    @pytest.mark.asyncio
    async def test_client_created_once(self, mock_create_client):
        mock_create_client.return_value = self.client

        await self.store.client()
        await self.store.client()

        mock_create_client.assert_awaited_once_with("https://test.supabase.co", "test-key")

    @patch("app.services.database.acreate_client", new_callable=AsyncMock)
    @pytest.mark.asyncio
    async def test_count_applies_filter_operators(self, mock_create_client):
        mock_create_client.return_value = self.client
        self.builder.execute.return_value = Mock(data=[], count=2)

        count = await self.store.count("site", {"_id": NotEqual("r1"), "active": True})

        assert count == 2
        self.client.table.assert_called_with("site")
        self.builder.select.assert_called_with("_id", count="exact")
        self.builder.neq.assert_called_once_with("_id", "r1")
        self.builder.eq.assert_called_once_with("active", True)

    @patch("app.services.database.acreate_client", new_callable=AsyncMock)
    @pytest.mark.asyncio
    async def test_case_insensitive_count_rechecks_rows(self, mock_create_client):
        mock_create_client.return_value = self.client
        self.builder.execute.return_value = Mock(
            data=[{"_id": "r1", "displayName": "ACME_1"}, {"_id": "r2", "displayName": "AcmeX1"}],
            count=None,
        )

        count = await self.store.count("site", {"displayName": CaseInsensitive("Acme_1")})

        assert count == 1
        self.builder.select.assert_called_with("_id,displayName")
        self.builder.ilike.assert_called_once_with("displayName", "Acme\\_1")

    @patch("app.services.database.acreate_client", new_callable=AsyncMock)
    @pytest.mark.asyncio
    async def test_asterisk_in_display_name_is_not_a_wildcard(self, mock_create_client):
        mock_create_client.return_value = self.client
        # PostgREST expands the asterisk, so "Abc" comes back for "A*"
        self.builder.execute.return_value = Mock(
            data=[{"_id": "r1", "uid": "a", "displayName": "Abc"}], count=None
        )

        assert await self.store.count("site", {"displayName": CaseInsensitive("A*")}) == 0
        assert not await self.store.exists("site", {"displayName": CaseInsensitive("A*")})
        assert await self.store.query("site", {"displayName": CaseInsensitive("A*")}) == []
        assert await self.store.load_by_values("site", {"displayName": CaseInsensitive("A*")}) is None

        self.builder.execute.return_value = Mock(
            data=[{"_id": "r1", "uid": "a", "displayName": "Abc"}, {"_id": "r2", "uid": "b", "displayName": "a*"}],
            count=None,
        )
        assert await self.store.count("site", {"displayName": CaseInsensitive("A*")}) == 1
        record = await self.store.load_by_values("site", {"displayName": CaseInsensitive("A*")})
        assert record["uid"] == "b"

    @patch("app.services.database.acreate_client", new_callable=AsyncMock)
    @pytest.mark.asyncio
    async def test_load_by_values(self, mock_create_client):
        mock_create_client.return_value = self.client
        self.builder.execute.return_value = Mock(data=[{"_id": "r1", "uid": "a"}], count=None)

        record = await self.store.load_by_values("site", {"uid": "a"})

        assert record == {"_id": "r1", "uid": "a"}
        self.builder.limit.assert_called_once_with(1)

    @patch("app.services.database.acreate_client", new_callable=AsyncMock)
    @pytest.mark.asyncio
    async def test_save_inserts_new_and_updates_existing(self, mock_create_client):
        mock_create_client.return_value = self.client

        inserted = await self.store.save("site", {"uid": "a", "active": False})
        assert inserted["_id"]
        self.builder.insert.assert_called_once()

        await self.store.save("site", {"_id": "r1", "uid": "a", "active": True})
        self.builder.update.assert_called_once_with({"uid": "a", "active": True})
        self.builder.eq.assert_called_with("_id", "r1")

    @patch("app.services.database.acreate_client", new_callable=AsyncMock)
    @pytest.mark.asyncio
    async def test_backend_errors_become_transport_errors(self, mock_create_client):
        mock_create_client.return_value = self.client
        self.builder.execute.side_effect = Exception("connection refused")

        with pytest.raises(TransportError) as exc_info:
            await self.store.query("site", {})
        assert exc_info.value.details["backend"] == "supabase"

        health = await self.store.health_check()
        assert health["status"] == "unhealthy"


def test_escape_like():
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"


def test_create_document_store_selects_backend():
    assert isinstance(create_document_store(Settings(DOCUMENT_STORE_BACKEND="memory")), InMemoryDocumentStore)
    assert isinstance(
        create_document_store(Settings(DOCUMENT_STORE_BACKEND="supabase")), SupabaseDocumentStore
    )
