"""Tests for the metadata stores (Supabase client is mocked)."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from src.analysis.models import AnalysisRecord, Scene
from src.ingestion.storage import (
    InMemoryMetadataStore,
    SupabaseMetadataStore,
    get_metadata_store,
)
from src.pipeline_config import AnalysisStatus

RECORD = AnalysisRecord(
    asset_id="asset-1",
    summary="S",
    scenes=[Scene(start="0:00", end="0:05", label="L", description="D")],
    created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
)


class TestSupabaseMetadataStore:
    def test_save_asset_upserts_by_id(self) -> None:
        client = MagicMock()

        asyncio.run(SupabaseMetadataStore(client).save_asset("asset-1", {"title": "clip"}))

        client.table.assert_called_with("assets")
        client.table.return_value.upsert.assert_called_once_with({"title": "clip", "id": "asset-1"})
        client.table.return_value.upsert.return_value.execute.assert_called_once()

    def test_get_asset_returns_first_row(self) -> None:
        client = MagicMock()
        client.table.return_value.select.return_value.eq.return_value.execute.return_value.data = [
            {"id": "asset-1", "uri": "files/abc"}
        ]

        row = asyncio.run(SupabaseMetadataStore(client).get_asset("asset-1"))

        assert row == {"id": "asset-1", "uri": "files/abc"}
        client.table.return_value.select.return_value.eq.assert_called_once_with("id", "asset-1")

    def test_get_asset_missing_returns_none(self) -> None:
        client = MagicMock()
        client.table.return_value.select.return_value.eq.return_value.execute.return_value.data = []

        assert asyncio.run(SupabaseMetadataStore(client).get_asset("nope")) is None

    def test_list_assets_filters_by_owner(self) -> None:
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value.order.return_value
        query.execute.return_value.data = [{"id": "a"}, {"id": "b"}]

        rows = asyncio.run(SupabaseMetadataStore(client).list_assets("owner-1"))

        assert [r["id"] for r in rows] == ["a", "b"]
        client.table.return_value.select.return_value.eq.assert_called_once_with("owner_id", "owner-1")

    def test_save_analysis_serializes_record(self) -> None:
        client = MagicMock()

        asyncio.run(SupabaseMetadataStore(client).save_analysis("asset-1", RECORD))

        client.table.assert_called_with("analyses")
        row = client.table.return_value.upsert.call_args.args[0]
        assert row["asset_id"] == "asset-1"
        assert row["summary"] == "S"
        assert row["scenes"][0]["label"] == "L"
        assert row["created_at"].startswith("2026-01-01")

    def test_get_analysis_round_trips_row(self) -> None:
        client = MagicMock()
        client.table.return_value.select.return_value.eq.return_value.execute.return_value.data = [
            RECORD.model_dump(mode="json")
        ]

        record = asyncio.run(SupabaseMetadataStore(client).get_analysis("asset-1"))

        assert record == RECORD

    def test_missing_status_reads_not_started(self) -> None:
        client = MagicMock()
        client.table.return_value.select.return_value.eq.return_value.execute.return_value.data = []

        status = asyncio.run(SupabaseMetadataStore(client).get_analysis_status("asset-1"))

        assert status is AnalysisStatus.NOT_STARTED

    def test_save_status_upserts_value(self) -> None:
        client = MagicMock()

        asyncio.run(
            SupabaseMetadataStore(client).save_analysis_status("asset-1", AnalysisStatus.UNPARSED)
        )

        client.table.assert_called_with("analysis_status")
        row = client.table.return_value.upsert.call_args.args[0]
        assert row["asset_id"] == "asset-1"
        assert row["status"] == "unparsed"


class TestInMemoryMetadataStore:
    def test_assets_are_copied(self) -> None:
        store = InMemoryMetadataStore()
        record = {"owner_id": "o", "title": "clip"}

        async def scenario() -> dict[str, object] | None:
            await store.save_asset("asset-1", record)
            record["title"] = "mutated"
            return await store.get_asset("asset-1")

        assert asyncio.run(scenario()) == {"owner_id": "o", "title": "clip", "id": "asset-1"}

    def test_analysis_is_copied(self) -> None:
        store = InMemoryMetadataStore()

        async def scenario() -> AnalysisRecord | None:
            await store.save_analysis("asset-1", RECORD)
            fetched = await store.get_analysis("asset-1")
            assert fetched is not None
            fetched.scenes[0].label = "mutated"
            fetched.summary = "mutated"
            return await store.get_analysis("asset-1")

        again = asyncio.run(scenario())
        assert again is not None
        assert again.summary == "S"
        assert again.scenes[0].label == "L"

    def test_list_assets_newest_first_per_owner(self) -> None:
        store = InMemoryMetadataStore()

        async def scenario() -> list[dict[str, object]]:
            await store.save_asset("old", {"owner_id": "o", "created_at": "2026-01-01T00:00:00"})
            await store.save_asset("new", {"owner_id": "o", "created_at": "2026-02-01T00:00:00"})
            await store.save_asset("other", {"owner_id": "x", "created_at": "2026-03-01T00:00:00"})
            return await store.list_assets("o")

        assert [a["id"] for a in asyncio.run(scenario())] == ["new", "old"]

    def test_status_defaults_to_not_started(self) -> None:
        status = asyncio.run(InMemoryMetadataStore().get_analysis_status("missing"))
        assert status is AnalysisStatus.NOT_STARTED


class TestGetMetadataStore:
    def test_memory_backend_is_shared(self) -> None:
        with patch("src.ingestion.storage.settings") as mock_settings:
            mock_settings.metadata_backend = "memory"
            assert get_metadata_store() is get_metadata_store()

    def test_supabase_backend(self) -> None:
        with (
            patch("src.ingestion.storage.settings") as mock_settings,
            patch("src.ingestion.storage.get_supabase_client", return_value=MagicMock()),
        ):
            mock_settings.metadata_backend = "supabase"
            assert isinstance(get_metadata_store(), SupabaseMetadataStore)
