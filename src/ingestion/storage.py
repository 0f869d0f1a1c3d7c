"""Metadata store for asset records, analysis records, and analysis status.

Every write is a single-key upsert, so concurrent writers for the same asset
resolve as last-writer-wins.
"""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Protocol, cast

from supabase import Client, create_client

from src.analysis.models import AnalysisRecord
from src.config import settings
from src.pipeline_config import AnalysisStatus, MetadataBackend


def get_supabase_client() -> Client:
    """Create and return a Supabase client from settings."""
    return create_client(settings.supabase_url, settings.supabase_key)


class MetadataStore(Protocol):
    async def save_asset(self, asset_id: str, record: dict[str, Any]) -> None: ...

    async def get_asset(self, asset_id: str) -> dict[str, Any] | None: ...

    async def list_assets(self, owner_id: str) -> list[dict[str, Any]]: ...

    async def save_analysis(self, asset_id: str, record: AnalysisRecord) -> None: ...

    async def get_analysis(self, asset_id: str) -> AnalysisRecord | None: ...

    async def save_analysis_status(self, asset_id: str, status: AnalysisStatus) -> None: ...

    async def get_analysis_status(self, asset_id: str) -> AnalysisStatus: ...


class SupabaseMetadataStore:
    """Supabase-backed store using the ``assets``, ``analyses`` and
    ``analysis_status`` tables.

    The supabase-py client is synchronous; calls run on a worker thread.
    """

    def __init__(self, client: Client) -> None:
        self.client = client

    def _first_row(self, table: str, key: str, value: str) -> dict[str, Any] | None:
        result = self.client.table(table).select("*").eq(key, value).execute()
        rows = cast(list[dict[str, Any]], result.data)
        return rows[0] if rows else None

    async def save_asset(self, asset_id: str, record: dict[str, Any]) -> None:
        row = {**record, "id": asset_id}
        await asyncio.to_thread(lambda: self.client.table("assets").upsert(row).execute())

    async def get_asset(self, asset_id: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._first_row, "assets", "id", asset_id)

    async def list_assets(self, owner_id: str) -> list[dict[str, Any]]:
        def _query() -> list[dict[str, Any]]:
            result = (
                self.client.table("assets")
                .select("*")
                .eq("owner_id", owner_id)
                .order("created_at", desc=True)
                .execute()
            )
            return cast(list[dict[str, Any]], result.data)

        return await asyncio.to_thread(_query)

    async def save_analysis(self, asset_id: str, record: AnalysisRecord) -> None:
        row = record.model_dump(mode="json")
        row["asset_id"] = asset_id
        await asyncio.to_thread(lambda: self.client.table("analyses").upsert(row).execute())

    async def get_analysis(self, asset_id: str) -> AnalysisRecord | None:
        row = await asyncio.to_thread(self._first_row, "analyses", "asset_id", asset_id)
        return AnalysisRecord.model_validate(row) if row else None

    async def save_analysis_status(self, asset_id: str, status: AnalysisStatus) -> None:
        row = {
            "asset_id": asset_id,
            "status": status.value,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        await asyncio.to_thread(
            lambda: self.client.table("analysis_status").upsert(row).execute()
        )

    async def get_analysis_status(self, asset_id: str) -> AnalysisStatus:
        row = await asyncio.to_thread(self._first_row, "analysis_status", "asset_id", asset_id)
        if not row:
            return AnalysisStatus.NOT_STARTED
        return AnalysisStatus(row["status"])


class InMemoryMetadataStore:
    """Process-local store for development and tests. Not shared across workers."""

    def __init__(self) -> None:
        self.assets: dict[str, dict[str, Any]] = {}
        self.analyses: dict[str, AnalysisRecord] = {}
        self.statuses: dict[str, AnalysisStatus] = {}

    async def save_asset(self, asset_id: str, record: dict[str, Any]) -> None:
        self.assets[asset_id] = {**copy.deepcopy(record), "id": asset_id}

    async def get_asset(self, asset_id: str) -> dict[str, Any] | None:
        record = self.assets.get(asset_id)
        return copy.deepcopy(record) if record is not None else None

    async def list_assets(self, owner_id: str) -> list[dict[str, Any]]:
        owned = [copy.deepcopy(a) for a in self.assets.values() if a.get("owner_id") == owner_id]
        return sorted(owned, key=lambda a: str(a.get("created_at", "")), reverse=True)

    async def save_analysis(self, asset_id: str, record: AnalysisRecord) -> None:
        self.analyses[asset_id] = record.model_copy(update={"asset_id": asset_id}, deep=True)

    async def get_analysis(self, asset_id: str) -> AnalysisRecord | None:
        record = self.analyses.get(asset_id)
        return record.model_copy(deep=True) if record is not None else None

    async def save_analysis_status(self, asset_id: str, status: AnalysisStatus) -> None:
        self.statuses[asset_id] = status

    async def get_analysis_status(self, asset_id: str) -> AnalysisStatus:
        return self.statuses.get(asset_id, AnalysisStatus.NOT_STARTED)


@lru_cache(maxsize=1)
def _memory_store() -> InMemoryMetadataStore:
    return InMemoryMetadataStore()


def get_metadata_store() -> MetadataStore:
    """Return the store selected by ``settings.metadata_backend``."""
    if MetadataBackend(settings.metadata_backend) is MetadataBackend.MEMORY:
        return _memory_store()
    return SupabaseMetadataStore(get_supabase_client())
