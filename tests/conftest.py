"""Shared fixtures for ingestion, relay, and API tests."""

from __future__ import annotations

import pytest

from src.ingestion.models import AssetReference
from src.ingestion.storage import InMemoryMetadataStore
from tests.fakes import FILE_URI


@pytest.fixture
def memory_store() -> InMemoryMetadataStore:
    return InMemoryMetadataStore()


@pytest.fixture
def asset_ref() -> AssetReference:
    return AssetReference(uri=FILE_URI, mime_type="video/mp4")
