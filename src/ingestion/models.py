"""Data models for the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass

from src.pipeline_config import ProviderState


@dataclass(frozen=True)
class ProviderFile:
    """A file as known to the inference provider."""

    name: str  # provider resource name, e.g. "files/abc123"
    uri: str
    mime_type: str
    state: ProviderState = ProviderState.PENDING


@dataclass(frozen=True)
class AssetReference:
    """Stable handle to a provider file that is ready for analysis."""

    uri: str
    mime_type: str
