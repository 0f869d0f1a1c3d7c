"""Pydantic request/response schemas for the Media Analysis API."""

from __future__ import annotations

from pydantic import BaseModel

from src.analysis.models import AnalysisRecord
from src.pipeline_config import AnalysisStatus


class AssetResponse(BaseModel):
    """An asset whose provider file is ready for analysis."""

    id: str
    owner_id: str
    title: str
    uri: str
    mime_type: str
    provider_name: str | None = None
    size_bytes: int | None = None
    created_at: str | None = None
    status: str = "ready"


class AssetRegisterRequest(BaseModel):
    """Request body for registering a file the client uploaded to the provider directly."""

    owner_id: str
    uri: str
    mime_type: str
    id: str | None = None
    title: str = "Untitled"
    provider_name: str | None = None
    size_bytes: int | None = None


class AssetDetail(BaseModel):
    """Asset plus its analysis, if any.

    ``analysis_status`` separates "never analysed" from "in progress",
    "complete" and "finished but unparsed".
    """

    asset: AssetResponse
    analysis: AnalysisRecord | None = None
    analysis_status: AnalysisStatus = AnalysisStatus.NOT_STARTED
