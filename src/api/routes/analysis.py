"""Analyze endpoint: stream a Gemini analysis of an asset over Server-Sent Events."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from src.analysis.relay import StreamingRelay
from src.analysis.sse import SSE_HEADERS, SSE_MEDIA_TYPE, event_stream
from src.config import settings
from src.inference.client import get_inference_client
from src.ingestion.models import AssetReference
from src.ingestion.storage import get_metadata_store

router = APIRouter()


@router.post("/api/assets/{asset_id}/analyze")
async def analyze_asset(asset_id: str) -> StreamingResponse:
    """Stream the analysis of an asset as ``data: <json>`` events.

    Each event is ``{"text": ...}`` for a generated fragment, ending with
    exactly one ``{"done": true}`` or ``{"error": ...}``. Unknown assets get
    a 404 before any event is sent.
    """
    if not settings.gemini_api_key:
        raise HTTPException(
            status_code=501,
            detail="Analysis is not configured: GEMINI_API_KEY is not set.",
        )

    store = get_metadata_store()
    asset = await store.get_asset(asset_id)
    if not asset or not asset.get("uri"):
        raise HTTPException(status_code=404, detail="Asset not found")

    reference = AssetReference(
        uri=asset["uri"],
        mime_type=asset.get("mime_type") or "application/octet-stream",
    )
    relay = StreamingRelay(get_inference_client(), store)
    return StreamingResponse(
        event_stream(relay.relay(asset_id, reference)),
        media_type=SSE_MEDIA_TYPE,
        headers=SSE_HEADERS,
    )
