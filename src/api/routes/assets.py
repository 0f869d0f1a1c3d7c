"""Asset endpoints: upload to the provider, register, list, and detail."""

from __future__ import annotations

import logging
import mimetypes
import uuid
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile

from src.api.models import AssetDetail, AssetRegisterRequest, AssetResponse
from src.config import settings
from src.errors import IngestionTimeoutError, ProcessingFailedError, TransportError
from src.inference.client import get_inference_client
from src.ingestion.controller import IngestionController
from src.ingestion.storage import get_metadata_store
from src.pipeline_config import IngestionConfig, media_rule

logger = logging.getLogger(__name__)

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.post("/api/assets", response_model=AssetResponse)
async def upload_asset(
    file: Annotated[UploadFile, File(...)],
    owner_id: Annotated[str, Form()],
    title: Annotated[str | None, Form()] = None,
) -> AssetResponse:
    """Upload a media file to Gemini and wait until it is ready for analysis.

    The request blocks until the provider finishes processing or
    ``max_ingest_wait_seconds`` elapses.

    - 413: file exceeds ``max_upload_mb`` or its media category's cap.
    - 415: MIME type is not an accepted media type.
    - 501: GEMINI_API_KEY is not configured.
    - 502: upload/poll transport failure or provider-side processing failure.
    - 504: provider did not finish processing in time.
    """
    if not settings.gemini_api_key:
        raise HTTPException(
            status_code=501,
            detail="Media upload is not configured: GEMINI_API_KEY is not set.",
        )

    raw = await file.read()
    max_bytes = settings.max_upload_mb * 1024 * 1024
    if len(raw) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.max_upload_mb} MB.",
        )
    if not raw:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    filename = file.filename or "upload"
    mime_type = file.content_type or ""
    if not mime_type or mime_type == "application/octet-stream":
        mime_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"

    rule = media_rule(mime_type)
    if rule is None:
        raise HTTPException(
            status_code=415,
            detail=f"Unsupported file type: {mime_type}. Please upload a supported file format.",
        )
    if len(raw) > rule.max_size_bytes:
        raise HTTPException(
            status_code=413,
            detail=(
                f"File too large. Maximum size for {rule.category.value} files "
                f"is {rule.max_size_mb} MB."
            ),
        )

    controller = IngestionController(
        get_inference_client(), IngestionConfig.from_settings(settings)
    )
    try:
        ready = await controller.ingest_file(raw, mime_type, display_name=filename)
    except IngestionTimeoutError as exc:
        raise HTTPException(status_code=504, detail=str(exc)) from exc
    except ProcessingFailedError as exc:
        raise HTTPException(status_code=502, detail=f"Media processing failed: {exc}") from exc
    except TransportError as exc:
        raise HTTPException(status_code=502, detail=f"Inference provider error: {exc}") from exc

    asset_id = str(uuid.uuid4())
    record: dict[str, Any] = {
        "id": asset_id,
        "owner_id": owner_id,
        "title": title or filename,
        "uri": ready.uri,
        "provider_name": ready.name,
        "mime_type": ready.mime_type or mime_type,
        "size_bytes": len(raw),
        "created_at": _now(),
        "status": "ready",
    }
    await get_metadata_store().save_asset(asset_id, record)
    logger.info("Asset %s ready at %s", asset_id, ready.uri)
    return AssetResponse(**record)


@router.post("/api/assets/register", response_model=AssetResponse)
async def register_asset(request: AssetRegisterRequest) -> AssetResponse:
    """Record metadata for a file the client already uploaded to the provider.

    Re-registering an existing id is only allowed for the same owner and
    uri; otherwise its analysis would be reported against a different file.
    """
    store = get_metadata_store()
    asset_id = request.id or str(uuid.uuid4())
    existing = await store.get_asset(asset_id)
    if existing and (
        existing.get("uri") != request.uri or existing.get("owner_id") != request.owner_id
    ):
        raise HTTPException(
            status_code=409,
            detail=f"Asset {asset_id} is already registered for a different file",
        )

    record: dict[str, Any] = {
        "id": asset_id,
        "owner_id": request.owner_id,
        "title": request.title,
        "uri": request.uri,
        "provider_name": request.provider_name,
        "mime_type": request.mime_type,
        "size_bytes": request.size_bytes,
        "created_at": (existing or {}).get("created_at") or _now(),
        "status": "ready",
    }
    await store.save_asset(asset_id, record)
    return AssetResponse(**record)


@router.get("/api/assets", response_model=list[AssetResponse])
async def list_assets(owner_id: Annotated[str, Query()]) -> list[AssetResponse]:
    """List an owner's assets, newest first."""
    rows = await get_metadata_store().list_assets(owner_id)
    return [AssetResponse(**row) for row in rows]


@router.get("/api/assets/{asset_id}", response_model=AssetDetail)
async def get_asset(asset_id: str) -> AssetDetail:
    """Return the asset, its analysis record (if any), and the analysis status."""
    store = get_metadata_store()
    asset = await store.get_asset(asset_id)
    if not asset:
        raise HTTPException(status_code=404, detail="Asset not found")

    return AssetDetail(
        asset=AssetResponse(**asset),
        analysis=await store.get_analysis(asset_id),
        analysis_status=await store.get_analysis_status(asset_id),
    )
