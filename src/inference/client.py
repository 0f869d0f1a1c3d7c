"""Gemini File API and streaming generation client."""

from __future__ import annotations

import asyncio
import io
import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol

import google.generativeai as genai

from src.analysis.models import StreamChunk
from src.config import settings
from src.errors import StreamError, TransportError
from src.ingestion.models import AssetReference, ProviderFile
from src.pipeline_config import ProviderState

logger = logging.getLogger(__name__)

# Gemini File API state names -> provider-neutral states
_STATE_MAP = {
    "STATE_UNSPECIFIED": ProviderState.PENDING,
    "PROCESSING": ProviderState.PENDING,
    "ACTIVE": ProviderState.READY,
    "FAILED": ProviderState.FAILED,
}


class InferenceClient(Protocol):
    """Operations the ingestion controller and streaming relay need from a provider."""

    async def upload(
        self, data: bytes, mime_type: str, display_name: str | None = None
    ) -> ProviderFile: ...

    async def get_status(self, name: str) -> ProviderFile: ...

    def stream_generate(self, asset: AssetReference, prompt: str) -> AsyncIterator[StreamChunk]: ...


def _to_provider_file(file: Any) -> ProviderFile:
    """Convert a ``genai`` File object into a ProviderFile.

    Raises:
        TransportError: The response is missing the name or URI.
    """
    name = getattr(file, "name", None)
    uri = getattr(file, "uri", None)
    if not name or not uri:
        raise TransportError(f"Malformed file response from provider: {file!r}")

    state = getattr(file, "state", None)
    state_name = getattr(state, "name", str(state or "STATE_UNSPECIFIED"))
    return ProviderFile(
        name=str(name),
        uri=str(uri),
        mime_type=str(getattr(file, "mime_type", "") or ""),
        state=_STATE_MAP.get(state_name, ProviderState.PENDING),
    )


def _chunk_text(chunk: Any) -> str:
    # .text raises ValueError when a chunk carries no text parts (e.g. only
    # usage metadata); such chunks contribute nothing to the transcript.
    try:
        return chunk.text or ""
    except ValueError:
        return ""


class GeminiClient:
    """Thin async wrapper over ``google.generativeai``.

    The SDK's file calls are synchronous, so they run on a worker thread to
    keep the event loop free. No retries happen here.
    """

    def __init__(self, api_key: str | None = None, model_name: str | None = None) -> None:
        genai.configure(api_key=api_key or settings.gemini_api_key)  # type: ignore[attr-defined]
        self.model_name = model_name or settings.gemini_model

    async def upload(
        self, data: bytes, mime_type: str, display_name: str | None = None
    ) -> ProviderFile:
        """Upload raw bytes to the Gemini File API.

        Raises:
            TransportError: Network, auth, or protocol failure.
        """
        try:
            file = await asyncio.to_thread(
                genai.upload_file,  # type: ignore[attr-defined]
                io.BytesIO(data),
                mime_type=mime_type,
                display_name=display_name,
            )
        except Exception as exc:
            raise TransportError(f"Upload to Gemini failed: {exc}") from exc

        provider_file = _to_provider_file(file)
        logger.info("Uploaded %d bytes as %s", len(data), provider_file.name)
        return provider_file

    async def get_status(self, name: str) -> ProviderFile:
        """Fetch the last known state of a provider file.

        Raises:
            TransportError: Provider unreachable or response malformed.
        """
        try:
            file = await asyncio.to_thread(genai.get_file, name)  # type: ignore[attr-defined]
        except Exception as exc:
            raise TransportError(f"Status check for {name} failed: {exc}") from exc
        return _to_provider_file(file)

    async def stream_generate(
        self, asset: AssetReference, prompt: str
    ) -> AsyncIterator[StreamChunk]:
        """Yield analysis text fragments as the provider produces them.

        The sequence is not restartable. Any provider failure, including one
        before the first chunk, ends it with StreamError.
        """
        contents = [
            {"file_data": {"mime_type": asset.mime_type, "file_uri": asset.uri}},
            prompt,
        ]
        try:
            model = genai.GenerativeModel(  # type: ignore[attr-defined]
                self.model_name,
                generation_config={"response_mime_type": "application/json"},
            )
            response = await model.generate_content_async(contents, stream=True)
            async for chunk in response:
                text = _chunk_text(chunk)
                if text:
                    yield StreamChunk(text=text)
        except Exception as exc:
            raise StreamError(f"Gemini stream failed: {exc}", cause=exc) from exc


def get_inference_client() -> GeminiClient:
    """Return a Gemini client configured from settings."""
    return GeminiClient(settings.gemini_api_key, settings.gemini_model)
