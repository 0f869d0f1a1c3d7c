"""Upload-then-poll ingestion: raw bytes -> ready AssetReference."""

from __future__ import annotations

import asyncio
import logging

from src.errors import IngestionTimeoutError, ProcessingFailedError
from src.inference.client import InferenceClient
from src.ingestion.models import AssetReference, ProviderFile
from src.pipeline_config import IngestionConfig, IngestionState, ProviderState

logger = logging.getLogger(__name__)


class IngestionController:
    """Drives one upload through the provider's processing lifecycle.

    ``state`` reflects the most recent ingestion on this instance and is
    only meant for logging and tests; use one controller per request when
    ingestions run concurrently.
    """

    def __init__(self, client: InferenceClient, config: IngestionConfig | None = None) -> None:
        self.client = client
        self.config = config or IngestionConfig()
        self.state: IngestionState | None = None

    def _transition(self, state: IngestionState, name: str = "") -> None:
        self.state = state
        logger.info("Ingestion %s -> %s", name or "<new>", state.value)

    async def ingest_file(
        self, data: bytes, mime_type: str, display_name: str | None = None
    ) -> ProviderFile:
        """Upload ``data`` and wait until the provider marks it ready.

        Returns:
            The ready ProviderFile (name, uri, mime type).

        Raises:
            TransportError: Upload or a status poll failed; propagated as-is.
            ProcessingFailedError: The provider reported FAILED.
            IngestionTimeoutError: Not ready within ``config.max_wait_seconds``.
        """
        self._transition(IngestionState.UPLOADING)
        try:
            uploaded = await self.client.upload(data, mime_type, display_name)
        except Exception:
            self._transition(IngestionState.FAILED)
            raise

        self._transition(IngestionState.PROCESSING, uploaded.name)
        try:
            ready = await asyncio.wait_for(
                self._poll_until_settled(uploaded),
                timeout=self.config.max_wait_seconds,
            )
        except asyncio.TimeoutError as exc:
            self._transition(IngestionState.FAILED, uploaded.name)
            raise IngestionTimeoutError(
                f"File {uploaded.name} was not ready after "
                f"{self.config.max_wait_seconds:g}s"
            ) from exc
        except Exception:
            self._transition(IngestionState.FAILED, uploaded.name)
            raise

        self._transition(IngestionState.READY, ready.name)
        return ready

    async def ingest(
        self, data: bytes, mime_type: str, display_name: str | None = None
    ) -> AssetReference:
        """Upload ``data`` and return a ready AssetReference. See ``ingest_file``."""
        ready = await self.ingest_file(data, mime_type, display_name)
        return AssetReference(uri=ready.uri, mime_type=ready.mime_type or mime_type)

    async def _poll_until_settled(self, uploaded: ProviderFile) -> ProviderFile:
        current = await self.client.get_status(uploaded.name)
        while current.state is ProviderState.PENDING:
            await asyncio.sleep(self.config.poll_interval_seconds)
            current = await self.client.get_status(uploaded.name)

        if current.state is ProviderState.FAILED:
            raise ProcessingFailedError(f"Provider failed to process {uploaded.name}")
        return current
