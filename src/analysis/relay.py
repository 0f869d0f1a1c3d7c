"""Streaming relay: forward analysis fragments live and finalize on completion."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Coroutine
from enum import Enum
from typing import Any

from src.analysis.finalizer import ResultFinalizer
from src.analysis.models import Envelope
from src.errors import StreamError
from src.inference.client import InferenceClient
from src.ingestion.models import AssetReference
from src.ingestion.storage import MetadataStore
from src.pipeline_config import AnalysisStatus

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = """\
Analyze this media file and provide:
1. A comprehensive summary
2. Temporal breakdown of scenes with timestamps

Format as JSON:
{
  "summary": "...",
  "scenes": [
    {"start": "0:05", "end": "0:12", "label": "...", "description": "..."}
  ]
}

Return only valid JSON, no markdown fences, no explanation."""

# Strong references to work that must outlive a disconnected client.
_background_tasks: set[asyncio.Task[Any]] = set()


def _spawn(coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
    task = asyncio.ensure_future(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


class RelayState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETING = "completing"
    COMPLETED = "completed"
    FAILED = "failed"


class StreamingRelay:
    """Runs one streaming analysis for one asset.

    Create one relay per request: the accumulated transcript lives only
    inside a single ``relay`` call.
    """

    def __init__(
        self,
        client: InferenceClient,
        store: MetadataStore,
        finalizer: ResultFinalizer | None = None,
        prompt: str = ANALYSIS_PROMPT,
    ) -> None:
        self.client = client
        self.store = store
        self.finalizer = finalizer or ResultFinalizer(store)
        self.prompt = prompt
        self.state = RelayState.IDLE

    async def relay(self, asset_id: str, asset: AssetReference) -> AsyncIterator[Envelope]:
        """Yield one text envelope per chunk, then exactly one terminal envelope.

        A provider failure ends the stream with an error envelope and skips
        finalization. Normal completion always ends with ``done``, whatever
        the finalizer's outcome. Closing this generator early closes the
        provider stream; a finalization already started keeps running.
        """
        self.state = RelayState.STREAMING
        await self._set_status(asset_id, AnalysisStatus.IN_PROGRESS)

        fragments: list[str] = []
        chunks = self.client.stream_generate(asset, self.prompt)
        try:
            async for chunk in chunks:
                fragments.append(chunk.text)
                yield Envelope(text=chunk.text)
        except StreamError as exc:
            yield await self._fail(asset_id, str(exc), len(fragments))
            return
        except Exception as exc:
            logger.exception("Unexpected error while streaming analysis for asset %s", asset_id)
            yield await self._fail(asset_id, str(exc) or type(exc).__name__, len(fragments))
            return
        except (asyncio.CancelledError, GeneratorExit):
            if self.state is RelayState.STREAMING:
                logger.info("Client disconnected from analysis of asset %s", asset_id)
                self.state = RelayState.FAILED
                _spawn(self._set_status(asset_id, AnalysisStatus.FAILED))
            raise
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()

        self.state = RelayState.COMPLETING
        transcript = "".join(fragments)
        logger.info(
            "Stream complete for asset %s: %d chunks, %d chars",
            asset_id,
            len(fragments),
            len(transcript),
        )
        finalization = _spawn(self.finalizer.finalize(asset_id, transcript))
        try:
            await asyncio.shield(finalization)
        except Exception:
            logger.exception("Finalization raised for asset %s", asset_id)

        self.state = RelayState.COMPLETED
        yield Envelope(done=True)

    async def _fail(self, asset_id: str, message: str, delivered: int) -> Envelope:
        self.state = RelayState.FAILED
        logger.warning(
            "Analysis stream for asset %s failed after %d chunks: %s", asset_id, delivered, message
        )
        await self._set_status(asset_id, AnalysisStatus.FAILED)
        return Envelope(error=message)

    async def _set_status(self, asset_id: str, status: AnalysisStatus) -> None:
        try:
            await self.store.save_analysis_status(asset_id, status)
        except Exception:
            logger.exception("Failed to record analysis status %s for asset %s", status.value, asset_id)
