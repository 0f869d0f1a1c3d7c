"""Turn a completed analysis transcript into a persisted AnalysisRecord."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from pydantic import ValidationError

from src.analysis.models import AnalysisDocument, AnalysisRecord
from src.errors import ParseError
from src.ingestion.storage import MetadataStore
from src.pipeline_config import AnalysisStatus

logger = logging.getLogger(__name__)


def parse_analysis(text: str) -> AnalysisDocument:
    """Parse the full transcript as an analysis document.

    The whole text must be one JSON object; partial or embedded JSON is
    rejected.

    Raises:
        ParseError: Not valid JSON, or JSON of the wrong shape.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Analysis is not valid JSON: {exc}") from exc

    try:
        return AnalysisDocument.model_validate(data)
    except ValidationError as exc:
        raise ParseError(f"Analysis JSON has unexpected shape: {exc}") from exc


class ResultFinalizer:
    """Persists a parsed analysis and records the outcome as the asset's status.

    ``finalize`` never raises for parse or persistence problems; callers
    rely on that to always close the stream cleanly.
    """

    def __init__(self, store: MetadataStore) -> None:
        self.store = store

    async def finalize(self, asset_id: str, text: str) -> AnalysisRecord | None:
        """Parse ``text`` and persist it for ``asset_id``.

        Returns:
            The persisted record, or None when nothing was persisted.
        """
        try:
            document = parse_analysis(text)
        except ParseError as exc:
            logger.warning("Unparsed analysis for asset %s (%d chars): %s", asset_id, len(text), exc)
            await self._set_status(asset_id, AnalysisStatus.UNPARSED)
            return None

        record = AnalysisRecord(
            asset_id=asset_id,
            summary=document.summary,
            scenes=document.scenes,
            created_at=datetime.now(timezone.utc),
        )
        try:
            await self.store.save_analysis(asset_id, record)
        except Exception:
            logger.exception("Failed to persist analysis for asset %s", asset_id)
            await self._set_status(asset_id, AnalysisStatus.FAILED)
            return None

        await self._set_status(asset_id, AnalysisStatus.COMPLETE)
        logger.info("Persisted analysis for asset %s with %d scenes", asset_id, len(record.scenes))
        return record

    async def _set_status(self, asset_id: str, status: AnalysisStatus) -> None:
        try:
            await self.store.save_analysis_status(asset_id, status)
        except Exception:
            logger.exception("Failed to record analysis status %s for asset %s", status.value, asset_id)
