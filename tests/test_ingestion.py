"""Tests for the upload-then-poll ingestion controller (no external APIs required)."""

from __future__ import annotations

import asyncio

import pytest

from src.errors import IngestionTimeoutError, ProcessingFailedError, TransportError
from src.ingestion.controller import IngestionController
from src.ingestion.models import AssetReference
from src.pipeline_config import IngestionConfig, IngestionState, ProviderState
from tests.fakes import FILE_NAME, FILE_URI, FakeInferenceClient

FAST = IngestionConfig(poll_interval_seconds=0.001, max_wait_seconds=1.0)


class TestIngest:
    def test_ready_returns_asset_reference(self) -> None:
        client = FakeInferenceClient(
            statuses=[ProviderState.PENDING, ProviderState.PENDING, ProviderState.READY]
        )
        controller = IngestionController(client, FAST)

        ref = asyncio.run(controller.ingest(b"\x00\x01", "video/mp4", "clip.mp4"))

        assert ref == AssetReference(uri=FILE_URI, mime_type="video/mp4")
        assert client.uploads == [(b"\x00\x01", "video/mp4", "clip.mp4")]
        assert client.status_calls == 3
        assert controller.state is IngestionState.READY

    def test_ingest_file_returns_provider_name(self) -> None:
        controller = IngestionController(FakeInferenceClient(), FAST)

        ready = asyncio.run(controller.ingest_file(b"data", "audio/mpeg"))

        assert ready.name == FILE_NAME
        assert ready.state is ProviderState.READY

    def test_failed_raises_and_stops_polling(self) -> None:
        client = FakeInferenceClient(
            statuses=[ProviderState.PENDING, ProviderState.FAILED, ProviderState.READY]
        )
        controller = IngestionController(client, FAST)

        with pytest.raises(ProcessingFailedError):
            asyncio.run(controller.ingest(b"data", "video/mp4"))

        assert client.status_calls == 2
        assert controller.state is IngestionState.FAILED

    def test_never_ready_times_out(self) -> None:
        """Regression: a file stuck in processing must not hang ingestion forever."""
        client = FakeInferenceClient(statuses=[ProviderState.PENDING])
        controller = IngestionController(
            client, IngestionConfig(poll_interval_seconds=0.005, max_wait_seconds=0.05)
        )

        with pytest.raises(IngestionTimeoutError) as exc_info:
            asyncio.run(controller.ingest(b"data", "video/mp4"))

        assert isinstance(exc_info.value, TimeoutError)
        assert FILE_NAME in str(exc_info.value)
        assert controller.state is IngestionState.FAILED

    def test_upload_transport_error_propagates(self) -> None:
        error = TransportError("connection reset")
        client = FakeInferenceClient(upload_error=error)
        controller = IngestionController(client, FAST)

        with pytest.raises(TransportError) as exc_info:
            asyncio.run(controller.ingest(b"data", "video/mp4"))

        assert exc_info.value is error
        assert client.status_calls == 0

    def test_poll_transport_error_propagates(self) -> None:
        error = TransportError("503 from provider")
        controller = IngestionController(FakeInferenceClient(status_error=error), FAST)

        with pytest.raises(TransportError) as exc_info:
            asyncio.run(controller.ingest(b"data", "video/mp4"))

        assert exc_info.value is error

    def test_status_after_ready_returns_same_uri(self) -> None:
        client = FakeInferenceClient(statuses=[ProviderState.PENDING, ProviderState.READY])
        controller = IngestionController(client, FAST)

        async def scenario() -> tuple[str, str]:
            ready = await controller.ingest_file(b"data", "video/mp4")
            again = await client.get_status(ready.name)
            return ready.uri, again.uri

        first, second = asyncio.run(scenario())
        assert first == second == FILE_URI

    def test_fallback_mime_type_when_provider_omits_it(self) -> None:
        client = FakeInferenceClient(mime_type="")
        controller = IngestionController(client, FAST)

        ref = asyncio.run(controller.ingest(b"data", "audio/wav"))

        assert ref.mime_type == "audio/wav"
