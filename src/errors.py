"""Error taxonomy for ingestion, streaming, and finalization."""

from __future__ import annotations


class MediaPipelineError(Exception):
    """Base class for all pipeline errors."""


class TransportError(MediaPipelineError):
    """The inference provider was unreachable or returned a malformed response."""


class ProcessingFailedError(MediaPipelineError):
    """The provider reported that processing of an uploaded file failed."""


class IngestionTimeoutError(MediaPipelineError, TimeoutError):
    """The provider did not finish processing within the configured bound."""


class StreamError(MediaPipelineError):
    """The provider stream failed after it had started producing output."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ParseError(MediaPipelineError, ValueError):
    """Accumulated analysis text is not a valid analysis document."""
