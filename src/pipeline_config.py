"""Pipeline configuration: state enums, IngestionConfig, and accepted media types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.config import Settings


class ProviderState(str, Enum):
    """Processing state of a file as reported by the inference provider."""

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class IngestionState(str, Enum):
    """Transient states of a single ingestion call (never persisted)."""

    UPLOADING = "uploading"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


class AnalysisStatus(str, Enum):
    """Per-asset analysis status exposed alongside the analysis record.

    ``UNPARSED`` means the stream finished but the text was not a valid
    analysis document, so no record was written. ``FAILED`` means the stream
    broke off or the record could not be saved.
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    UNPARSED = "unparsed"
    FAILED = "failed"


class MetadataBackend(str, Enum):
    """Available metadata store backends."""

    SUPABASE = "supabase"
    MEMORY = "memory"


@dataclass(frozen=True)
class IngestionConfig:
    """Immutable polling configuration for the ingestion controller.

    ``max_wait_seconds`` bounds the whole poll loop; the upload call itself
    is not covered by it.
    """

    poll_interval_seconds: float = 2.0
    max_wait_seconds: float = 600.0

    @classmethod
    def from_settings(cls, settings: Settings) -> IngestionConfig:
        return cls(
            poll_interval_seconds=settings.poll_interval_seconds,
            max_wait_seconds=settings.max_ingest_wait_seconds,
        )


class MediaCategory(str, Enum):
    """Media families the provider accepts for analysis."""

    VIDEO = "video"
    IMAGE = "image"
    AUDIO = "audio"
    PDF = "pdf"
    DOCUMENT = "document"
    SPREADSHEET = "spreadsheet"
    TEXT = "text"


@dataclass(frozen=True)
class MediaTypeRule:
    """Accepted MIME types and the upload size cap for one media category."""

    category: MediaCategory
    mime_types: frozenset[str]
    max_size_mb: int

    @property
    def max_size_bytes(self) -> int:
        return self.max_size_mb * 1024 * 1024


MEDIA_TYPE_RULES: tuple[MediaTypeRule, ...] = (
    MediaTypeRule(
        MediaCategory.VIDEO,
        frozenset({
            "video/mp4", "video/mov", "video/avi", "video/webm",
            "video/quicktime", "video/x-msvideo", "video/mpeg",
        }),
        max_size_mb=2000,
    ),
    MediaTypeRule(
        MediaCategory.IMAGE,
        frozenset({
            "image/jpeg", "image/png", "image/webp", "image/gif",
            "image/bmp", "image/tiff", "image/svg+xml",
        }),
        max_size_mb=20,
    ),
    MediaTypeRule(
        MediaCategory.AUDIO,
        frozenset({
            "audio/mpeg", "audio/mp3", "audio/wav", "audio/ogg",
            "audio/aac", "audio/flac", "audio/m4a", "audio/x-m4a",
        }),
        max_size_mb=2000,
    ),
    MediaTypeRule(MediaCategory.PDF, frozenset({"application/pdf"}), max_size_mb=50),
    MediaTypeRule(
        MediaCategory.DOCUMENT,
        frozenset({
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "application/vnd.oasis.opendocument.text",
            "application/rtf",
        }),
        max_size_mb=50,
    ),
    # Only CSV goes to the provider as-is; binary spreadsheet formats are not accepted.
    MediaTypeRule(MediaCategory.SPREADSHEET, frozenset({"text/csv"}), max_size_mb=50),
    MediaTypeRule(
        MediaCategory.TEXT,
        frozenset({"text/plain", "text/markdown", "text/html", "text/xml", "application/json"}),
        max_size_mb=100,
    ),
)


def media_rule(mime_type: str) -> MediaTypeRule | None:
    """Return the rule covering ``mime_type``, or None when it is not accepted.

    Parameters such as ``; charset=utf-8`` and letter case are ignored.
    """
    essence = mime_type.split(";", 1)[0].strip().lower()
    for rule in MEDIA_TYPE_RULES:
        if essence in rule.mime_types:
            return rule
    return None
