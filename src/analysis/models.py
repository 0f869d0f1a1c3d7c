"""Data models for streaming analysis and its persisted result."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel


@dataclass(frozen=True)
class StreamChunk:
    """One non-empty fragment of generated analysis text."""

    text: str


@dataclass(frozen=True)
class Envelope:
    """A single message on the downstream event stream.

    Exactly one of ``text``, ``done`` or ``error`` is set.
    """

    text: str | None = None
    done: bool = False
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.done or self.error is not None

    def payload(self) -> dict[str, Any]:
        if self.error is not None:
            return {"error": self.error}
        if self.done:
            return {"done": True}
        return {"text": self.text}


class Scene(BaseModel):
    """A timestamped segment of the analysed media."""

    start: str
    end: str
    label: str
    description: str


class AnalysisDocument(BaseModel):
    """Shape the provider is asked to produce: a summary plus scene breakdown."""

    summary: str
    scenes: list[Scene]


class AnalysisRecord(BaseModel):
    """Persisted analysis for one asset. Re-analysis replaces it wholesale."""

    asset_id: str
    summary: str
    scenes: list[Scene]
    created_at: datetime
