"""Server-Sent Events framing for relay envelopes."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

from src.analysis.models import Envelope

SSE_MEDIA_TYPE = "text/event-stream"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def encode_envelope(envelope: Envelope) -> str:
    """Frame one envelope as a ``data: <json>`` event."""
    return f"data: {json.dumps(envelope.payload())}\n\n"


async def event_stream(envelopes: AsyncIterator[Envelope]) -> AsyncIterator[str]:
    """Encode envelopes as SSE lines, closing the source when this stream closes."""
    try:
        async for envelope in envelopes:
            yield encode_envelope(envelope)
    finally:
        aclose = getattr(envelopes, "aclose", None)
        if aclose is not None:
            await aclose()
