"""Mock stream replay for debugging stream processing.

Replays captured model output as an async chunk stream, so the extractor and
applier can be exercised without calling a model. Captures can be:

- raw SSE lines copied from a network inspector::

    data: {"choices":[{"delta":{"content":"I'll help"}}]}
    data: {"type":"content_block_delta","delta":{"text":" with that."}}
    data: [DONE]

- plain text, one chunk per line
- a JSON array of chunk strings
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import AsyncIterator

logger = logging.getLogger(__name__)

DONE_MARKER = "[DONE]"


def _delta_contents(payload: object) -> list[str]:
    """Pull text deltas out of an OpenAI- or Anthropic-style event."""
    if not isinstance(payload, dict):
        return []

    contents: list[str] = []

    # OpenAI format
    choices = payload.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        delta = choices[0].get("delta") or {}
        if isinstance(delta, dict) and delta.get("content"):
            contents.append(delta["content"])

    # Anthropic format
    delta = payload.get("delta")
    if isinstance(delta, dict) and delta.get("text"):
        contents.append(delta["text"])

    return contents


def parse_sse_to_chunks(raw: str) -> list[str]:
    """Parse a raw SSE capture (or plain text lines) into content chunks."""
    chunks: list[str] = []

    for line in raw.split("\n"):
        if not line.strip():
            continue
        # Skip comments
        if line.startswith("//"):
            continue

        if not line.startswith("data: "):
            chunks.append(line)
            continue

        data = line[len("data: "):].strip()
        if data == DONE_MARKER:
            continue

        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            # Not JSON, treat as plain text
            if data:
                chunks.append(data)
            continue

        chunks.extend(_delta_contents(payload))

    return chunks


def load_mock_chunks(path: Path) -> list[str]:
    """Load chunks from a capture file (JSON array or raw SSE/plain text)."""
    raw = path.read_text(encoding="utf-8")

    stripped = raw.strip()
    if stripped.startswith("["):
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, list) and all(isinstance(item, str) for item in data):
            return data

    return parse_sse_to_chunks(raw)


async def mock_stream(
    chunks: list[str],
    delay_ms: int = 50,
    abort: asyncio.Event | None = None,
) -> AsyncIterator[str]:
    """Yield chunks with a delay between them, simulating network latency.

    Stops early once ``abort`` is set.
    """
    if not chunks:
        logger.info("[MockStream] No mock chunks configured")
        return

    logger.info(f"[MockStream] Starting mock stream with {len(chunks)} chunks")

    for i, content in enumerate(chunks):
        if abort is not None and abort.is_set():
            logger.info("[MockStream] Stream aborted")
            break

        await asyncio.sleep(delay_ms / 1000)

        preview = content[:50] + ("..." if len(content) > 50 else "")
        logger.debug(f"[MockStream] Chunk {i + 1}/{len(chunks)}: {preview!r}")

        yield content

    logger.info("[MockStream] Mock stream completed")
