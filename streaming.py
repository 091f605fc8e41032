"""Reframing of streamed chat-completion bodies.

The provider sends one ``data: <json>`` line per increment and finishes with
``data: [DONE]``. Clients of this service receive one
``data: {"content": "..."}`` record per non-empty text delta instead.
"""

import codecs
import json
import logging
from typing import AsyncIterable, AsyncIterator, Optional

from models import StreamEvent

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "data: [DONE]"


def extract_delta(payload) -> Optional[str]:
    """`choices[0].delta.content` when it is a non-empty string, else None."""
    try:
        content = payload["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    if isinstance(content, str) and content:
        return content
    return None


def encode_event(content: str) -> bytes:
    return f"{DATA_PREFIX}{StreamEvent(content=content).model_dump_json()}\n\n".encode("utf-8")


class StreamReframer:
    """Incremental upstream-to-outbound record converter.

    Reads never have to align with characters or lines: undecoded bytes stay in
    the decoder and the trailing unterminated line is kept as residue until the
    next chunk (or `finish`) completes it.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._residue = ""
        self.closed = False

    def feed(self, chunk: bytes) -> list[bytes]:
        if self.closed:
            return []

        text = self._residue + self._decoder.decode(chunk)
        lines = text.split("\n")
        self._residue = lines.pop()
        return self._process(lines)

    def finish(self) -> list[bytes]:
        """Flush whatever is left once the upstream body has ended."""
        if self.closed:
            return []

        tail = self._residue + self._decoder.decode(b"", final=True)
        self._residue = ""
        records = self._process([tail])
        self.closed = True
        return records

    def _process(self, lines: list[str]) -> list[bytes]:
        records: list[bytes] = []
        for raw in lines:
            line = raw.strip()
            if not line:
                continue
            if line == DONE_SENTINEL:
                self.closed = True
                self._residue = ""
                break
            if not line.startswith(DATA_PREFIX):
                continue

            try:
                payload = json.loads(line[len(DATA_PREFIX):])
            except json.JSONDecodeError as e:
                logger.debug("Error parsing JSON: %s (line=%r)", e, line[:200])
                continue

            content = extract_delta(payload)
            if content is not None:
                records.append(encode_event(content))
        return records


async def reframe_stream(
    chunks: Optional[AsyncIterable[bytes]],
) -> AsyncIterator[bytes]:
    """Yield outbound records as soon as each upstream chunk produces them."""
    if chunks is None:
        return

    reframer = StreamReframer()
    async for chunk in chunks:
        for record in reframer.feed(chunk):
            yield record
        if reframer.closed:
            return

    for record in reframer.finish():
        yield record
