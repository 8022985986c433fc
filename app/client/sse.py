from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass

import httpx

from app.client.storage import diagram_path


@dataclass(frozen=True, slots=True)
class SseMessage:
    data: str | None = None
    event: str = "message"
    comment: str | None = None

    @property
    def is_comment(self) -> bool:
        return self.data is None


async def iter_sse_messages(lines: AsyncIterable[str]) -> AsyncIterator[SseMessage]:
    """Group raw event-stream lines into messages.

    Comment lines are yielded on their own so callers can track liveness.
    A message still being assembled when the stream ends is discarded.
    """
    data_lines: list[str] = []
    event = "message"

    async for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if not line:
            if data_lines:
                yield SseMessage(data="\n".join(data_lines), event=event)
            data_lines = []
            event = "message"
            continue

        if line.startswith(":"):
            yield SseMessage(comment=line[1:].strip())
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "data":
            data_lines.append(value)
        elif field == "event":
            event = value or "message"


class HttpDiagramEventSource:
    def __init__(self, http: httpx.AsyncClient) -> None:
        self.http = http

    async def messages(self, diagram_id: str) -> AsyncIterator[SseMessage]:
        async with self.http.stream(
            "GET",
            diagram_path(diagram_id, "events"),
            headers={"Accept": "text/event-stream"},
            # The server keeps the stream alive with comments.
            timeout=httpx.Timeout(10.0, read=None),
        ) as response:
            response.raise_for_status()
            async for message in iter_sse_messages(response.aiter_lines()):
                yield message
