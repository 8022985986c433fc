import asyncio
import json
from collections.abc import AsyncIterator, Mapping
from typing import Any

import structlog

from app.domain.enums import DiagramEventType
from app.infra.realtime.events import DiagramChangeEvent
from app.infra.realtime.hub import DiagramEventHub

logger = structlog.get_logger()

HEARTBEAT_FRAME = ": ping\n\n"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse_data(payload: Mapping[str, Any]) -> str:
    return f"data: {json.dumps(dict(payload))}\n\n"


class DiagramConnectionClosedError(ConnectionError):
    def __init__(self, diagram_id: str) -> None:
        super().__init__(f"Event stream for diagram '{diagram_id}' is closed")
        self.diagram_id = diagram_id


class DiagramEventConnection:
    """One SSE push channel for one diagram.

    ``deliver`` feeds a bounded queue; ``stream`` is the only reader and is
    meant to be the body of the streaming response.
    """

    def __init__(
        self,
        hub: DiagramEventHub,
        diagram_id: str,
        heartbeat_interval: float = 25.0,
        queue_size: int = 100,
    ) -> None:
        self.diagram_id = diagram_id
        self.heartbeat_interval = heartbeat_interval
        self.closed = False
        self._hub = hub
        self._queue: asyncio.Queue[DiagramChangeEvent | None] = asyncio.Queue(
            maxsize=queue_size
        )

    def deliver(self, event: DiagramChangeEvent) -> None:
        if self.closed:
            raise DiagramConnectionClosedError(self.diagram_id)
        self._queue.put_nowait(event)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            # The writer checks ``closed`` after every event.
            pass

    async def stream(self) -> AsyncIterator[str]:
        await self._hub.subscribe(self.diagram_id, self)
        logger.info("diagram_events.connection_opened", diagram_id=self.diagram_id)
        try:
            yield format_sse_data(
                {"type": DiagramEventType.CONNECTED.value, "id": self.diagram_id}
            )
            while not self.closed:
                try:
                    event = await asyncio.wait_for(
                        self._queue.get(), timeout=self.heartbeat_interval
                    )
                except asyncio.TimeoutError:
                    yield HEARTBEAT_FRAME
                    continue

                if event is None:
                    break
                yield format_sse_data(event.to_payload())
        finally:
            self.closed = True
            await self._hub.unsubscribe(self.diagram_id, self)
            logger.info("diagram_events.connection_closed", diagram_id=self.diagram_id)
