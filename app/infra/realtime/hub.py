import asyncio
from collections import defaultdict
from typing import Protocol

import structlog

from app.infra.realtime.events import DiagramChangeEvent

logger = structlog.get_logger()


class DiagramSubscriber(Protocol):
    def deliver(self, event: DiagramChangeEvent) -> None: ...

    def close(self) -> None: ...


class DiagramEventHub:
    """In-process per-diagram registry of push connections.

    Each connection is registered under exactly one diagram id. ``publish``
    only hands events to the connections' own outbound queues, so it never
    waits on a slow client.
    """

    def __init__(self) -> None:
        self._diagram_subscribers: dict[str, set[DiagramSubscriber]] = defaultdict(set)
        self._subscriber_diagrams: dict[DiagramSubscriber, str] = {}
        self._lock = asyncio.Lock()

    def subscriber_count(self, diagram_id: str) -> int:
        subscribers = self._diagram_subscribers.get(diagram_id)
        if subscribers is None:
            return 0
        return len(subscribers)

    def subscribers(self, diagram_id: str) -> frozenset[DiagramSubscriber]:
        return frozenset(self._diagram_subscribers.get(diagram_id, ()))

    def diagram_ids(self) -> list[str]:
        return list(self._diagram_subscribers)

    async def subscribe(self, diagram_id: str, connection: DiagramSubscriber) -> None:
        async with self._lock:
            previous = self._subscriber_diagrams.get(connection)
            if previous is not None and previous != diagram_id:
                self._discard(previous, connection)

            self._diagram_subscribers[diagram_id].add(connection)
            self._subscriber_diagrams[connection] = diagram_id

        logger.debug(
            "diagram_events.subscribed",
            diagram_id=diagram_id,
            subscribers=self.subscriber_count(diagram_id),
        )

    async def unsubscribe(self, diagram_id: str, connection: DiagramSubscriber) -> None:
        async with self._lock:
            self._discard(diagram_id, connection)
            if self._subscriber_diagrams.get(connection) == diagram_id:
                self._subscriber_diagrams.pop(connection, None)

        logger.debug(
            "diagram_events.unsubscribed",
            diagram_id=diagram_id,
            subscribers=self.subscriber_count(diagram_id),
        )

    async def publish(self, diagram_id: str, event: DiagramChangeEvent) -> None:
        async with self._lock:
            recipients = list(self._diagram_subscribers.get(diagram_id, ()))

        for connection in recipients:
            try:
                connection.deliver(event)
            except Exception as exc:
                # Closed transports are unregistered by their own stream.
                logger.warning(
                    "diagram_events.delivery_failed",
                    diagram_id=diagram_id,
                    event_type=event.kind.value,
                    error=repr(exc),
                    exc_info=True,
                )

    async def close_all(self) -> None:
        async with self._lock:
            connections = list(self._subscriber_diagrams)
            self._diagram_subscribers.clear()
            self._subscriber_diagrams.clear()

        for connection in connections:
            connection.close()

        if connections:
            logger.info("diagram_events.closed_all", connections=len(connections))

    def _discard(self, diagram_id: str, connection: DiagramSubscriber) -> None:
        subscribers = self._diagram_subscribers.get(diagram_id)
        if subscribers is None:
            return
        subscribers.discard(connection)
        if not subscribers:
            self._diagram_subscribers.pop(diagram_id, None)
