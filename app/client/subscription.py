import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import aclosing
from enum import Enum
from time import monotonic
from typing import Any, Protocol

import httpx
import structlog
from pydantic import ValidationError

from app.client.editing import DiagramDialogs
from app.client.sse import SseMessage
from app.domain.enums import DiagramEventType
from app.schemas.diagram import DiagramEventMessage

logger = structlog.get_logger()


class SubscriptionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"


class DiagramEventSource(Protocol):
    def messages(self, diagram_id: str) -> AsyncIterator[SseMessage]: ...


class ReloadableSession(Protocol):
    async def reload_diagram(self, diagram_id: str) -> dict[str, Any] | None: ...


class DiagramSubscription:
    """Live-update listener for the diagram open in the editor.

    One push connection per followed diagram. Messages are handled one at a
    time in arrival order. A dropped connection is not retried; the next
    ``follow`` reconnects.
    """

    def __init__(
        self,
        source: DiagramEventSource,
        session: ReloadableSession,
        dialogs: DiagramDialogs,
    ) -> None:
        self.source = source
        self.session = session
        self.dialogs = dialogs
        self.state = SubscriptionState.IDLE
        self.diagram_id: str | None = None
        self.last_seen_at: float | None = None
        self._deleted = False
        self._task: asyncio.Task[None] | None = None

    async def follow(self, diagram_id: str) -> None:
        if diagram_id == self.diagram_id and self.state is not SubscriptionState.IDLE:
            return

        await self.close()
        self.diagram_id = diagram_id
        self.last_seen_at = None
        self._deleted = False
        self.state = SubscriptionState.CONNECTING
        self._task = asyncio.create_task(
            self._listen(diagram_id), name=f"diagram-events:{diagram_id}"
        )

    async def close(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.state = SubscriptionState.IDLE

    async def _listen(self, diagram_id: str) -> None:
        try:
            async with aclosing(self.source.messages(diagram_id)) as messages:
                async for message in messages:
                    self.last_seen_at = monotonic()
                    if message.is_comment:
                        continue
                    await self._handle(diagram_id, message.data or "")
        except (httpx.HTTPError, OSError) as exc:
            logger.debug(
                "diagram_subscription.connection_lost",
                diagram_id=diagram_id,
                error=repr(exc),
            )
        finally:
            if self._task is asyncio.current_task():
                self.state = SubscriptionState.IDLE

    async def _handle(self, diagram_id: str, data: str) -> None:
        try:
            message = DiagramEventMessage.model_validate(json.loads(data))
        except (json.JSONDecodeError, ValidationError):
            logger.warning(
                "diagram_subscription.malformed_event",
                diagram_id=diagram_id,
                data=data[:200],
            )
            return

        if message.id != diagram_id:
            return

        if message.type is DiagramEventType.CONNECTED:
            self.state = SubscriptionState.OPEN
            return

        if self._deleted:
            return

        if message.type is DiagramEventType.UPDATED:
            try:
                await self.session.reload_diagram(diagram_id)
            except (ValueError, httpx.HTTPError) as exc:
                logger.warning(
                    "diagram_subscription.reload_failed",
                    diagram_id=diagram_id,
                    error=repr(exc),
                )
        elif message.type is DiagramEventType.DELETED:
            self._deleted = True
            self.dialogs.open_open_diagram_dialog(can_close=False)
