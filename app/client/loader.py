from typing import Any

import httpx

from app.client.config import ClientSettings, get_client_settings
from app.client.editing import (
    DiagramDialogs,
    DiagramStorage,
    EditingSession,
    FullScreenLoader,
    Navigator,
)
from app.client.sse import HttpDiagramEventSource
from app.client.storage import ServerStorageClient
from app.client.subscription import DiagramSubscription


class DiagramLoader:
    """Opens diagrams in the editor and keeps the live subscription in step."""

    def __init__(
        self,
        session: EditingSession,
        storage: DiagramStorage,
        dialogs: DiagramDialogs,
        loader: FullScreenLoader,
        navigator: Navigator,
        subscription: DiagramSubscription | None = None,
    ) -> None:
        self.session = session
        self.storage = storage
        self.dialogs = dialogs
        self.loader = loader
        self.navigator = navigator
        self.subscription = subscription
        self._loading_id: str | None = None

    @classmethod
    def from_settings(
        cls,
        http: httpx.AsyncClient,
        dialogs: DiagramDialogs,
        loader: FullScreenLoader,
        navigator: Navigator,
        settings: ClientSettings | None = None,
    ) -> "DiagramLoader":
        settings = settings or get_client_settings()
        storage = ServerStorageClient(http)
        session = EditingSession(storage)
        subscription = None
        if settings.live_updates_enabled:
            subscription = DiagramSubscription(HttpDiagramEventSource(http), session, dialogs)
        return cls(session, storage, dialogs, loader, navigator, subscription)

    async def open(self, diagram_id: str | None = None) -> dict[str, Any] | None:
        if diagram_id and self.session.current_diagram_id == diagram_id:
            await self._follow(diagram_id)
            return self.session.current_diagram

        loading_key = diagram_id or ""
        if self._loading_id == loading_key:
            return None

        self._loading_id = loading_key
        try:
            return await self._load(diagram_id)
        finally:
            self._loading_id = None

    async def close(self) -> None:
        if self.subscription is not None:
            await self.subscription.close()

    async def _load(self, diagram_id: str | None) -> dict[str, Any] | None:
        if diagram_id:
            self.loader.show()
            try:
                diagram = await self.session.load_diagram(diagram_id)
            finally:
                self.loader.hide()

            if diagram is None:
                await self.close()
                self.dialogs.open_open_diagram_dialog(can_close=False)
                return None

            await self._follow(diagram_id)
            return diagram

        config = await self.storage.get_config()
        if config.default_diagram_id:
            diagram = await self.session.load_diagram(config.default_diagram_id)
            if diagram is not None:
                self.navigator.navigate(f"/diagrams/{config.default_diagram_id}")
                await self._follow(config.default_diagram_id)
                return diagram

        diagrams = await self.storage.list_diagrams()
        if diagrams:
            self.dialogs.open_open_diagram_dialog(can_close=False)
        else:
            self.dialogs.open_create_diagram_dialog()
        return None

    async def _follow(self, diagram_id: str) -> None:
        if self.subscription is not None:
            await self.subscription.follow(diagram_id)
