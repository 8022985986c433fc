from typing import Any

import pytest

from app.client.config import ClientSettings, create_http_client
from app.client.editing import EditingSession, HistoryStack
from app.client.loader import DiagramLoader
from app.client.storage import ServerStorageClient, StorageConfig
from app.client.subscription import DiagramSubscription


class InMemoryStorage:
    def __init__(self, *diagrams: dict[str, Any]) -> None:
        self.diagrams = {diagram["id"]: diagram for diagram in diagrams}
        self.fetches: list[str] = []

    async def get_config(self) -> StorageConfig:
        return StorageConfig(default_diagram_id=next(iter(self.diagrams), ""))

    async def list_diagrams(self) -> list[dict[str, Any]]:
        return list(self.diagrams.values())

    async def get_diagram(self, diagram_id: str | None) -> dict[str, Any] | None:
        self.fetches.append(diagram_id or "")
        diagram = self.diagrams.get(diagram_id or "")
        return dict(diagram) if diagram else None


class RecordingSubscription:
    def __init__(self) -> None:
        self.followed: list[str] = []
        self.closed = 0

    async def follow(self, diagram_id: str) -> None:
        self.followed.append(diagram_id)

    async def close(self) -> None:
        self.closed += 1


def _build(storage, dialogs, full_screen_loader, navigator, subscription=None):
    session = EditingSession(storage)
    loader = DiagramLoader(
        session, storage, dialogs, full_screen_loader, navigator, subscription
    )
    return session, loader


@pytest.mark.asyncio
async def test_open_loads_diagram_and_follows_it(dialogs, full_screen_loader, navigator) -> None:
    storage = InMemoryStorage({"id": "r1", "name": "Shop"})
    subscription = RecordingSubscription()
    session, loader = _build(storage, dialogs, full_screen_loader, navigator, subscription)
    session.history.push("stale-action")

    diagram = await loader.open("r1")

    assert diagram["name"] == "Shop"
    assert session.current_diagram_id == "r1"
    assert session.history.undo_stack == []
    assert full_screen_loader.calls == ["show", "hide"]
    assert subscription.followed == ["r1"]


@pytest.mark.asyncio
async def test_open_missing_diagram_shows_picker(dialogs, full_screen_loader, navigator) -> None:
    subscription = RecordingSubscription()
    _, loader = _build(InMemoryStorage(), dialogs, full_screen_loader, navigator, subscription)

    assert await loader.open("missing") is None

    assert dialogs.calls == [("open", {"can_close": False})]
    assert full_screen_loader.calls == ["show", "hide"]
    assert subscription.followed == []
    assert subscription.closed == 1


@pytest.mark.asyncio
async def test_open_current_diagram_does_not_reload(dialogs, full_screen_loader, navigator) -> None:
    storage = InMemoryStorage({"id": "r1"})
    subscription = RecordingSubscription()
    session, loader = _build(storage, dialogs, full_screen_loader, navigator, subscription)
    await loader.open("r1")
    session.history.push("edit")

    await loader.open("r1")

    assert storage.fetches == ["r1"]
    assert session.history.undo_stack == ["edit"]
    assert subscription.followed == ["r1", "r1"]


@pytest.mark.asyncio
async def test_open_without_id_uses_default_diagram(dialogs, full_screen_loader, navigator) -> None:
    storage = InMemoryStorage({"id": "r1"}, {"id": "r2"})
    subscription = RecordingSubscription()
    session, loader = _build(storage, dialogs, full_screen_loader, navigator, subscription)

    await loader.open()

    assert navigator.paths == ["/diagrams/r1"]
    assert session.current_diagram_id == "r1"
    assert subscription.followed == ["r1"]
    assert dialogs.calls == []


@pytest.mark.asyncio
async def test_open_without_any_diagram_offers_create(dialogs, full_screen_loader, navigator) -> None:
    _, loader = _build(InMemoryStorage(), dialogs, full_screen_loader, navigator)

    await loader.open()

    assert dialogs.calls == [("create", {})]
    assert navigator.paths == []


@pytest.mark.asyncio
async def test_loader_without_live_updates_only_loads(dialogs, full_screen_loader, navigator) -> None:
    session, loader = _build(InMemoryStorage({"id": "r1"}), dialogs, full_screen_loader, navigator)

    await loader.open("r1")
    await loader.close()

    assert session.current_diagram_id == "r1"


@pytest.mark.asyncio
async def test_soft_reload_keeps_history_and_full_load_resets_it() -> None:
    storage = InMemoryStorage({"id": "r1", "name": "Shop", "tables": []})
    session = EditingSession(storage, HistoryStack())
    await session.load_diagram("r1")
    session.current_diagram["viewport"] = {"zoom": 2}
    session.history.push("add-table")
    session.history.push("move-table")
    session.history.undo()

    storage.diagrams["r1"]["name"] = "Store"
    reloaded = await session.reload_diagram("r1")

    assert reloaded["name"] == "Store"
    assert reloaded["viewport"] == {"zoom": 2}
    assert session.history.undo_stack == ["add-table"]
    assert session.history.redo_stack == ["move-table"]

    await session.load_diagram("r1")
    assert session.history.undo_stack == []
    assert session.history.redo_stack == []


@pytest.mark.asyncio
async def test_soft_reload_of_vanished_diagram_keeps_current_view() -> None:
    storage = InMemoryStorage({"id": "r1", "name": "Shop"})
    session = EditingSession(storage)
    await session.load_diagram("r1")
    del storage.diagrams["r1"]

    assert await session.reload_diagram("r1") is None
    assert session.current_diagram["name"] == "Shop"


def test_history_stack_push_clears_redo() -> None:
    history = HistoryStack()
    history.push("a")
    history.push("b")
    assert history.undo() == "b"
    assert history.redo() == "b"
    history.undo()
    history.push("c")

    assert history.undo_stack == ["a", "c"]
    assert history.redo_stack == []
    assert HistoryStack().undo() is None


@pytest.mark.asyncio
async def test_from_settings_wires_live_updates_only_for_server_storage(
    dialogs, full_screen_loader, navigator
) -> None:
    settings = ClientSettings(api_base="http://chartdb.test/", storage_backend="server")
    async with create_http_client(settings) as http:
        live = DiagramLoader.from_settings(
            http, dialogs, full_screen_loader, navigator, settings
        )
        local = DiagramLoader.from_settings(
            http,
            dialogs,
            full_screen_loader,
            navigator,
            ClientSettings(storage_backend="indexeddb"),
        )

        assert http.base_url.host == "chartdb.test"
        assert isinstance(live.storage, ServerStorageClient)
        assert isinstance(live.subscription, DiagramSubscription)
        assert live.subscription.session is live.session
        assert local.subscription is None
