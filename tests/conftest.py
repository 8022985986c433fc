import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from app.client.storage import StorageConfig
from app.domain.diagrams import merge_diagram, normalize_diagram
from app.infra.db.models import DiagramRecord
from app.infra.db.repositories import apply_document, record_to_document
from app.infra.realtime import DiagramEventHub
from app.infra.realtime.events import DiagramChangeEvent
from app.services.diagram_service import DiagramService
from app.services.errors import DiagramNotFoundError


class DummySession:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0
        self.fail_commit = False

    async def commit(self) -> None:
        if self.fail_commit:
            raise RuntimeError("database unavailable")
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


class FakeDiagramRepository:
    def __init__(self) -> None:
        self.records: dict[str, DiagramRecord] = {}

    async def get(self, diagram_id: str) -> DiagramRecord | None:
        return self.records.get(diagram_id)

    async def list(self) -> list[DiagramRecord]:
        return sorted(
            self.records.values(),
            key=lambda record: record.updated_at or "",
            reverse=True,
        )

    async def insert(self, document: dict[str, Any]) -> DiagramRecord:
        record = DiagramRecord(id=document["id"])
        apply_document(record, document)
        self.records[record.id] = record
        return record

    async def replace(self, diagram_id: str, document: dict[str, Any]) -> DiagramRecord:
        record = self.records.get(diagram_id) or DiagramRecord(id=diagram_id)
        apply_document(record, document)
        self.records[diagram_id] = record
        return record

    async def patch_merge(
        self, diagram_id: str, changes: dict[str, Any]
    ) -> DiagramRecord | None:
        record = self.records.get(diagram_id)
        if record is None:
            return None
        existing = record_to_document(record) or {}
        apply_document(record, normalize_diagram(merge_diagram(existing, changes, diagram_id)))
        return record

    async def delete(self, diagram_id: str) -> bool:
        return self.records.pop(diagram_id, None) is not None


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[tuple[str, DiagramChangeEvent]] = []

    async def publish(self, diagram_id: str, event: DiagramChangeEvent) -> None:
        self.events.append((diagram_id, event))


class ServiceBackedStorage:
    """Editor-side storage that talks to the service in-process."""

    def __init__(self, service: DiagramService) -> None:
        self.service = service
        self.fetches = 0

    async def get_config(self) -> StorageConfig:
        diagrams = await self.service.list_diagrams()
        return StorageConfig(default_diagram_id=diagrams[0]["id"] if diagrams else "")

    async def list_diagrams(self) -> list[dict[str, Any]]:
        return await self.service.list_diagrams()

    async def get_diagram(self, diagram_id: str | None) -> dict[str, Any] | None:
        if not diagram_id:
            return None
        self.fetches += 1
        try:
            return await self.service.get_diagram(diagram_id)
        except DiagramNotFoundError:
            return None


class FakeDialogs:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def open_open_diagram_dialog(self, can_close: bool = True) -> None:
        self.calls.append(("open", {"can_close": can_close}))

    def open_create_diagram_dialog(self) -> None:
        self.calls.append(("create", {}))


class FakeLoader:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def show(self) -> None:
        self.calls.append("show")

    def hide(self) -> None:
        self.calls.append("hide")


class FakeNavigator:
    def __init__(self) -> None:
        self.paths: list[str] = []

    def navigate(self, path: str) -> None:
        self.paths.append(path)


@pytest.fixture
def dummy_session() -> DummySession:
    return DummySession()


@pytest.fixture
def diagram_repository() -> FakeDiagramRepository:
    return FakeDiagramRepository()


@pytest.fixture
def recording_publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def diagram_hub() -> DiagramEventHub:
    return DiagramEventHub()


@pytest.fixture
def dialogs() -> FakeDialogs:
    return FakeDialogs()


@pytest.fixture
def full_screen_loader() -> FakeLoader:
    return FakeLoader()


@pytest.fixture
def navigator() -> FakeNavigator:
    return FakeNavigator()


@pytest.fixture
def service_backed_storage_factory() -> Callable[[DiagramService], ServiceBackedStorage]:
    return ServiceBackedStorage


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait_until
