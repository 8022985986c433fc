from typing import Protocol

from app.infra.realtime.events import DiagramChangeEvent


class DiagramEventPublisher(Protocol):
    async def publish(self, diagram_id: str, event: DiagramChangeEvent) -> None: ...


class NoopDiagramEventPublisher:
    async def publish(self, diagram_id: str, event: DiagramChangeEvent) -> None:
        _ = diagram_id
        _ = event
        return None
