from typing import Any

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.diagrams import normalize_diagram
from app.domain.exceptions import InvalidDiagramError
from app.infra.db.repositories import DiagramRepository, record_to_document
from app.infra.realtime.events import DiagramChangeEvent
from app.infra.realtime.publisher import DiagramEventPublisher, NoopDiagramEventPublisher
from app.services.errors import (
    DiagramAlreadyExistsError,
    DiagramCorruptError,
    DiagramNotFoundError,
)

logger = structlog.get_logger()


class DiagramService:
    """Diagram use cases.

    Every successful mutation commits first and then publishes exactly one
    change event for the diagram. Any failure before or during the commit
    propagates to the caller and nothing is published.
    """

    def __init__(
        self,
        session: AsyncSession,
        diagrams: DiagramRepository | None = None,
        realtime: DiagramEventPublisher | None = None,
    ) -> None:
        self.session = session
        self.diagrams = diagrams or DiagramRepository(session)
        self.realtime = realtime or NoopDiagramEventPublisher()

    async def list_diagrams(self) -> list[dict[str, Any]]:
        records = await self.diagrams.list()
        documents = [record_to_document(record) for record in records]
        return [document for document in documents if document is not None]

    async def get_diagram(self, diagram_id: str) -> dict[str, Any]:
        record = await self.diagrams.get(diagram_id)
        if record is None:
            raise DiagramNotFoundError(diagram_id)

        document = record_to_document(record)
        if document is None:
            raise DiagramCorruptError(diagram_id)
        return document

    async def create_diagram(self, payload: Any) -> dict[str, Any]:
        document = normalize_diagram(payload)
        diagram_id = document["id"]
        if await self.diagrams.get(diagram_id) is not None:
            raise DiagramAlreadyExistsError(diagram_id)

        try:
            await self.diagrams.insert(document)
            await self.session.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent create of the same id.
            await self.session.rollback()
            raise DiagramAlreadyExistsError(diagram_id) from exc

        await self._publish(DiagramChangeEvent.updated(diagram_id))
        return document

    async def replace_diagram(self, diagram_id: str, payload: Any) -> dict[str, Any]:
        if not isinstance(payload, dict):
            raise InvalidDiagramError("Invalid diagram")

        document = normalize_diagram({**payload, "id": diagram_id})
        await self.diagrams.replace(diagram_id, document)
        await self.session.commit()

        await self._publish(DiagramChangeEvent.updated(diagram_id))
        return document

    async def patch_diagram(self, diagram_id: str, changes: Any) -> dict[str, Any]:
        if not isinstance(changes, dict):
            raise InvalidDiagramError("Invalid diagram")

        record = await self.diagrams.patch_merge(diagram_id, changes)
        if record is None:
            raise DiagramNotFoundError(diagram_id)

        document = record_to_document(record)
        await self.session.commit()

        await self._publish(DiagramChangeEvent.updated(diagram_id))
        return document or {}

    async def delete_diagram(self, diagram_id: str) -> None:
        deleted = await self.diagrams.delete(diagram_id)
        if not deleted:
            raise DiagramNotFoundError(diagram_id)

        await self.session.commit()
        await self._publish(DiagramChangeEvent.deleted(diagram_id))

    async def _publish(self, event: DiagramChangeEvent) -> None:
        await self.realtime.publish(event.diagram_id, event)
        logger.debug(
            "diagram_service.published",
            diagram_id=event.diagram_id,
            event_type=event.kind.value,
        )
