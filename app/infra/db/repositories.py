from collections.abc import Mapping
from typing import Any

from sqlalchemy import Select, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.diagrams import COLUMN_FIELDS, merge_diagram, normalize_diagram
from app.infra.db.models import DiagramRecord


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def record_to_document(record: DiagramRecord) -> dict[str, Any] | None:
    if not isinstance(record.data, Mapping):
        return None
    return {
        **record.data,
        "id": record.id,
        "name": record.name,
        "databaseType": record.database_type,
        "databaseEdition": record.database_edition,
        "createdAt": record.created_at,
        "updatedAt": record.updated_at,
    }


def apply_document(record: DiagramRecord, document: Mapping[str, Any]) -> None:
    record.name = str(document["name"])
    record.database_type = _optional_str(document.get("databaseType"))
    record.database_edition = _optional_str(document.get("databaseEdition"))
    record.created_at = _optional_str(document.get("createdAt"))
    record.updated_at = _optional_str(document.get("updatedAt"))
    record.data = {
        key: value for key, value in document.items() if key not in COLUMN_FIELDS
    }


class DiagramRepository:
    """Keyed document store for diagrams.

    Documents passed to ``insert`` and ``replace`` are expected to be
    normalized already. Nothing here commits; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, diagram_id: str) -> DiagramRecord | None:
        return await self.session.get(DiagramRecord, diagram_id)

    async def list(self) -> list[DiagramRecord]:
        stmt: Select[tuple[DiagramRecord]] = select(DiagramRecord).order_by(
            DiagramRecord.updated_at.desc(), DiagramRecord.id.asc()
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def insert(self, document: Mapping[str, Any]) -> DiagramRecord:
        record = DiagramRecord(id=document["id"])
        apply_document(record, document)
        self.session.add(record)
        await self.session.flush()
        return record

    async def replace(self, diagram_id: str, document: Mapping[str, Any]) -> DiagramRecord:
        record = await self.get(diagram_id)
        if record is None:
            return await self.insert({**document, "id": diagram_id})

        apply_document(record, document)
        await self.session.flush()
        return record

    async def patch_merge(
        self, diagram_id: str, changes: Mapping[str, Any]
    ) -> DiagramRecord | None:
        record = await self.get(diagram_id)
        if record is None:
            return None

        existing = record_to_document(record) or {}
        merged = normalize_diagram(merge_diagram(existing, changes, diagram_id))
        apply_document(record, merged)
        await self.session.flush()
        return record

    async def delete(self, diagram_id: str) -> bool:
        result = await self.session.execute(
            delete(DiagramRecord).where(DiagramRecord.id == diagram_id)
        )
        return bool(result.rowcount)
