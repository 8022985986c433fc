"""Diagram document rules shared by the repository and the service layer.

A diagram travels as a plain JSON object. Only a handful of top-level fields
are interpreted here; everything else (tables, relationships, filters, ...)
is carried as-is.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from app.domain.exceptions import InvalidDiagramError

DEFAULT_DIAGRAM_NAME = "Untitled"

# Top-level fields mirrored into their own columns.
COLUMN_FIELDS = ("id", "name", "databaseType", "databaseEdition", "createdAt", "updatedAt")
TEXT_FIELDS = ("name", "databaseType", "databaseEdition", "createdAt")


def utc_timestamp(now: datetime | None = None) -> str:
    moment = now or datetime.now(UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_diagram(document: Any, now: datetime | None = None) -> dict[str, Any]:
    if not isinstance(document, Mapping):
        raise InvalidDiagramError("Invalid diagram")

    diagram = dict(document)
    diagram_id = diagram.get("id")
    if not diagram_id or not isinstance(diagram_id, str):
        raise InvalidDiagramError("Diagram id is required")

    if not diagram.get("name"):
        diagram["name"] = DEFAULT_DIAGRAM_NAME

    # Header fields are stored in text columns.
    for field in TEXT_FIELDS:
        value = diagram.get(field)
        if value is not None and not isinstance(value, str):
            diagram[field] = str(value)

    timestamp = utc_timestamp(now)
    diagram["createdAt"] = diagram.get("createdAt") or timestamp
    diagram["updatedAt"] = timestamp
    return diagram


def merge_diagram(existing: Mapping[str, Any], changes: Any, diagram_id: str) -> dict[str, Any]:
    if not isinstance(changes, Mapping):
        raise InvalidDiagramError("Invalid diagram")
    return {**existing, **changes, "id": diagram_id}
