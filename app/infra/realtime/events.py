from dataclasses import dataclass
from typing import Any

from app.domain.enums import DiagramEventType


@dataclass(frozen=True, slots=True)
class DiagramChangeEvent:
    kind: DiagramEventType
    diagram_id: str

    @classmethod
    def updated(cls, diagram_id: str) -> "DiagramChangeEvent":
        return cls(kind=DiagramEventType.UPDATED, diagram_id=diagram_id)

    @classmethod
    def deleted(cls, diagram_id: str) -> "DiagramChangeEvent":
        return cls(kind=DiagramEventType.DELETED, diagram_id=diagram_id)

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.kind.value, "id": self.diagram_id}
