from pydantic import BaseModel, ConfigDict

from app.domain.enums import DiagramEventType


class DiagramResponse(BaseModel):
    id: str
    name: str
    databaseType: str | None = None
    databaseEdition: str | None = None
    createdAt: str | None = None
    updatedAt: str | None = None

    model_config = ConfigDict(extra="allow")


class DiagramEventMessage(BaseModel):
    type: DiagramEventType
    id: str

    model_config = ConfigDict(frozen=True)
