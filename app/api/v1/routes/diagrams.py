from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.db import get_db_session
from app.domain.exceptions import InvalidDiagramError
from app.infra.realtime import DiagramEventConnection, DiagramEventHub
from app.infra.realtime.connection import SSE_HEADERS
from app.schemas.diagram import DiagramResponse
from app.services.diagram_service import DiagramService
from app.services.errors import (
    DiagramAlreadyExistsError,
    DiagramCorruptError,
    DiagramNotFoundError,
)

router = APIRouter()


def get_diagram_hub(request: Request) -> DiagramEventHub:
    hub = getattr(request.app.state, "diagram_hub", None)
    if hub is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Diagram event hub not initialized",
        )
    return hub


async def get_diagram_service(
    session: AsyncSession = Depends(get_db_session),
    hub: DiagramEventHub = Depends(get_diagram_hub),
) -> DiagramService:
    return DiagramService(session, realtime=hub)


def _raise_for_service_error(exc: Exception) -> None:
    if isinstance(exc, DiagramNotFoundError):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
        ) from exc
    if isinstance(exc, DiagramAlreadyExistsError):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=str(exc)
        ) from exc
    if isinstance(exc, InvalidDiagramError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    if isinstance(exc, DiagramCorruptError):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    raise exc


@router.get("", response_model=list[DiagramResponse])
async def list_diagrams(
    service: DiagramService = Depends(get_diagram_service),
) -> list[dict[str, Any]]:
    return await service.list_diagrams()


@router.get("/{diagram_id}", response_model=DiagramResponse)
async def get_diagram(
    diagram_id: str,
    service: DiagramService = Depends(get_diagram_service),
) -> dict[str, Any]:
    try:
        return await service.get_diagram(diagram_id)
    except (DiagramNotFoundError, DiagramCorruptError) as exc:
        _raise_for_service_error(exc)


@router.post(
    "",
    response_model=DiagramResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_diagram(
    payload: Any = Body(default=None),
    service: DiagramService = Depends(get_diagram_service),
) -> dict[str, Any]:
    try:
        return await service.create_diagram(payload)
    except (InvalidDiagramError, DiagramAlreadyExistsError) as exc:
        _raise_for_service_error(exc)


@router.put("/{diagram_id}", response_model=DiagramResponse)
async def replace_diagram(
    diagram_id: str,
    payload: Any = Body(default=None),
    service: DiagramService = Depends(get_diagram_service),
) -> dict[str, Any]:
    try:
        return await service.replace_diagram(diagram_id, payload)
    except InvalidDiagramError as exc:
        _raise_for_service_error(exc)


@router.patch("/{diagram_id}", response_model=DiagramResponse)
async def patch_diagram(
    diagram_id: str,
    payload: Any = Body(default=None),
    service: DiagramService = Depends(get_diagram_service),
) -> dict[str, Any]:
    try:
        return await service.patch_diagram(diagram_id, payload)
    except (InvalidDiagramError, DiagramNotFoundError) as exc:
        _raise_for_service_error(exc)


@router.delete("/{diagram_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_diagram(
    diagram_id: str,
    service: DiagramService = Depends(get_diagram_service),
) -> Response:
    try:
        await service.delete_diagram(diagram_id)
    except DiagramNotFoundError as exc:
        _raise_for_service_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{diagram_id}/events")
async def stream_diagram_events(
    diagram_id: str,
    hub: DiagramEventHub = Depends(get_diagram_hub),
) -> StreamingResponse:
    settings = get_settings()
    connection = DiagramEventConnection(
        hub,
        diagram_id,
        heartbeat_interval=settings.realtime_heartbeat_seconds,
        queue_size=settings.realtime_queue_size,
    )
    return StreamingResponse(
        connection.stream(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
