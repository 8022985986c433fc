from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from app.client.config import API_PREFIX
from app.domain.enums import DiagramCollection


class StorageRequestError(RuntimeError):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True, slots=True)
class StorageConfig:
    default_diagram_id: str


def diagram_path(diagram_id: str, *parts: str) -> str:
    return "/".join([f"{API_PREFIX}/diagrams/{quote(diagram_id, safe='')}", *parts])


def upsert_item(items: list[dict[str, Any]] | None, item: dict[str, Any]) -> list[dict[str, Any]]:
    current = list(items or [])
    for index, existing in enumerate(current):
        if existing.get("id") == item.get("id"):
            current[index] = {**existing, **item}
            return current
    current.append(item)
    return current


def remove_item(items: list[dict[str, Any]] | None, item_id: str) -> list[dict[str, Any]]:
    return [item for item in items or [] if item.get("id") != item_id]


class ServerStorageClient:
    """Diagram storage backed by the diagram API."""

    def __init__(self, http: httpx.AsyncClient) -> None:
        self.http = http

    async def _request(self, method: str, url: str, payload: Any = None) -> Any:
        response = await self.http.request(method, url, json=payload)
        if response.is_error:
            raise StorageRequestError(response.status_code, response.text)
        if response.status_code == 204:
            return None
        return response.json()

    async def get_config(self) -> StorageConfig:
        diagrams = await self.list_diagrams()
        default_diagram_id = diagrams[0]["id"] if diagrams else ""
        return StorageConfig(default_diagram_id=default_diagram_id)

    async def list_diagrams(self) -> list[dict[str, Any]]:
        return await self._request("GET", f"{API_PREFIX}/diagrams")

    async def get_diagram(self, diagram_id: str | None) -> dict[str, Any] | None:
        if not diagram_id:
            return None
        try:
            return await self._request("GET", diagram_path(diagram_id))
        except (StorageRequestError, httpx.HTTPError, ValueError):
            return None

    async def add_diagram(self, diagram: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"{API_PREFIX}/diagrams", diagram)

    async def save_diagram(self, diagram: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PUT", diagram_path(diagram["id"]), diagram)

    async def update_diagram(self, diagram_id: str, attributes: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PATCH", diagram_path(diagram_id), attributes)

    async def delete_diagram(self, diagram_id: str) -> None:
        await self._request("DELETE", diagram_path(diagram_id))

    async def put_item(
        self,
        diagram_id: str,
        collection: DiagramCollection,
        item: dict[str, Any],
    ) -> dict[str, Any]:
        diagram = await self._require_diagram(diagram_id)
        diagram[collection.value] = upsert_item(diagram.get(collection.value), item)
        return await self.save_diagram(diagram)

    async def delete_item(
        self,
        diagram_id: str,
        collection: DiagramCollection,
        item_id: str,
    ) -> dict[str, Any]:
        diagram = await self._require_diagram(diagram_id)
        diagram[collection.value] = remove_item(diagram.get(collection.value), item_id)
        return await self.save_diagram(diagram)

    async def _require_diagram(self, diagram_id: str) -> dict[str, Any]:
        diagram = await self.get_diagram(diagram_id)
        if diagram is None:
            raise StorageRequestError(404, f"Diagram '{diagram_id}' not found")
        return diagram
