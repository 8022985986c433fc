from typing import Any, Protocol

from app.client.storage import StorageConfig


class DiagramStorage(Protocol):
    async def get_config(self) -> StorageConfig: ...

    async def list_diagrams(self) -> list[dict[str, Any]]: ...

    async def get_diagram(self, diagram_id: str | None) -> dict[str, Any] | None: ...


class FullScreenLoader(Protocol):
    def show(self) -> None: ...

    def hide(self) -> None: ...


class DiagramDialogs(Protocol):
    def open_open_diagram_dialog(self, can_close: bool = True) -> None: ...

    def open_create_diagram_dialog(self) -> None: ...


class Navigator(Protocol):
    def navigate(self, path: str) -> None: ...


class HistoryStack:
    def __init__(self) -> None:
        self.undo_stack: list[Any] = []
        self.redo_stack: list[Any] = []

    def push(self, action: Any) -> None:
        self.undo_stack.append(action)
        self.redo_stack.clear()

    def undo(self) -> Any | None:
        if not self.undo_stack:
            return None
        action = self.undo_stack.pop()
        self.redo_stack.append(action)
        return action

    def redo(self) -> Any | None:
        if not self.redo_stack:
            return None
        action = self.redo_stack.pop()
        self.undo_stack.append(action)
        return action

    def reset_undo_stack(self) -> None:
        self.undo_stack.clear()

    def reset_redo_stack(self) -> None:
        self.redo_stack.clear()


class EditingSession:
    """The diagram currently open in the editor, plus its undo/redo history.

    ``load_diagram`` is the initial full load and starts a fresh history.
    ``reload_diagram`` pulls the stored copy into the open diagram and leaves
    history alone, so it is safe to call while the user is editing.
    """

    def __init__(self, storage: DiagramStorage, history: HistoryStack | None = None) -> None:
        self.storage = storage
        self.history = history or HistoryStack()
        self.current_diagram: dict[str, Any] | None = None

    @property
    def current_diagram_id(self) -> str | None:
        if self.current_diagram is None:
            return None
        return self.current_diagram.get("id")

    async def load_diagram(self, diagram_id: str) -> dict[str, Any] | None:
        self.history.reset_redo_stack()
        self.history.reset_undo_stack()
        diagram = await self.storage.get_diagram(diagram_id)
        if diagram is None:
            return None

        self.current_diagram = diagram
        return diagram

    async def reload_diagram(self, diagram_id: str) -> dict[str, Any] | None:
        diagram = await self.storage.get_diagram(diagram_id)
        if diagram is None:
            return None

        if self.current_diagram_id == diagram_id:
            self.current_diagram = {**self.current_diagram, **diagram}
        else:
            self.current_diagram = diagram
        return self.current_diagram
