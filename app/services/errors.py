class DiagramNotFoundError(LookupError):
    def __init__(self, diagram_id: str) -> None:
        super().__init__(f"Diagram '{diagram_id}' not found")
        self.diagram_id = diagram_id


class DiagramAlreadyExistsError(ValueError):
    def __init__(self, diagram_id: str) -> None:
        super().__init__(f"Diagram '{diagram_id}' already exists")
        self.diagram_id = diagram_id


class DiagramCorruptError(ValueError):
    def __init__(self, diagram_id: str) -> None:
        super().__init__(f"Diagram '{diagram_id}' has corrupt data")
        self.diagram_id = diagram_id
