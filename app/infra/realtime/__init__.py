"""Server-Sent Events fan-out for diagram change notifications."""

from app.infra.realtime.connection import DiagramEventConnection
from app.infra.realtime.hub import DiagramEventHub

__all__ = ["DiagramEventConnection", "DiagramEventHub"]
