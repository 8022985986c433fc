from enum import Enum


class DiagramEventType(str, Enum):
    CONNECTED = "connected"
    UPDATED = "updated"
    DELETED = "deleted"


class DiagramCollection(str, Enum):
    TABLES = "tables"
    RELATIONSHIPS = "relationships"
    DEPENDENCIES = "dependencies"
    AREAS = "areas"
    CUSTOM_TYPES = "customTypes"
