"""Club material inventory."""

from .manager import MaterialManager
from .schemas import (
    Incident,
    IncidentKind,
    IncidentSeverity,
    Material,
    MaterialCreate,
    MaterialStatus,
)

__all__ = [
    "MaterialManager",
    "Incident",
    "IncidentKind",
    "IncidentSeverity",
    "Material",
    "MaterialCreate",
    "MaterialStatus",
]
