"""Club activities."""

from .manager import ActivityManager
from .schemas import Activity, ActivityCreate, ActivityStatus

__all__ = ["ActivityManager", "Activity", "ActivityCreate", "ActivityStatus"]
