"""Pydantic schemas for club activities."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ACTIVITIES_COLLECTION = "activities"


class ActivityStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class ActivityCreate(BaseModel):
    """Schema for creating an activity."""

    name: str = Field(..., min_length=1, max_length=200)
    start_date: datetime
    end_date: datetime
    responsible_id: Optional[str] = None
    participant_ids: list[str] = Field(default_factory=list)
    status: ActivityStatus = ActivityStatus.PLANNED

    @field_validator("end_date")
    @classmethod
    def end_after_start(cls, v, info):
        """Validate end date is not before start date."""
        if "start_date" in info.data and v < info.data["start_date"]:
            raise ValueError("end_date must not precede start_date")
        return v


class Activity(BaseModel):
    """An activity document as stored."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    status: ActivityStatus = ActivityStatus.PLANNED
    start_date: datetime
    end_date: datetime
    responsible_id: Optional[str] = None
    participant_ids: list[str] = Field(default_factory=list)
