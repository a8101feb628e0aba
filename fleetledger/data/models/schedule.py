"""
Schedule data model - a truck's time-boxed assignment.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field


class ScheduleType(str, Enum):
    """Kind of schedule entry."""

    DELIVERY = "Delivery"
    PICKUP = "Pickup"
    MAINTENANCE = "Maintenance"
    OTHER = "Other"


class ScheduleEntryDraft(BaseModel):
    """
    Schedule entry as proposed by a caller.

    Start/end ordering is checked by the scheduling engine, not here, so a
    bad range comes back as a rejection rather than an exception.
    """

    truck_id: str = Field(..., min_length=1)
    driver_id: Optional[str] = None
    title: str = Field(..., min_length=1)
    start: datetime
    end: datetime
    origin: str = ""
    destination: str = ""
    load_value: Optional[Decimal] = Field(None, gt=0, description="Load value (USD)")
    notes: Optional[str] = None
    schedule_type: ScheduleType = ScheduleType.DELIVERY
    is_partial_load: bool = False
    is_team_driven: bool = False
    broker_load_id: Optional[str] = Field(None, description="Originating broker load")

    @computed_field
    @property
    def duration_hours(self) -> float:
        """Length of the entry in hours."""
        return (self.end - self.start).total_seconds() / 3600

    def overlaps(self, other: "ScheduleEntryDraft") -> bool:
        """True when the two half-open [start, end) intervals intersect."""
        return self.start < other.end and self.end > other.start


class ScheduleEntry(ScheduleEntryDraft):
    """A persisted schedule entry."""

    id: str
