"""
Command outcomes and the acting-party session.

Engines never raise for expected business-rule rejections; they return an
``Outcome`` instead and leave every entity untouched.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class RejectionReason(str, Enum):
    """Why a command was refused."""

    # Validation
    INVALID_TIME_RANGE = "invalid_time_range"
    INVALID_AMOUNT = "invalid_amount"

    # Business rules
    SCHEDULE_CONFLICT = "schedule_conflict"
    HOS_VIOLATION = "hos_violation"
    CARRIER_UNBOOKABLE = "carrier_unbookable"
    LOAD_NOT_AVAILABLE = "load_not_available"
    TRUCK_CARRIER_MISMATCH = "truck_carrier_mismatch"
    DUPLICATE_FEE_RECORD = "duplicate_fee_record"
    NO_ELIGIBLE_FEES = "no_eligible_fees"
    MISSING_LOAD_VALUE = "missing_load_value"


class Violation(BaseModel):
    """A single reason a command was rejected."""

    reason: RejectionReason
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class Outcome(BaseModel):
    """Structured result of an engine command."""

    timestamp: datetime
    engine_name: str
    operation: str
    ok: bool
    entity: Optional[Any] = None
    violations: list[Violation] = Field(default_factory=list)

    @property
    def reason(self) -> Optional[RejectionReason]:
        """Reason of the first violation, or None on success."""
        return self.violations[0].reason if self.violations else None

    @property
    def message(self) -> str:
        """Human-readable summary of every violation."""
        return "; ".join(v.message for v in self.violations)


class SessionRole(str, Enum):
    """Role of the acting party."""

    DISPATCHER = "dispatcher"
    BROKER = "broker"
    CARRIER = "carrier"


class Session(BaseModel):
    """Acting party threaded into commands that record who did something."""

    user_id: str = Field(..., min_length=1)
    role: SessionRole = SessionRole.DISPATCHER
