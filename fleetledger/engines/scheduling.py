"""
Scheduling Engine - validated creation and revision of schedule entries.

Rules, in order:
- end must not precede start
- no overlap with another entry on the same truck, unless both entries are
  partial loads
- single-driver entries may not exceed the HOS duty limit (14h by default);
  team-driven entries are exempt

A rejected proposal leaves the store untouched.
"""

from typing import Any, Optional

from fleetledger.data.models import (
    Outcome,
    RejectionReason,
    ScheduleEntry,
    ScheduleEntryDraft,
    Violation,
)
from fleetledger.data.store import EntityStore
from fleetledger.engines.base import BaseEngine, as_utc


class SchedulingEngine(BaseEngine):
    """Scheduling Engine: overlap and hours-of-service enforcement per truck."""

    def __init__(self, store: EntityStore, **kwargs: Any) -> None:
        """Initialize the scheduling engine."""
        super().__init__(engine_name="scheduling", store=store, **kwargs)

    def propose_schedule_entry(self, draft: ScheduleEntryDraft) -> Outcome:
        """
        Validate and insert a new schedule entry.

        Args:
            draft: Proposed entry

        Returns:
            Outcome whose entity is the stored ScheduleEntry on success
        """
        draft = self._normalize(draft)
        violations = self.validate_schedule_entry(draft)
        if violations:
            return self.reject("propose_schedule_entry", violations)

        entry = self.store.insert_schedule_entry(draft)
        self.logger.info(
            "schedule_entry_created",
            schedule_entry_id=entry.id,
            truck_id=entry.truck_id,
            title=entry.title,
        )
        return self.accept("propose_schedule_entry", entry)

    def revise_schedule_entry(self, entry_id: str, draft: ScheduleEntryDraft) -> Outcome:
        """
        Validate and replace an existing schedule entry.

        The entry is checked against every other entry on its (possibly new)
        truck, never against its own previous version.

        Args:
            entry_id: Id of the entry being revised
            draft: Replacement values

        Returns:
            Outcome whose entity is the updated ScheduleEntry on success

        Raises:
            EntityNotFoundError: If no entry has that id
        """
        self.store.require_schedule_entry(entry_id)
        draft = self._normalize(draft)
        violations = self.validate_schedule_entry(draft, exclude_entry_id=entry_id)
        if violations:
            return self.reject("revise_schedule_entry", violations)

        entry = ScheduleEntry(id=entry_id, **draft.model_dump(exclude={"id"}))
        self.store.replace_schedule_entry(entry)
        self.logger.info("schedule_entry_revised", schedule_entry_id=entry_id, title=entry.title)
        return self.accept("revise_schedule_entry", entry)

    def validate_schedule_entry(
        self, draft: ScheduleEntryDraft, exclude_entry_id: Optional[str] = None
    ) -> list[Violation]:
        """
        Check a draft against the scheduling rules without writing anything.

        Both a conflict and an HOS violation are reported when both apply.

        Raises:
            EntityNotFoundError: If the truck or driver does not exist
        """
        truck = self.store.require_truck(draft.truck_id)
        if draft.driver_id is not None:
            self.store.require_driver(draft.driver_id)

        start, end = as_utc(draft.start), as_utc(draft.end)
        if end < start:
            return [
                Violation(
                    reason=RejectionReason.INVALID_TIME_RANGE,
                    message=f'End time of "{draft.title}" is before its start time',
                    details={"start": start.isoformat(), "end": end.isoformat()},
                )
            ]

        violations: list[Violation] = []

        conflict = self._find_conflict(draft, exclude_entry_id)
        if conflict is not None:
            violations.append(
                Violation(
                    reason=RejectionReason.SCHEDULE_CONFLICT,
                    message=(
                        f'Truck "{truck.name}" is already scheduled for '
                        f'"{conflict.title}" during this time'
                    ),
                    details={"conflicting_entry_id": conflict.id, "truck_id": truck.id},
                )
            )

        max_hours = self.rules.max_single_driver_hours
        duration = (end - start).total_seconds() / 3600
        if duration > max_hours and not draft.is_team_driven:
            violations.append(
                Violation(
                    reason=RejectionReason.HOS_VIOLATION,
                    message=(
                        f'"{draft.title}" runs {duration:.1f}h, over the {max_hours:g}h '
                        f"single-driver limit; mark it team driven or shorten it"
                    ),
                    details={"duration_hours": round(duration, 2), "limit_hours": max_hours},
                )
            )

        return violations

    def _find_conflict(
        self, draft: ScheduleEntryDraft, exclude_entry_id: Optional[str]
    ) -> Optional[ScheduleEntry]:
        """Earliest entry on the same truck that the draft may not overlap."""
        candidates = sorted(
            (
                e
                for e in self.store.entries_for_truck(draft.truck_id)
                if e.id != exclude_entry_id
            ),
            key=lambda e: e.start,
        )
        for existing in candidates:
            if not draft.overlaps(existing):
                continue
            # Shared windows are allowed only between two partial loads
            if draft.is_partial_load and existing.is_partial_load:
                continue
            return existing
        return None

    @staticmethod
    def _normalize(draft: ScheduleEntryDraft) -> ScheduleEntryDraft:
        return draft.model_copy(update={"start": as_utc(draft.start), "end": as_utc(draft.end)})
