"""
Base engine class for the ledger's policy engines.

Provides common functionality:
- Access to the entity store, business rules and clock
- Structured logging
- Outcome tracking (every accepted or rejected command is recorded)
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from fleetledger.core.config import LedgerRules, get_config
from fleetledger.data.models import Outcome, RejectionReason, Violation
from fleetledger.data.store import EntityStore


def as_utc(value: datetime) -> datetime:
    """Normalize an instant to aware UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class BaseEngine:
    """
    Base class for the scheduling, billing, bookability and broker engines.

    Provides:
    - Shared store and rules
    - Outcome construction and history
    - Bound structured logger
    """

    #: Outcomes kept in memory per engine
    history_limit = 500

    def __init__(
        self,
        engine_name: str,
        store: EntityStore,
        rules: Optional[LedgerRules] = None,
        logger: Optional[structlog.BoundLogger] = None,
    ) -> None:
        """
        Initialize the base engine.

        Args:
            engine_name: Name of the engine (e.g., "scheduling", "billing")
            store: Entity store the engine reads and writes
            rules: Business rules (defaults to the global configuration)
            logger: Optional structured logger
        """
        self.engine_name = engine_name
        self.store = store
        self.rules = rules or get_config().get_rules()
        self.logger = logger or structlog.get_logger(engine_name=engine_name)

        self.outcome_history: list[Outcome] = []

    def now(self) -> datetime:
        """Current instant from the store's clock, in UTC."""
        return as_utc(self.store.clock())

    def accept(self, operation: str, entity: Any = None) -> Outcome:
        """Record and return a successful outcome."""
        return self._record(
            Outcome(
                timestamp=self.now(),
                engine_name=self.engine_name,
                operation=operation,
                ok=True,
                entity=entity,
            )
        )

    def reject(self, operation: str, violations: list[Violation]) -> Outcome:
        """Record and return a rejection. No state has been changed."""
        return self._record(
            Outcome(
                timestamp=self.now(),
                engine_name=self.engine_name,
                operation=operation,
                ok=False,
                violations=violations,
            )
        )

    def reject_one(
        self, operation: str, reason: RejectionReason, message: str, **details: Any
    ) -> Outcome:
        """Shorthand for a rejection with a single violation."""
        return self.reject(operation, [Violation(reason=reason, message=message, details=details)])

    def _record(self, outcome: Outcome) -> Outcome:
        self.outcome_history.append(outcome)
        if len(self.outcome_history) > self.history_limit:
            del self.outcome_history[: -self.history_limit]

        if outcome.ok:
            self.logger.info("command_accepted", operation=outcome.operation)
        else:
            self.logger.warning(
                "command_rejected",
                operation=outcome.operation,
                reasons=[v.reason.value for v in outcome.violations],
                message=outcome.message,
            )
        return outcome

    def export_outcomes(self, filepath: str) -> None:
        """
        Export outcome history to a JSON file.

        Args:
            filepath: Path to output JSON file
        """
        with open(filepath, "w") as f:
            outcomes = [o.model_dump(mode="json", exclude={"entity"}) for o in self.outcome_history]
            json.dump(outcomes, f, indent=2, default=str)

        self.logger.info("outcomes_exported", filepath=filepath, count=len(self.outcome_history))

    def __repr__(self) -> str:
        """String representation of the engine."""
        return f"{self.__class__.__name__}(engine_name='{self.engine_name}')"
