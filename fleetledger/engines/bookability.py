"""
Bookability Policy - derives each carrier's eligibility for new loads.

A carrier is bookable unless it has at least one Sent invoice whose due date
has fully elapsed (the end of the due day, UTC, is strictly in the past).
The flag on Carrier is a cache of this projection and is only written here.
"""

from datetime import date, datetime, time, timezone
from typing import Any, Optional

from fleetledger.data.models import Invoice, InvoiceStatus
from fleetledger.data.store import EntityStore
from fleetledger.engines.base import BaseEngine


def end_of_day(day: date) -> datetime:
    """Last instant of a calendar day in UTC."""
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


def invoice_is_overdue(invoice: Invoice, now: datetime) -> bool:
    """True for a Sent invoice whose due day is entirely in the past."""
    return invoice.status == InvoiceStatus.SENT and end_of_day(invoice.due_date) < now


class BookabilityPolicy(BaseEngine):
    """Recomputes Carrier.is_bookable from the carrier's invoices."""

    def __init__(self, store: EntityStore, **kwargs: Any) -> None:
        """Initialize the bookability policy."""
        super().__init__(engine_name="bookability", store=store, **kwargs)

    def overdue_invoices(self, carrier_id: str, now: Optional[datetime] = None) -> list[Invoice]:
        """Sent invoices of a carrier that are past their due day."""
        now = now or self.now()
        return [
            inv for inv in self.store.invoices_for_carrier(carrier_id) if invoice_is_overdue(inv, now)
        ]

    def is_bookable(self, carrier_id: str, now: Optional[datetime] = None) -> bool:
        """Pure evaluation of the policy; writes nothing."""
        return not self.overdue_invoices(carrier_id, now)

    def recompute_bookable(self, carrier_id: str) -> bool:
        """
        Re-derive and store a carrier's bookable flag.

        Idempotent: the carrier is only rewritten when the flag changes.

        Args:
            carrier_id: Carrier to evaluate

        Returns:
            The carrier's current bookable flag

        Raises:
            EntityNotFoundError: If the carrier does not exist
        """
        carrier = self.store.require_carrier(carrier_id)
        overdue = self.overdue_invoices(carrier_id)
        bookable = not overdue

        if carrier.is_bookable != bookable:
            self.store.put_carrier(carrier.model_copy(update={"is_bookable": bookable}))
            self.logger.info(
                "carrier_bookability_changed",
                carrier_id=carrier_id,
                is_bookable=bookable,
                overdue_invoices=[inv.invoice_number for inv in overdue],
            )
        return bookable

    def recompute_all(self) -> dict[str, bool]:
        """Re-derive the flag for every carrier."""
        return {carrier_id: self.recompute_bookable(carrier_id) for carrier_id in list(self.store.carriers)}
