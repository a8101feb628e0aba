"""
Billing Engine - dispatch fees, invoice generation and manual adjustments.

This engine:
- Derives a 10% dispatch fee record from a valued schedule entry
- Batches a carrier's pending fees into a Sent invoice due Wednesday of the
  generation week
- Tracks invoice status and re-runs the bookability policy on every change
- Keeps manual charges/credits behind an approval step

Invoice totals are always recomputed from scratch, never patched.
"""

from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional, Union

from fleetledger.data.models import (
    DispatchFeeRecord,
    FeeStatus,
    Invoice,
    InvoiceStatus,
    LineItemStatus,
    ManualLineItem,
    ManualLineItemDraft,
    Outcome,
    RejectionReason,
    ScheduleEntry,
)
from fleetledger.data.store import EntityNotFoundError, EntityStore
from fleetledger.engines.base import BaseEngine
from fleetledger.engines.bookability import BookabilityPolicy

CENT = Decimal("0.01")


def to_money(value: Union[Decimal, int, float, str]) -> Decimal:
    """Round a monetary amount to cents, half up."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def invoice_due_date(generated_at: datetime, weekday: int = 2) -> date:
    """Given weekday of the Monday-start week containing the generation instant."""
    monday = generated_at.date() - timedelta(days=generated_at.weekday())
    return monday + timedelta(days=weekday)


class BillingEngine(BaseEngine):
    """Billing Engine for dispatch fees and carrier invoices."""

    def __init__(
        self, store: EntityStore, bookability: BookabilityPolicy, **kwargs: Any
    ) -> None:
        """
        Initialize the billing engine.

        Args:
            store: Entity store
            bookability: Policy re-run after invoice changes
        """
        super().__init__(engine_name="billing", store=store, **kwargs)
        self.bookability = bookability

    # ------------------------------------------------------------------
    # dispatch fees

    def active_fee_for_entry(self, schedule_entry_id: str) -> Optional[DispatchFeeRecord]:
        """Pending or Invoiced fee record for a schedule entry, if any."""
        for record in self.store.dispatch_fee_records.values():
            if record.schedule_entry_id == schedule_entry_id and record.status in (
                FeeStatus.PENDING,
                FeeStatus.INVOICED,
            ):
                return record
        return None

    def eligible_fee_entries(self) -> list[ScheduleEntry]:
        """Schedule entries with a positive load value and no active fee record."""
        return [
            entry
            for entry in self.store.schedule_entries.values()
            if entry.load_value is not None
            and entry.load_value > 0
            and self.active_fee_for_entry(entry.id) is None
        ]

    def create_dispatch_fee_record(
        self,
        schedule_entry_id: str,
        carrier_id: str,
        original_load_amount: Union[Decimal, int, float, str],
    ) -> Outcome:
        """
        Create the dispatch fee record for a schedule entry.

        Args:
            schedule_entry_id: Entry the fee is charged for
            carrier_id: Carrier that owes the fee
            original_load_amount: Load value the fee is a share of

        Returns:
            Outcome whose entity is the new DispatchFeeRecord on success

        Raises:
            EntityNotFoundError: If the entry or carrier does not exist
        """
        operation = "create_dispatch_fee_record"
        self.store.require_schedule_entry(schedule_entry_id)
        self.store.require_carrier(carrier_id)

        amount = Decimal(str(original_load_amount))
        if amount <= 0:
            return self.reject_one(
                operation,
                RejectionReason.INVALID_AMOUNT,
                f"Load amount must be greater than zero (got {amount})",
                schedule_entry_id=schedule_entry_id,
            )

        existing = self.active_fee_for_entry(schedule_entry_id)
        if existing is not None:
            return self.reject_one(
                operation,
                RejectionReason.DUPLICATE_FEE_RECORD,
                f"A {existing.status.value.lower()} fee record already exists for this schedule entry",
                schedule_entry_id=schedule_entry_id,
                fee_record_id=existing.id,
            )

        record = DispatchFeeRecord(
            id=self.store.new_id("fee"),
            schedule_entry_id=schedule_entry_id,
            carrier_id=carrier_id,
            original_load_amount=amount,
            fee_amount=to_money(amount * self.rules.dispatch_fee_rate),
            status=FeeStatus.PENDING,
            calculated_date=self.now(),
        )
        self.store.insert_fee_record(record)
        self.logger.info(
            "dispatch_fee_created",
            fee_record_id=record.id,
            schedule_entry_id=schedule_entry_id,
            carrier_id=carrier_id,
            fee_amount=str(record.fee_amount),
        )
        return self.accept(operation, record)

    def create_fee_for_schedule_entry(self, schedule_entry_id: str) -> Outcome:
        """
        Create a fee record, deriving carrier and amount from the entry.

        The carrier is the owner of the entry's truck; the amount is the
        entry's load value.
        """
        entry = self.store.require_schedule_entry(schedule_entry_id)
        if entry.load_value is None or entry.load_value <= 0:
            return self.reject_one(
                "create_dispatch_fee_record",
                RejectionReason.MISSING_LOAD_VALUE,
                f'"{entry.title}" has no load value to charge a fee on',
                schedule_entry_id=schedule_entry_id,
            )
        truck = self.store.require_truck(entry.truck_id)
        return self.create_dispatch_fee_record(entry.id, truck.carrier_id, entry.load_value)

    # ------------------------------------------------------------------
    # invoices

    def generate_invoice(self, carrier_id: str, fee_record_ids: Iterable[str]) -> Outcome:
        """
        Batch a carrier's pending fee records into a Sent invoice.

        Only records that belong to the carrier, are listed in
        ``fee_record_ids`` and are still Pending are included.

        Args:
            carrier_id: Carrier being invoiced
            fee_record_ids: Candidate fee records

        Returns:
            Outcome whose entity is the new Invoice on success

        Raises:
            EntityNotFoundError: If the carrier does not exist
        """
        operation = "generate_invoice"
        self.store.require_carrier(carrier_id)
        wanted = set(fee_record_ids)

        records = [
            r
            for r in self.store.dispatch_fee_records.values()
            if r.carrier_id == carrier_id and r.id in wanted and r.status == FeeStatus.PENDING
        ]
        if not records:
            return self.reject_one(
                operation,
                RejectionReason.NO_ELIGIBLE_FEES,
                "No pending dispatch fee records selected for this carrier",
                carrier_id=carrier_id,
            )

        now = self.now()
        invoice = Invoice(
            id=self.store.new_id("inv"),
            invoice_number=self.store.next_invoice_number(
                now.year, self.rules.invoice_number_prefix
            ),
            carrier_id=carrier_id,
            invoice_date=now,
            due_date=invoice_due_date(now, self.rules.invoice_due_weekday),
            dispatch_fee_record_ids=tuple(r.id for r in records),
            status=InvoiceStatus.SENT,
        )
        invoice = invoice.model_copy(update={"total_amount": self.recompute_total(invoice)})
        self.store.insert_invoice(invoice)

        for record in records:
            self.store.replace_fee_record(
                record.model_copy(update={"status": FeeStatus.INVOICED, "invoice_id": invoice.id})
            )

        self.logger.info(
            "invoice_generated",
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            carrier_id=carrier_id,
            fee_records=len(records),
            total_amount=str(invoice.total_amount),
            due_date=invoice.due_date.isoformat(),
        )
        self.bookability.recompute_all()
        return self.accept(operation, invoice)

    def set_invoice_status(self, invoice_id: str, new_status: InvoiceStatus) -> Outcome:
        """
        Write an invoice's status.

        Fee records stay Invoiced whatever the new status is. The carrier's
        bookability is re-derived afterwards.

        Raises:
            EntityNotFoundError: If the invoice does not exist
        """
        invoice = self.store.require_invoice(invoice_id)
        new_status = InvoiceStatus(new_status)
        updated = self.store.replace_invoice(invoice.model_copy(update={"status": new_status}))

        self.logger.info(
            "invoice_status_changed",
            invoice_id=invoice_id,
            invoice_number=invoice.invoice_number,
            old_status=invoice.status.value,
            new_status=new_status.value,
        )
        self.bookability.recompute_bookable(invoice.carrier_id)
        return self.accept("set_invoice_status", updated)

    # ------------------------------------------------------------------
    # manual line items

    def add_manual_line_item(self, invoice_id: str, draft: ManualLineItemDraft) -> Outcome:
        """
        Attach a manual charge or credit awaiting approval.

        The invoice total is unaffected until the item is approved.
        """
        invoice = self.store.require_invoice(invoice_id)
        item = ManualLineItem(
            id=self.store.new_id("mli"),
            status=LineItemStatus.PENDING_APPROVAL,
            **draft.model_dump(exclude={"id", "status"}),
        )
        self.store.replace_invoice(
            invoice.model_copy(update={"manual_line_items": [*invoice.manual_line_items, item]})
        )
        self.logger.info(
            "manual_line_item_added",
            invoice_id=invoice_id,
            line_item_id=item.id,
            type=item.type.value,
            amount=str(item.amount),
        )
        return self.accept("add_manual_line_item", item)

    def remove_manual_line_item(self, invoice_id: str, item_id: str) -> Outcome:
        """Drop a manual line item and recompute the total."""
        invoice = self.store.require_invoice(invoice_id)
        self._require_line_item(invoice, item_id)
        remaining = [i for i in invoice.manual_line_items if i.id != item_id]
        updated = self._store_with_total(invoice.model_copy(update={"manual_line_items": remaining}))
        self.logger.info("manual_line_item_removed", invoice_id=invoice_id, line_item_id=item_id)
        return self.accept("remove_manual_line_item", updated)

    def approve_manual_line_item(self, invoice_id: str, item_id: str) -> Outcome:
        """Approve a manual line item so it counts toward the total."""
        return self._set_line_item_status(
            "approve_manual_line_item", invoice_id, item_id, LineItemStatus.APPROVED
        )

    def reject_manual_line_item(self, invoice_id: str, item_id: str) -> Outcome:
        """Reject a manual line item; it no longer counts toward the total."""
        return self._set_line_item_status(
            "reject_manual_line_item", invoice_id, item_id, LineItemStatus.REJECTED
        )

    def _set_line_item_status(
        self, operation: str, invoice_id: str, item_id: str, status: LineItemStatus
    ) -> Outcome:
        invoice = self.store.require_invoice(invoice_id)
        self._require_line_item(invoice, item_id)
        items = [
            i.model_copy(update={"status": status}) if i.id == item_id else i
            for i in invoice.manual_line_items
        ]
        updated = self._store_with_total(invoice.model_copy(update={"manual_line_items": items}))
        self.logger.info(
            "manual_line_item_reviewed",
            invoice_id=invoice_id,
            line_item_id=item_id,
            status=status.value,
            total_amount=str(updated.total_amount),
        )
        return self.accept(operation, updated)

    @staticmethod
    def _require_line_item(invoice: Invoice, item_id: str) -> ManualLineItem:
        item = invoice.find_line_item(item_id)
        if item is None:
            raise EntityNotFoundError("manual_line_item", item_id)
        return item

    # ------------------------------------------------------------------
    # totals

    def recompute_total(self, invoice: Invoice) -> Decimal:
        """
        Referenced fee amounts plus approved charges minus approved credits.

        Raises:
            EntityNotFoundError: If a referenced fee record no longer exists
        """
        fees = sum(
            (self.store.require_fee_record(rid).fee_amount for rid in invoice.dispatch_fee_record_ids),
            Decimal("0"),
        )
        adjustments = sum(
            (
                item.signed_amount
                for item in invoice.manual_line_items
                if item.status == LineItemStatus.APPROVED
            ),
            Decimal("0"),
        )
        return to_money(fees + adjustments)

    def _store_with_total(self, invoice: Invoice) -> Invoice:
        return self.store.replace_invoice(
            invoice.model_copy(update={"total_amount": self.recompute_total(invoice)})
        )
