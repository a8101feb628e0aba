"""
Billing data models - dispatch fees, invoices and manual adjustments.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FeeStatus(str, Enum):
    """Dispatch fee record status."""

    PENDING = "Pending"
    INVOICED = "Invoiced"


class InvoiceStatus(str, Enum):
    """Invoice status."""

    DRAFT = "Draft"
    SENT = "Sent"
    PAID = "Paid"
    VOID = "Void"


class LineItemType(str, Enum):
    """Direction of a manual invoice adjustment."""

    CHARGE = "charge"
    CREDIT = "credit"


class LineItemStatus(str, Enum):
    """Approval state of a manual invoice adjustment."""

    PENDING_APPROVAL = "Pending Approval"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class DispatchFeeRecord(BaseModel):
    """Dispatch fee owed by a carrier for one schedule entry."""

    id: str
    schedule_entry_id: str
    carrier_id: str
    original_load_amount: Decimal = Field(..., gt=0)
    fee_amount: Decimal = Field(..., description="Fixed at creation")
    status: FeeStatus = FeeStatus.PENDING
    calculated_date: datetime
    invoice_id: Optional[str] = None


class ManualLineItemDraft(BaseModel):
    """Manual adjustment as entered by a user."""

    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    type: LineItemType

    @property
    def signed_amount(self) -> Decimal:
        """Amount with credits negated."""
        return self.amount if self.type == LineItemType.CHARGE else -self.amount


class ManualLineItem(ManualLineItemDraft):
    """A manual invoice adjustment. Only approved items count toward the total."""

    id: str
    status: LineItemStatus = LineItemStatus.PENDING_APPROVAL


class Invoice(BaseModel):
    """
    Invoice for a batch of a carrier's dispatch fees.

    ``total_amount`` is always recomputed by the billing engine from the
    referenced fee records and the approved manual line items.
    """

    id: str
    invoice_number: str = Field(..., description="INV-<year>-<seq>")
    carrier_id: str
    invoice_date: datetime
    due_date: date
    dispatch_fee_record_ids: tuple[str, ...] = Field(..., description="Frozen at creation")
    manual_line_items: list[ManualLineItem] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0.00")
    status: InvoiceStatus = InvoiceStatus.DRAFT

    def find_line_item(self, item_id: str) -> Optional[ManualLineItem]:
        """Return the manual line item with the given id, if present."""
        for item in self.manual_line_items:
            if item.id == item_id:
                return item
        return None
