"""
Pydantic data models for fleet operations.

Core models:
- Truck, Driver, Carrier: the fleet and its owners
- ScheduleEntry: a truck's time-boxed assignment
- DispatchFeeRecord, Invoice, ManualLineItem: the billing cycle
- Shipper, BrokerLoad, documents, equipment posts: the broker board
- Outcome, Session: command results and the acting party
"""

from .billing import (
    DispatchFeeRecord,
    FeeStatus,
    Invoice,
    InvoiceStatus,
    LineItemStatus,
    LineItemType,
    ManualLineItem,
    ManualLineItemDraft,
)
from .broker import (
    AvailableEquipmentPost,
    BrokerLoad,
    BrokerLoadDraft,
    CarrierDocument,
    CarrierDocumentDraft,
    CarrierDocumentType,
    EquipmentPostDraft,
    EquipmentPostStatus,
    LoadDocument,
    LoadDocumentDraft,
    LoadDocumentType,
    LoadStatus,
    Shipper,
    ShipperDraft,
)
from .fleet import (
    Carrier,
    CarrierDraft,
    Driver,
    DriverDraft,
    FmcsaAuthorityStatus,
    MaintenanceStatus,
    Truck,
    TruckDraft,
)
from .outcome import Outcome, RejectionReason, Session, SessionRole, Violation
from .schedule import ScheduleEntry, ScheduleEntryDraft, ScheduleType

__all__ = [
    "AvailableEquipmentPost",
    "BrokerLoad",
    "BrokerLoadDraft",
    "Carrier",
    "CarrierDocument",
    "CarrierDocumentDraft",
    "CarrierDocumentType",
    "CarrierDraft",
    "DispatchFeeRecord",
    "Driver",
    "DriverDraft",
    "EquipmentPostDraft",
    "EquipmentPostStatus",
    "FeeStatus",
    "FmcsaAuthorityStatus",
    "Invoice",
    "InvoiceStatus",
    "LineItemStatus",
    "LineItemType",
    "LoadDocument",
    "LoadDocumentDraft",
    "LoadDocumentType",
    "LoadStatus",
    "MaintenanceStatus",
    "ManualLineItem",
    "ManualLineItemDraft",
    "Outcome",
    "RejectionReason",
    "ScheduleEntry",
    "ScheduleEntryDraft",
    "ScheduleType",
    "Session",
    "SessionRole",
    "Shipper",
    "ShipperDraft",
    "Truck",
    "TruckDraft",
    "Violation",
]
