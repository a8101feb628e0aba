"""
Broker board data models - shippers, posted loads, documents and equipment posts.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, model_validator


class LoadStatus(str, Enum):
    """Broker load status enumeration."""

    AVAILABLE = "Available"
    BOOKED = "Booked"
    IN_TRANSIT = "In Transit"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class LoadDocumentType(str, Enum):
    """Paperwork attached to a booked load."""

    BILL_OF_LADING = "Bill of Lading"
    PROOF_OF_DELIVERY = "Proof of Delivery"
    RATE_CONFIRMATION = "Rate Confirmation"
    LUMPER_RECEIPT = "Lumper Receipt"
    OTHER = "Other"


class CarrierDocumentType(str, Enum):
    """Onboarding paperwork kept on file for a carrier."""

    W9 = "W-9"
    CERTIFICATE_OF_INSURANCE = "Certificate of Insurance"
    OPERATING_AUTHORITY = "Operating Authority"
    CARRIER_AGREEMENT = "Carrier Agreement"
    OTHER = "Other"


class EquipmentPostStatus(str, Enum):
    """Availability of a posted piece of equipment."""

    AVAILABLE = "Available"
    BOOKED = "Booked"
    EXPIRED = "Expired"


class ShipperDraft(BaseModel):
    """Shipper fields supplied by the caller."""

    name: str = Field(..., min_length=2)
    contact_person: str = Field(..., min_length=2)
    contact_email: str
    contact_phone: str
    address: str = Field(..., min_length=1)
    notes: Optional[str] = None


class Shipper(ShipperDraft):
    """A shipper whose freight brokers post."""

    id: str


class BrokerLoadDraft(BaseModel):
    """Load details a broker enters when posting freight."""

    shipper_id: str = Field(..., min_length=1)
    origin_address: str = Field(..., min_length=1, description="Pickup address")
    destination_address: str = Field(..., min_length=1, description="Delivery address")
    pickup_date: datetime = Field(..., description="Scheduled pickup date/time")
    delivery_date: datetime = Field(..., description="Scheduled delivery date/time")
    commodity: str = Field(..., min_length=1, description="Type of freight")
    weight: Optional[int] = Field(None, gt=0, description="Weight in pounds")
    dims: Optional[str] = Field(None, description="Dimensions")
    equipment_type: str = Field(..., min_length=1, description="Equipment type needed")
    offered_rate: Decimal = Field(..., gt=0, description="Total rate offered (USD)")
    notes: Optional[str] = Field(None, description="Additional load details")

    @model_validator(mode="after")
    def _delivery_after_pickup(self) -> "BrokerLoadDraft":
        if self.delivery_date < self.pickup_date:
            raise ValueError("Delivery date cannot be before pickup date")
        return self

    @computed_field
    @property
    def trip_duration_hours(self) -> float:
        """Scheduled trip duration in hours."""
        delta = self.delivery_date - self.pickup_date
        return delta.total_seconds() / 3600


class BrokerLoad(BrokerLoadDraft):
    """
    A load posted on the broker board.

    Assignment fields are filled in when a carrier books the load.
    """

    id: str
    posted_by_broker_id: str
    posted_date: datetime
    status: LoadStatus = LoadStatus.AVAILABLE

    assigned_carrier_id: Optional[str] = None
    assigned_truck_id: Optional[str] = None
    assigned_driver_id: Optional[str] = None
    confirmation_number: Optional[str] = None


class LoadDocumentDraft(BaseModel):
    """Document metadata recorded against a broker load."""

    broker_load_id: str = Field(..., min_length=1)
    document_name: str = Field(..., min_length=1)
    document_type: LoadDocumentType


class LoadDocument(LoadDocumentDraft):
    """A recorded load document."""

    id: str
    uploaded_by: str
    upload_date: datetime


class CarrierDocumentDraft(BaseModel):
    """Document metadata recorded against a carrier."""

    carrier_id: str = Field(..., min_length=1)
    document_name: str = Field(..., min_length=1)
    document_type: CarrierDocumentType


class CarrierDocument(CarrierDocumentDraft):
    """A recorded carrier document."""

    id: str
    upload_date: datetime


class EquipmentPostDraft(BaseModel):
    """Empty equipment a carrier advertises for hire."""

    carrier_id: str = Field(..., min_length=1)
    equipment_type: str = Field(..., min_length=3, description="e.g. 53ft Dry Van")
    current_location: str = Field(..., min_length=3, description="City, ST")
    available_from_date: date
    available_to_date: Optional[date] = None
    preferred_destinations: Optional[str] = None
    rate_expectation: Optional[str] = None
    contact_name: str = Field(..., min_length=2)
    contact_phone: str
    contact_email: Optional[str] = None
    notes: Optional[str] = None
    status: EquipmentPostStatus = EquipmentPostStatus.AVAILABLE

    @model_validator(mode="after")
    def _to_after_from(self) -> "EquipmentPostDraft":
        if self.available_to_date and self.available_to_date < self.available_from_date:
            raise ValueError("Available 'to' date cannot be before 'from' date")
        return self


class AvailableEquipmentPost(EquipmentPostDraft):
    """A published equipment post."""

    id: str
    posted_date: datetime
