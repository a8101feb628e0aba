"""
Fleet data models - trucks, drivers and the carriers that own them.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class MaintenanceStatus(str, Enum):
    """Truck maintenance status."""

    GOOD = "Good"
    NEEDS_SERVICE = "Needs Service"
    IN_SERVICE = "In Service"


class FmcsaAuthorityStatus(str, Enum):
    """Operating authority status as last reported by FMCSA."""

    NOT_VERIFIED = "Not Verified"
    PENDING_VERIFICATION = "Pending Verification"
    VERIFIED_ACTIVE = "Verified Active"
    VERIFIED_INACTIVE = "Verified Inactive"
    VERIFICATION_FAILED = "Verification Failed"


class TruckDraft(BaseModel):
    """Truck fields supplied by the caller; the store assigns the id."""

    name: str = Field(..., min_length=1)
    license_plate: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    year: int = Field(..., ge=1900)
    carrier_id: str = Field(..., min_length=1, description="Owning carrier")
    driver_id: Optional[str] = Field(None, description="Currently assigned driver")
    maintenance_status: MaintenanceStatus = MaintenanceStatus.GOOD

    # Compliance due dates
    mc150_due_date: Optional[date] = None
    permit_expiry_date: Optional[date] = None
    tax_due_date: Optional[date] = None


class Truck(TruckDraft):
    """A truck owned by exactly one carrier."""

    id: str


class DriverDraft(BaseModel):
    """Driver fields supplied by the caller."""

    name: str = Field(..., min_length=1)
    contact_phone: str
    contact_email: str
    license_number: str = Field(..., min_length=1)


class Driver(DriverDraft):
    """A driver. Referenced, never owned, by trucks and schedule entries."""

    id: str


class CarrierDraft(BaseModel):
    """Carrier profile fields supplied by the caller."""

    # Identity
    name: str = Field(..., min_length=2, description="Legal company name")
    dba: Optional[str] = Field(None, description="Doing-business-as name")
    mc_number: Optional[str] = None
    us_dot_number: Optional[str] = None
    tax_id_ein: Optional[str] = None

    # Company contact
    company_phone: Optional[str] = None
    fax_number: Optional[str] = None
    company_email: Optional[str] = None
    physical_address: Optional[str] = None
    is_mailing_same_as_physical: bool = False
    mailing_address: Optional[str] = None

    # Preferred contact
    contact_person: str = Field(..., min_length=2)
    contact_email: str
    contact_phone: str

    equipment_types: Optional[str] = None

    # Insurance
    insurance_company_name: Optional[str] = None
    insurance_policy_number: Optional[str] = None
    insurance_policy_expiration_date: Optional[date] = None
    insurance_agent_name: Optional[str] = None
    insurance_agent_phone: Optional[str] = None
    insurance_agent_email: Optional[str] = None

    # Factoring
    factoring_company_name: Optional[str] = None
    factoring_company_contact: Optional[str] = None
    factoring_company_phone: Optional[str] = None

    contract_details: Optional[str] = None
    availability_notes: Optional[str] = None

    @model_validator(mode="after")
    def _copy_mailing_address(self) -> "CarrierDraft":
        if self.is_mailing_same_as_physical:
            self.mailing_address = self.physical_address
        return self


class Carrier(CarrierDraft):
    """
    A carrier company.

    ``is_bookable`` is derived from the carrier's invoices and is only ever
    written by the bookability policy.
    """

    id: str
    fmcsa_authority_status: FmcsaAuthorityStatus = FmcsaAuthorityStatus.NOT_VERIFIED
    fmcsa_last_checked: Optional[datetime] = None
    is_bookable: bool = True
