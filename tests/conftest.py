"""Test fixtures for the fleet ledger."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from fleetledger import FleetLedger
from fleetledger.core.config import ConfigManager, LedgerRules
from fleetledger.data.models import (
    BrokerLoadDraft,
    CarrierDraft,
    DriverDraft,
    ScheduleEntryDraft,
    Session,
    SessionRole,
    ShipperDraft,
    TruckDraft,
)
from fleetledger.tools.fmcsa import VerificationResult
from fleetledger.tools.notifications import Notifier

# Wednesday
START = datetime(2025, 7, 16, 12, 0, tzinfo=timezone.utc)


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = START) -> None:
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self.current = now


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.sent = []

    def send(self, notification) -> None:
        self.sent.append(notification)


class StubVerifier:
    """Verification collaborator returning a canned result."""

    def __init__(self, result: VerificationResult = None, error: Exception = None) -> None:
        self.result = result
        self.error = error
        self.calls = []

    async def lookup(self, *, mc_number=None, us_dot_number=None) -> VerificationResult:
        self.calls.append({"mc_number": mc_number, "us_dot_number": us_dot_number})
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rules():
    return LedgerRules()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def verifier():
    return StubVerifier()


@pytest.fixture
def ledger(tmp_path, monkeypatch, clock, rules, notifier, verifier):
    """Empty ledger with a fixed clock and no checked-in config."""
    monkeypatch.chdir(tmp_path)
    return FleetLedger(
        config_manager=ConfigManager(tmp_path),
        rules=rules,
        clock=clock,
        verifier=verifier,
        notifier=notifier,
    )


@pytest.fixture
def carrier(ledger):
    return ledger.add_carrier(
        CarrierDraft(
            name="Speedy Logistics",
            contact_person="Mike Ross",
            contact_email="mike.ross@speedylog.com",
            contact_phone="555-0001",
            mc_number="MC123456",
            us_dot_number="USDOT987654",
        )
    )


@pytest.fixture
def other_carrier(ledger):
    return ledger.add_carrier(
        CarrierDraft(
            name="Reliable Transport Inc.",
            contact_person="Sarah Connor",
            contact_email="s.connor@reliabletransport.com",
            contact_phone="555-0002",
            mc_number="MC654321",
        )
    )


@pytest.fixture
def driver(ledger):
    return ledger.add_driver(
        DriverDraft(
            name="John Doe",
            contact_phone="555-1234",
            contact_email="john.doe@example.com",
            license_number="DL12345",
        )
    )


@pytest.fixture
def truck(ledger, carrier, driver):
    return ledger.add_truck(
        TruckDraft(
            name="Alpha Hauler",
            license_plate="TRK-001",
            model="Volvo VNL",
            year=2022,
            carrier_id=carrier.id,
            driver_id=driver.id,
        )
    )


@pytest.fixture
def other_truck(ledger, other_carrier):
    return ledger.add_truck(
        TruckDraft(
            name="Beta Mover",
            license_plate="TRK-002",
            model="Freightliner Cascadia",
            year=2021,
            carrier_id=other_carrier.id,
        )
    )


@pytest.fixture
def make_entry(truck):
    """Build schedule entry drafts for the default truck."""

    def _make(start: datetime, end: datetime, **kwargs) -> ScheduleEntryDraft:
        values = {
            "truck_id": truck.id,
            "title": "Run",
            "start": start,
            "end": end,
            "origin": "Phoenix, AZ",
            "destination": "Los Angeles, CA",
        }
        values.update(kwargs)
        return ScheduleEntryDraft(**values)

    return _make


@pytest.fixture
def broker_session():
    return Session(user_id="broker-1", role=SessionRole.BROKER)


@pytest.fixture
def shipper(ledger):
    return ledger.add_shipper(
        ShipperDraft(
            name="Acme Foods",
            contact_person="Wile Coyote",
            contact_email="ship@acme.example",
            contact_phone="555-9000",
            address="1 Desert Rd, Tucson, AZ",
        )
    )


@pytest.fixture
def make_load(ledger, shipper, broker_session):
    """Post a broker load; defaults to an 8h trip on Jul 22."""

    def _make(**kwargs):
        values = {
            "shipper_id": shipper.id,
            "origin_address": "Houston, TX",
            "destination_address": "Dallas, TX",
            "pickup_date": utc(2025, 7, 22, 9),
            "delivery_date": utc(2025, 7, 22, 17),
            "commodity": "Produce",
            "equipment_type": "Reefer",
            "offered_rate": Decimal("2400.00"),
        }
        values.update(kwargs)
        return ledger.post_broker_load(broker_session, BrokerLoadDraft(**values))

    return _make
