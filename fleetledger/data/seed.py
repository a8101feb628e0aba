"""
Demo fleet used by the dashboard before any real data is entered.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

from fleetledger.data.models import (
    CarrierDraft,
    DriverDraft,
    MaintenanceStatus,
    ScheduleEntryDraft,
    ScheduleType,
    TruckDraft,
)
from fleetledger.data.store import EntityStore


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def seed_demo_data(store: EntityStore) -> dict[str, str]:
    """
    Load the demo carriers, drivers, trucks and schedule.

    The multi-day runs are flagged team driven so the seeded schedule
    satisfies the same rules as entries entered through the engine.

    Returns:
        Mapping of demo keys ("carrier1", "truck2", "sch4", ...) to store ids
    """
    ids: dict[str, str] = {}

    ids["carrier1"] = store.add_carrier(
        CarrierDraft(
            name="Speedy Logistics",
            contact_person="Mike Ross",
            contact_email="mike.ross@speedylog.com",
            contact_phone="555-0001",
            contract_details="Primary Carrier Agreement, expires 2025-12-31",
            mc_number="MC123456",
            us_dot_number="USDOT987654",
            availability_notes="Available Mon-Fri, national coverage.",
        )
    ).id
    ids["carrier2"] = store.add_carrier(
        CarrierDraft(
            name="Reliable Transport Inc.",
            contact_person="Sarah Connor",
            contact_email="s.connor@reliabletransport.com",
            contact_phone="555-0002",
            contract_details="Secondary Carrier, flexible terms",
            mc_number="MC654321",
            us_dot_number="USDOT123789",
            availability_notes="Weekend availability, regional only.",
        )
    ).id

    ids["driver1"] = store.add_driver(
        DriverDraft(
            name="John Doe",
            contact_phone="555-1234",
            contact_email="john.doe@example.com",
            license_number="DL12345",
        )
    ).id
    ids["driver2"] = store.add_driver(
        DriverDraft(
            name="Jane Smith",
            contact_phone="555-5678",
            contact_email="jane.smith@example.com",
            license_number="DL67890",
        )
    ).id

    ids["truck1"] = store.add_truck(
        TruckDraft(
            name="Alpha Hauler",
            license_plate="TRK-001",
            model="Volvo VNL",
            year=2022,
            carrier_id=ids["carrier1"],
            driver_id=ids["driver1"],
            maintenance_status=MaintenanceStatus.GOOD,
            mc150_due_date=date(2025, 6, 15),
            permit_expiry_date=date(2024, 12, 31),
            tax_due_date=date(2024, 9, 30),
        )
    ).id
    ids["truck2"] = store.add_truck(
        TruckDraft(
            name="Beta Mover",
            license_plate="TRK-002",
            model="Freightliner Cascadia",
            year=2021,
            carrier_id=ids["carrier2"],
            driver_id=ids["driver2"],
            maintenance_status=MaintenanceStatus.NEEDS_SERVICE,
            mc150_due_date=date(2025, 8, 1),
        )
    ).id
    ids["truck3"] = store.add_truck(
        TruckDraft(
            name="Gamma Transporter",
            license_plate="TRK-003",
            model="Peterbilt 579",
            year=2023,
            carrier_id=ids["carrier1"],
            maintenance_status=MaintenanceStatus.IN_SERVICE,
            permit_expiry_date=date(2025, 3, 28),
        )
    ).id

    schedule = {
        "sch1": ScheduleEntryDraft(
            truck_id=ids["truck1"],
            driver_id=ids["driver1"],
            title="Delivery to LA",
            start=_utc(2025, 7, 20, 10),
            end=_utc(2025, 7, 21, 18),
            origin="Phoenix, AZ",
            destination="Los Angeles, CA",
            load_value=Decimal("2500.00"),
            schedule_type=ScheduleType.DELIVERY,
            is_team_driven=True,
        ),
        "sch2": ScheduleEntryDraft(
            truck_id=ids["truck2"],
            driver_id=ids["driver2"],
            title="Pickup from Dallas",
            start=_utc(2025, 7, 22, 9),
            end=_utc(2025, 7, 22, 17),
            origin="Houston, TX",
            destination="Dallas, TX",
            load_value=Decimal("1800.50"),
            notes="Handle with care",
            schedule_type=ScheduleType.PICKUP,
        ),
        "sch3": ScheduleEntryDraft(
            truck_id=ids["truck1"],
            title="Maintenance Check",
            start=_utc(2025, 7, 24, 14),
            end=_utc(2025, 7, 24, 16),
            origin="Base",
            destination="Garage",
            notes="Oil change and tire rotation",
            schedule_type=ScheduleType.MAINTENANCE,
        ),
        "sch4": ScheduleEntryDraft(
            truck_id=ids["truck1"],
            driver_id=ids["driver1"],
            title="Long Haul to NY",
            start=_utc(2025, 7, 26, 8),
            end=_utc(2025, 7, 29, 17),
            origin="Los Angeles, CA",
            destination="New York, NY",
            load_value=Decimal("5500.75"),
            notes="High value goods",
            schedule_type=ScheduleType.DELIVERY,
            is_team_driven=True,
        ),
        "sch5": ScheduleEntryDraft(
            truck_id=ids["truck3"],
            driver_id=ids["driver1"],
            title="Local Delivery",
            start=_utc(2025, 8, 1, 9),
            end=_utc(2025, 8, 1, 15),
            origin="Warehouse A",
            destination="Customer Site B",
            load_value=Decimal("750.00"),
            schedule_type=ScheduleType.DELIVERY,
        ),
    }
    for key, draft in schedule.items():
        ids[key] = store.insert_schedule_entry(draft).id

    store.logger.info("demo_data_seeded", entities=len(ids))
    return ids
