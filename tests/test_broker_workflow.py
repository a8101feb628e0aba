"""Tests for accepting broker-posted loads."""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from structlog.testing import capture_logs

from fleetledger import EntityNotFoundError
from fleetledger.data.models import (
    LoadDocumentDraft,
    LoadDocumentType,
    LoadStatus,
    RejectionReason,
)
from fleetledger.tools.notifications import Notifier
from tests.conftest import utc


class ExplodingNotifier(Notifier):
    def send(self, notification) -> None:
        raise RuntimeError("smtp down")


def test_accept_load_books_it_and_schedules_the_truck(ledger, make_load, shipper, carrier, truck, driver):
    load = make_load(notes="Keep at 34F")

    booked = ledger.accept_load(load.id, carrier.id, truck.id, driver.id)

    assert booked.status == LoadStatus.BOOKED
    assert booked.assigned_carrier_id == carrier.id
    assert booked.assigned_truck_id == truck.id
    assert booked.assigned_driver_id == driver.id
    assert booked.confirmation_number.startswith("CONF-")
    assert ledger.get_broker_load(load.id) == booked

    (entry,) = ledger.list_schedule_entries(truck.id)
    assert entry.broker_load_id == load.id
    assert entry.title == "Load: Produce (Acme Foods)"
    assert entry.load_value == Decimal("2400.00")
    assert entry.start == load.pickup_date
    assert entry.end == load.delivery_date
    assert entry.origin == "Houston, TX"
    assert booked.confirmation_number in entry.notes
    assert "Original Notes: Keep at 34F" in entry.notes


def test_existing_confirmation_number_is_kept(ledger, make_load, carrier, truck):
    load = make_load()
    ledger.update_broker_load(load.model_copy(update={"confirmation_number": "ACME-77"}))

    booked = ledger.accept_load(load.id, carrier.id, truck.id)

    assert booked.confirmation_number == "ACME-77"


def test_booking_notifies_carrier_and_driver(ledger, make_load, carrier, truck, driver, notifier):
    load = make_load()

    ledger.accept_load(load.id, carrier.id, truck.id, driver.id)

    assert [(n.recipient_kind, n.recipient_id) for n in notifier.sent] == [
        ("carrier", carrier.id),
        ("driver", driver.id),
    ]
    assert notifier.sent[0].recipient_contact == carrier.contact_email


def test_schedule_conflict_leaves_load_untouched(ledger, make_load, make_entry, carrier, truck, notifier):
    ledger.propose_schedule_entry(make_entry(utc(2025, 7, 22, 12), utc(2025, 7, 22, 14)))
    load = make_load()

    result = ledger.accept_load(load.id, carrier.id, truck.id)

    assert result is None
    assert ledger.last_outcome.reason == RejectionReason.SCHEDULE_CONFLICT
    assert ledger.get_broker_load(load.id) == load
    assert len(ledger.list_schedule_entries()) == 1
    assert notifier.sent == []


def test_long_load_violates_hos_for_single_driver(ledger, make_load, carrier, truck):
    load = make_load(pickup_date=utc(2025, 7, 22, 6), delivery_date=utc(2025, 7, 23, 6))

    assert ledger.accept_load(load.id, carrier.id, truck.id) is None
    assert ledger.last_outcome.reason == RejectionReason.HOS_VIOLATION
    assert ledger.get_broker_load(load.id).status == LoadStatus.AVAILABLE


def test_unbookable_carrier_is_refused(ledger, make_load, make_entry, carrier, truck, clock):
    entry = ledger.propose_schedule_entry(
        make_entry(utc(2025, 7, 15, 9), utc(2025, 7, 15, 17), load_value=Decimal("1000"))
    )
    ledger.generate_invoice(carrier.id, [ledger.create_fee_for_schedule_entry(entry.id).id])
    clock.set(utc(2025, 7, 18))
    load = make_load()

    assert ledger.accept_load(load.id, carrier.id, truck.id) is None
    assert ledger.last_outcome.reason == RejectionReason.CARRIER_UNBOOKABLE
    assert ledger.get_broker_load(load.id).status == LoadStatus.AVAILABLE


def test_truck_of_another_carrier_is_refused(ledger, make_load, carrier, other_truck):
    load = make_load()

    assert ledger.accept_load(load.id, carrier.id, other_truck.id) is None
    assert ledger.last_outcome.reason == RejectionReason.TRUCK_CARRIER_MISMATCH
    assert ledger.list_schedule_entries() == []


def test_load_can_only_be_booked_once(ledger, make_load, carrier, truck, other_carrier, other_truck):
    load = make_load()
    ledger.accept_load(load.id, carrier.id, truck.id)

    assert ledger.accept_load(load.id, other_carrier.id, other_truck.id) is None
    assert ledger.last_outcome.reason == RejectionReason.LOAD_NOT_AVAILABLE
    assert ledger.get_broker_load(load.id).assigned_carrier_id == carrier.id


def test_unknown_load_raises(ledger, carrier, truck):
    with pytest.raises(EntityNotFoundError):
        ledger.accept_load("bload-missing", carrier.id, truck.id)


def test_failing_notifier_does_not_undo_the_booking(ledger, make_load, carrier, truck):
    ledger.broker.notifications.notifier = ExplodingNotifier()
    load = make_load()

    with capture_logs() as logs:
        booked = ledger.accept_load(load.id, carrier.id, truck.id)

    assert booked is not None
    assert ledger.get_broker_load(load.id).status == LoadStatus.BOOKED
    assert "notification_failed" in [entry["event"] for entry in logs]


def test_notifications_can_run_on_an_executor(ledger, make_load, carrier, truck, notifier):
    load = make_load()

    with ThreadPoolExecutor(max_workers=1) as executor:
        ledger.broker.notifications.executor = executor
        booked = ledger.accept_load(load.id, carrier.id, truck.id)

    assert booked is not None
    assert [n.recipient_kind for n in notifier.sent] == ["carrier"]


def test_board_queries(ledger, make_load, broker_session, carrier, truck):
    first = make_load()
    second = make_load(commodity="Steel", pickup_date=utc(2025, 7, 25, 9), delivery_date=utc(2025, 7, 25, 15))
    ledger.accept_load(first.id, carrier.id, truck.id)

    assert [load.id for load in ledger.available_broker_loads()] == [second.id]
    assert {load.id for load in ledger.loads_posted_by(broker_session)} == {first.id, second.id}
    assert [load.id for load in ledger.loads_booked_by(carrier.id)] == [first.id]
    assert first.posted_by_broker_id == broker_session.user_id


def test_load_documents_record_the_uploader(ledger, make_load, broker_session):
    load = make_load()

    doc = ledger.add_load_document(
        broker_session,
        LoadDocumentDraft(
            broker_load_id=load.id,
            document_name="rate-con.pdf",
            document_type=LoadDocumentType.RATE_CONFIRMATION,
        ),
    )

    assert doc.uploaded_by == "broker-1"
    assert [d.id for d in ledger.list_load_documents(load.id)] == [doc.id]

    ledger.remove_broker_load(load.id)

    assert ledger.list_load_documents(load.id) == []


def test_load_with_unknown_shipper_raises(ledger, make_load):
    with pytest.raises(EntityNotFoundError):
        make_load(shipper_id="shipper-missing")
