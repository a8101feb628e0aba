"""Tests for the carrier bookability policy."""

from datetime import date
from decimal import Decimal

import pytest

from fleetledger.data.models import Invoice, InvoiceStatus
from fleetledger.engines import invoice_is_overdue
from tests.conftest import utc


@pytest.fixture
def sent_invoice(ledger, make_entry, carrier):
    entry = ledger.propose_schedule_entry(
        make_entry(utc(2025, 7, 15, 9), utc(2025, 7, 15, 17), load_value=Decimal("1800.50"))
    )
    record = ledger.create_fee_for_schedule_entry(entry.id)
    # Generated Wednesday Jul 16, due the same day
    return ledger.generate_invoice(carrier.id, [record.id])


def make_invoice(status, due):
    return Invoice(
        id="inv-1",
        invoice_number="INV-2025-001",
        carrier_id="carrier-1",
        invoice_date=utc(2025, 7, 14),
        due_date=due,
        dispatch_fee_record_ids=("fee-1",),
        status=status,
    )


@pytest.mark.parametrize(
    "status, now, expected",
    [
        (InvoiceStatus.SENT, utc(2025, 7, 16, 23, 59), False),
        (InvoiceStatus.SENT, utc(2025, 7, 17, 0, 0, 1), True),
        (InvoiceStatus.PAID, utc(2025, 8, 1), False),
        (InvoiceStatus.DRAFT, utc(2025, 8, 1), False),
        (InvoiceStatus.VOID, utc(2025, 8, 1), False),
    ],
)
def test_invoice_is_overdue(status, now, expected):
    assert invoice_is_overdue(make_invoice(status, date(2025, 7, 16)), now) is expected


def test_carrier_is_bookable_on_the_due_day(ledger, sent_invoice, carrier):
    assert ledger.is_carrier_bookable(carrier.id) is True
    assert ledger.get_carrier(carrier.id).is_bookable is True


def test_overdue_invoice_makes_carrier_unbookable(ledger, sent_invoice, carrier, clock):
    clock.set(utc(2025, 7, 17, 0, 0, 1))

    assert ledger.refresh_bookability() == {carrier.id: False}
    assert ledger.get_carrier(carrier.id).is_bookable is False


def test_bookability_is_recomputed_on_read(ledger, sent_invoice, carrier, clock):
    clock.set(utc(2025, 7, 18))

    assert ledger.get_carrier(carrier.id).is_bookable is False
    assert [c.is_bookable for c in ledger.list_carriers()] == [False]


def test_paying_restores_bookability(ledger, sent_invoice, carrier, clock):
    clock.set(utc(2025, 7, 18))
    ledger.refresh_bookability()

    ledger.set_invoice_status(sent_invoice.id, InvoiceStatus.PAID)

    assert ledger.store.get_carrier(carrier.id).is_bookable is True


def test_voiding_restores_bookability(ledger, sent_invoice, carrier, clock):
    clock.set(utc(2025, 7, 18))
    ledger.refresh_bookability()

    ledger.set_invoice_status(sent_invoice.id, InvoiceStatus.VOID)

    assert ledger.get_carrier(carrier.id).is_bookable is True


def test_resending_an_overdue_invoice_blocks_again(ledger, sent_invoice, carrier, clock):
    clock.set(utc(2025, 7, 18))
    ledger.set_invoice_status(sent_invoice.id, InvoiceStatus.DRAFT)
    assert ledger.store.get_carrier(carrier.id).is_bookable is True

    ledger.set_invoice_status(sent_invoice.id, InvoiceStatus.SENT)

    assert ledger.store.get_carrier(carrier.id).is_bookable is False


def test_recompute_is_idempotent(ledger, sent_invoice, carrier, clock):
    clock.set(utc(2025, 7, 18))

    first = ledger.bookability.recompute_bookable(carrier.id)
    stored = ledger.store.get_carrier(carrier.id)
    second = ledger.bookability.recompute_bookable(carrier.id)

    assert first is second is False
    # No write when the flag is unchanged
    assert ledger.store.get_carrier(carrier.id) is stored


def test_other_carriers_are_unaffected(ledger, sent_invoice, carrier, other_carrier, clock):
    clock.set(utc(2025, 7, 18))

    assert ledger.refresh_bookability() == {carrier.id: False, other_carrier.id: True}


def test_invoice_generation_rederives_every_carrier(ledger, sent_invoice, carrier, make_entry, clock):
    clock.set(utc(2025, 7, 18))
    entry = ledger.propose_schedule_entry(
        make_entry(utc(2025, 7, 18, 9), utc(2025, 7, 18, 17), load_value=Decimal("500"))
    )

    ledger.generate_invoice(carrier.id, [ledger.create_fee_for_schedule_entry(entry.id).id])

    assert ledger.store.get_carrier(carrier.id).is_bookable is False


def test_update_carrier_cannot_override_the_flag(ledger, sent_invoice, carrier, clock):
    clock.set(utc(2025, 7, 18))
    ledger.refresh_bookability()

    edited = ledger.get_carrier(carrier.id).model_copy(update={"is_bookable": True, "dba": "Speedy"})
    ledger.update_carrier(edited)

    stored = ledger.store.get_carrier(carrier.id)
    assert stored.dba == "Speedy"
    assert stored.is_bookable is False
