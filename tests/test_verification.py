"""Tests for FMCSA authority verification."""

import asyncio
import json

import httpx
import pytest

from fleetledger import EntityNotFoundError
from fleetledger.data.models import CarrierDraft, FmcsaAuthorityStatus
from fleetledger.tools.fmcsa import (
    FmcsaClient,
    FmcsaVerificationError,
    VerificationResult,
    map_authority_status,
)
from tests.conftest import START

BASE_URL = "https://fmcsa.test/v1/carrier"


def client_for(handler, api_key="secret"):
    return FmcsaClient(BASE_URL, api_key, timeout=5, transport=httpx.MockTransport(handler))


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"authorityStatus": "ACTIVE"}, FmcsaAuthorityStatus.VERIFIED_ACTIVE),
        ({"authorityStatus": "Not Authorized"}, FmcsaAuthorityStatus.VERIFIED_INACTIVE),
        ({"authorityStatus": "revoked"}, FmcsaAuthorityStatus.VERIFICATION_FAILED),
        ({"operatingStatus": "IN SERVICE"}, FmcsaAuthorityStatus.VERIFIED_ACTIVE),
        ({"operatingStatus": "OUT OF SERVICE"}, FmcsaAuthorityStatus.VERIFICATION_FAILED),
        ({}, FmcsaAuthorityStatus.VERIFICATION_FAILED),
    ],
)
def test_map_authority_status(payload, expected):
    assert map_authority_status(payload) == expected


def test_client_prefers_dot_number_and_sends_bearer_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json={"authorityStatus": "active", "carrierName": "Speedy"})

    result = asyncio.run(client_for(handler).lookup(mc_number="MC1", us_dot_number="DOT1"))

    assert seen == {"params": {"dotNumber": "DOT1"}, "auth": "Bearer secret"}
    assert result.status == FmcsaAuthorityStatus.VERIFIED_ACTIVE
    assert result.details["carrierName"] == "Speedy"


def test_client_falls_back_to_mc_number():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(200, json={"operatingStatus": "in service"})

    asyncio.run(client_for(handler).lookup(mc_number="MC1"))

    assert seen == {"mcNumber": "MC1"}


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="upstream exploded"),
        httpx.Response(200, content=b"<html>"),
        httpx.Response(200, content=json.dumps(["not", "an", "object"]).encode()),
    ],
)
def test_client_raises_on_unusable_responses(response):
    with pytest.raises(FmcsaVerificationError):
        asyncio.run(client_for(lambda request: response).lookup(us_dot_number="DOT1"))


def test_client_raises_on_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(FmcsaVerificationError):
        asyncio.run(client_for(handler).lookup(us_dot_number="DOT1"))


def test_client_requires_api_key():
    with pytest.raises(FmcsaVerificationError):
        asyncio.run(client_for(lambda r: httpx.Response(200), api_key=None).lookup(us_dot_number="1"))


def test_verify_records_status_and_check_time(ledger, carrier, verifier):
    verifier.result = VerificationResult(
        status=FmcsaAuthorityStatus.VERIFIED_ACTIVE, details={"carrierName": "Speedy Freight"}
    )

    updated = asyncio.run(ledger.verify_carrier(carrier.id))

    assert updated.fmcsa_authority_status == FmcsaAuthorityStatus.VERIFIED_ACTIVE
    assert updated.fmcsa_last_checked == START
    assert updated.dba == "Speedy Freight"
    assert verifier.calls == [{"mc_number": "MC123456", "us_dot_number": "USDOT987654"}]
    assert ledger.get_carrier(carrier.id) == updated


def test_verify_keeps_existing_dba(ledger, carrier, verifier):
    ledger.update_carrier(carrier.model_copy(update={"dba": "Speedy"}))
    verifier.result = VerificationResult(
        status=FmcsaAuthorityStatus.VERIFIED_INACTIVE, details={"carrierName": "Other Name"}
    )

    updated = asyncio.run(ledger.verify_carrier(carrier.id))

    assert updated.dba == "Speedy"
    assert updated.fmcsa_authority_status == FmcsaAuthorityStatus.VERIFIED_INACTIVE


def test_carrier_is_pending_while_lookup_runs(ledger, carrier):
    observed = []

    class Observer:
        async def lookup(self, *, mc_number=None, us_dot_number=None):
            observed.append(ledger.get_carrier(carrier.id).fmcsa_authority_status)
            return VerificationResult(status=FmcsaAuthorityStatus.VERIFIED_ACTIVE)

    ledger.verifier = Observer()
    asyncio.run(ledger.verify_carrier(carrier.id))

    assert observed == [FmcsaAuthorityStatus.PENDING_VERIFICATION]


def test_lookup_error_is_recorded_as_failed(ledger, carrier, verifier):
    verifier.error = FmcsaVerificationError("FMCSA lookup failed (503)")

    updated = asyncio.run(ledger.verify_carrier(carrier.id))

    assert updated.fmcsa_authority_status == FmcsaAuthorityStatus.VERIFICATION_FAILED
    assert updated.fmcsa_last_checked == START


def test_lookup_timeout_is_recorded_as_failed(ledger, carrier):
    class Slow:
        async def lookup(self, *, mc_number=None, us_dot_number=None):
            await asyncio.sleep(5)

    ledger.verifier = Slow()
    ledger.rules = ledger.rules.model_copy(update={"verification_timeout_seconds": 0.01})

    updated = asyncio.run(ledger.verify_carrier(carrier.id))

    assert updated.fmcsa_authority_status == FmcsaAuthorityStatus.VERIFICATION_FAILED


def test_cancelled_lookup_restores_previous_status(ledger, carrier):
    class Hanging:
        async def lookup(self, *, mc_number=None, us_dot_number=None):
            await asyncio.Event().wait()

    ledger.verifier = Hanging()

    async def run():
        task = asyncio.create_task(ledger.verify_carrier(carrier.id))
        await asyncio.sleep(0.01)
        assert ledger.get_carrier(carrier.id).fmcsa_authority_status == (
            FmcsaAuthorityStatus.PENDING_VERIFICATION
        )
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())

    assert ledger.get_carrier(carrier.id).fmcsa_authority_status == FmcsaAuthorityStatus.NOT_VERIFIED


def test_carrier_without_identifiers_fails_without_a_call(ledger, verifier):
    bare = ledger.add_carrier(
        CarrierDraft(name="No Numbers LLC", contact_person="Pat Doe", contact_email="p@n.com", contact_phone="1")
    )

    updated = asyncio.run(ledger.verify_carrier(bare.id))

    assert updated.fmcsa_authority_status == FmcsaAuthorityStatus.VERIFICATION_FAILED
    assert verifier.calls == []


def test_result_for_deleted_carrier_is_discarded(ledger, carrier):
    class DeletingVerifier:
        async def lookup(self, *, mc_number=None, us_dot_number=None):
            ledger.remove_carrier(carrier.id)
            return VerificationResult(status=FmcsaAuthorityStatus.VERIFIED_ACTIVE)

    ledger.verifier = DeletingVerifier()

    assert asyncio.run(ledger.verify_carrier(carrier.id)) is None
    assert ledger.get_carrier(carrier.id) is None


def test_verify_unknown_carrier_raises(ledger):
    with pytest.raises(EntityNotFoundError):
        asyncio.run(ledger.verify_carrier("carrier-missing"))


def test_ledger_uses_configured_http_client(ledger, carrier):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"authorityStatus": "active"})

    ledger.verifier = client_for(handler)

    updated = asyncio.run(ledger.verify_carrier(carrier.id))

    assert updated.fmcsa_authority_status == FmcsaAuthorityStatus.VERIFIED_ACTIVE
