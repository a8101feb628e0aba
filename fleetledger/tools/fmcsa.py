"""
FMCSA authority lookup client.

Queries the configured carrier-lookup endpoint by DOT number (preferred) or MC
number and maps the response onto FmcsaAuthorityStatus. Any failure raises
FmcsaVerificationError; callers decide how to degrade.
"""

from typing import Any, Optional, Protocol

import httpx
import structlog
from pydantic import BaseModel, Field

from fleetledger.data.models import FmcsaAuthorityStatus


class FmcsaVerificationError(Exception):
    """Raised when an authority lookup cannot produce a result."""


class VerificationResult(BaseModel):
    """Outcome of an authority lookup."""

    status: FmcsaAuthorityStatus
    details: dict[str, Any] = Field(default_factory=dict)
    message: Optional[str] = None


class VerificationCollaborator(Protocol):
    """Anything that can look up a carrier's operating authority."""

    async def lookup(
        self, *, mc_number: Optional[str] = None, us_dot_number: Optional[str] = None
    ) -> VerificationResult: ...


def map_authority_status(data: dict[str, Any]) -> FmcsaAuthorityStatus:
    """Translate the lookup payload into the ledger's status enum."""
    authority = data.get("authorityStatus")
    if authority:
        authority = str(authority).lower()
        if authority == "active":
            return FmcsaAuthorityStatus.VERIFIED_ACTIVE
        if authority in ("inactive", "not authorized", "pending"):
            return FmcsaAuthorityStatus.VERIFIED_INACTIVE
        return FmcsaAuthorityStatus.VERIFICATION_FAILED

    operating = str(data.get("operatingStatus") or "").lower()
    if operating == "in service":
        return FmcsaAuthorityStatus.VERIFIED_ACTIVE
    return FmcsaAuthorityStatus.VERIFICATION_FAILED


class FmcsaClient:
    """HTTP client for the FMCSA carrier lookup endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[structlog.BoundLogger] = None,
    ) -> None:
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport
        self.logger = logger or structlog.get_logger(component="fmcsa_client")

    def is_configured(self) -> bool:
        return bool(self.api_key and self.base_url)

    async def lookup(
        self, *, mc_number: Optional[str] = None, us_dot_number: Optional[str] = None
    ) -> VerificationResult:
        """
        Look up a carrier's operating authority.

        Args:
            mc_number: MC docket number
            us_dot_number: USDOT number, used when both are given

        Returns:
            VerificationResult with the mapped status and raw details

        Raises:
            FmcsaVerificationError: On missing configuration, missing identifier,
                HTTP error status, transport failure or an unreadable body
        """
        if not self.is_configured():
            raise FmcsaVerificationError("FMCSA API key is not configured")
        if us_dot_number:
            params = {"dotNumber": us_dot_number}
        elif mc_number:
            params = {"mcNumber": mc_number}
        else:
            raise FmcsaVerificationError("MC number or US DOT number is required")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        self.logger.info("fmcsa_lookup_started", **params)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.base_url, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise FmcsaVerificationError(f"FMCSA request failed: {e}") from e

        if response.status_code >= 400:
            raise FmcsaVerificationError(
                f"FMCSA lookup failed ({response.status_code}): {response.text[:400]}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise FmcsaVerificationError("FMCSA response was not valid JSON") from e
        if not isinstance(data, dict):
            raise FmcsaVerificationError("FMCSA response was not a JSON object")

        status = map_authority_status(data)
        self.logger.info("fmcsa_lookup_completed", status=status.value, **params)
        return VerificationResult(
            status=status,
            details=data,
            message="Successfully fetched FMCSA data.",
        )
