"""
Vitals backend client.

Fetches the latest patient measurements for alert derivation using the
cached user and bearer token.
"""

import logging
import os
from typing import Optional

import httpx

from .store import IdentityStore
from .thresholds import VitalsSnapshot

logger = logging.getLogger(__name__)

DEFAULT_VITALS_API_URL = "https://evitals.life/api"


class VitalsError(Exception):
    """Base class for vitals fetch failures."""


class MissingIdentityError(VitalsError):
    """No cached user, patient id or auth token."""


class VitalsFetchError(VitalsError):
    """Network failure, non-2xx response or malformed payload."""


class VitalsClient:
    """Async client for ``GET /patients/{id}``."""

    def __init__(
        self,
        identity: IdentityStore,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            identity: Source of the cached user and auth token
            base_url: Backend API root (default from VITALS_API_URL)
            timeout: Request timeout in seconds
            transport: Optional httpx transport override
        """
        self.identity = identity
        self.base_url = (base_url or os.getenv("VITALS_API_URL", DEFAULT_VITALS_API_URL)).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _patient_id(self) -> str:
        user = self.identity.get_user()
        if not user:
            raise MissingIdentityError("User not found")

        patient_id = user.get("id") or user.get("patient_id")
        if not patient_id:
            raise MissingIdentityError("Patient ID missing")
        return str(patient_id)

    async def fetch_patient(self) -> dict:
        """
        Fetch the raw patient record.

        Raises:
            MissingIdentityError: user, patient id or token not cached
            VitalsFetchError: request failed or response malformed
        """
        patient_id = self._patient_id()
        token = self.identity.get_token()
        if not token:
            raise MissingIdentityError("Auth token missing")

        url = f"{self.base_url}/patients/{patient_id}"
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout), transport=self._transport
            ) as client:
                response = await client.get(
                    url,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.HTTPError as e:
            raise VitalsFetchError(f"Request to {url} failed: {e}") from e

        if not response.is_success:
            raise VitalsFetchError(f"API failed: {response.status_code}")

        try:
            result = response.json()
        except ValueError as e:
            raise VitalsFetchError("Response is not valid JSON") from e

        if not isinstance(result, dict) or not result.get("success") or not isinstance(result.get("data"), dict):
            raise VitalsFetchError("Invalid response")

        logger.debug(f"[VITALS] Fetched patient {patient_id}")
        return result["data"]

    async def fetch_snapshot(self) -> VitalsSnapshot:
        """Fetch the patient record and extract the vitals snapshot."""
        return VitalsSnapshot.from_patient(await self.fetch_patient())
