"""
Manufacturer Warranty API Client
================================
HTTP integration with the manufacturer warranty APIs.

This module handles:
- Single-device lookups against ``{base}/warranty/{manufacturer}/{serial}``
- Batch lookups against the batch warranty endpoint
- Warranty write-back to source platforms through the platform update endpoint
- Per-manufacturer authentication headers from the credential bundle
- Persisting fresh warranty dates through the device store
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp

from ..errors import (
    BatchLookupError,
    InvalidWarrantyResponseError,
    PlatformWriteError,
    WarrantyLookupError,
)
from ..models import Device, ManufacturerCredentials, WarrantyRecord, device_to_record
from .base import WarrantyStore


logger = logging.getLogger(__name__)


def parse_warranty_payload(payload: Any, manufacturer: str, serial_number: str) -> Dict[str, Any]:
    """
    Validate a single-device API response.

    Args:
        payload: Decoded JSON body
        manufacturer: Manufacturer name, for error messages
        serial_number: Serial number that was looked up

    Returns:
        dict with start_date, end_date, product_description and coverage_details

    Raises:
        InvalidWarrantyResponseError: Body is empty or has no end date
    """
    if not isinstance(payload, dict) or not payload.get("end_date"):
        raise InvalidWarrantyResponseError(
            f"Invalid or empty response from {manufacturer.upper()} API for {serial_number}"
        )

    warranty_type = payload.get("warranty_type")
    return {
        "start_date": payload.get("start_date") or "",
        "end_date": payload["end_date"],
        "product_description": payload.get("product_name") or f"{manufacturer.upper()} Product",
        "coverage_details": [warranty_type] if warranty_type else [],
    }


class WarrantyAPIClient:
    """Thin aiohttp wrapper around the warranty relay API."""

    def __init__(
        self,
        api_base_url: str = "https://api.warrantywatcher.com",
        batch_url: Optional[str] = None,
        platform_update_url: Optional[str] = None,
        timeout_seconds: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize API client.

        Args:
            api_base_url: Base URL for the warranty API
            batch_url: Batch endpoint URL (defaults to ``{base}/warranty/fetch-batch``)
            platform_update_url: Write-back endpoint URL (defaults to
                ``{base}/platform-data/update``)
            timeout_seconds: Total timeout per request
            session: Existing session to reuse; the client will not close it
        """
        self.api_base_url = api_base_url.rstrip("/")
        self.batch_url = batch_url or f"{self.api_base_url}/warranty/fetch-batch"
        self.platform_update_url = platform_update_url or f"{self.api_base_url}/platform-data/update"
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "WarrantyAPIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self.session

    async def get_warranty(
        self,
        manufacturer: str,
        serial_number: str,
        headers: Dict[str, str]
    ) -> Dict[str, Any]:
        """
        Fetch warranty dates for one serial number.

        Example:
            GET /warranty/hp/{serial_number}
            Headers: X-API-Key: {api_key}
        """
        url = f"{self.api_base_url}/warranty/{manufacturer}/{serial_number}"
        session = self._get_session()
        async with session.get(url, headers={**headers, "Content-Type": "application/json"}) as response:
            if response.status != 200:
                raise WarrantyLookupError(
                    f"{manufacturer.upper()} warranty API returned status {response.status} for {serial_number}"
                )
            payload = await response.json(content_type=None)

        return parse_warranty_payload(payload, manufacturer, serial_number)

    async def post_batch(self, body: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Submit a batch lookup.

        Raises:
            BatchLookupError: Non-success status or a body that is not a list
        """
        session = self._get_session()
        async with session.post(self.batch_url, json=body) as response:
            if response.status >= 300:
                try:
                    error_data = await response.json(content_type=None)
                except (aiohttp.ContentTypeError, ValueError):
                    error_data = {}
                message = None
                if isinstance(error_data, dict):
                    message = error_data.get("error")
                raise BatchLookupError(
                    message or f"Batch warranty fetch failed with status: {response.status}",
                    status=response.status,
                )
            payload = await response.json(content_type=None)

        if not isinstance(payload, list):
            raise BatchLookupError("Batch warranty endpoint returned an unexpected body")
        return payload

    async def post_platform_update(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Push warranty dates for one device to its source platform.

        Example:
            POST /platform-data/update
            {"platform": "datto", "device_id": "...", "warranty_info": {...}}

        Raises:
            PlatformWriteError: Non-success status; the message carries the
                endpoint's ``error`` field when it sends one
        """
        session = self._get_session()
        async with session.post(self.platform_update_url, json=body) as response:
            try:
                payload = await response.json(content_type=None)
            except (aiohttp.ContentTypeError, ValueError):
                payload = {}
            if response.status >= 300:
                message = None
                if isinstance(payload, dict):
                    message = payload.get("error")
                raise PlatformWriteError(message or "API error", status=response.status)

        return payload if isinstance(payload, dict) else {}

    async def close(self):
        """Close the HTTP session if this client created it."""
        if self.session and self._owns_session and not self.session.closed:
            await self.session.close()


class ManufacturerAPIBackend:
    """
    Single-device warranty backend over the manufacturer APIs.

    Successful lookups are written to the device store when one is given.
    """

    def __init__(self, client: WarrantyAPIClient, store: Optional[WarrantyStore] = None):
        self.client = client
        self.store = store

    async def fetch_one(
        self,
        device: Device,
        credentials: ManufacturerCredentials
    ) -> WarrantyRecord:
        """
        Look up one device's warranty.

        Raises:
            UnsupportedManufacturerError: No API exists for the device's manufacturer
            MissingCredentialsError: Bundle lacks the manufacturer's credentials
            InvalidWarrantyResponseError: API answered without an end date
            WarrantyLookupError: Any other API failure
        """
        if not device.serial_number:
            raise WarrantyLookupError("Missing serial number")

        manufacturer_credentials = credentials.for_manufacturer(device.manufacturer)
        manufacturer = device.manufacturer.value

        logger.info(f"Fetching warranty from {manufacturer} API for {device.serial_number}")
        warranty = await self.client.get_warranty(
            manufacturer,
            device.serial_number,
            manufacturer_credentials.auth_headers(),
        )
        logger.info(
            f"Found {manufacturer} warranty for {device.serial_number}: "
            f"{warranty['start_date']} to {warranty['end_date']}"
        )

        await self._store(device.serial_number, warranty)

        return device_to_record(device).model_copy(update={
            **warranty,
            "from_cache": False,
            "last_updated": datetime.now(timezone.utc).isoformat(),
        })

    async def _store(self, serial_number: str, warranty: Dict[str, Any]) -> None:
        if self.store is None:
            return
        try:
            await self.store.update_device_warranty(
                serial_number, warranty["start_date"], warranty["end_date"]
            )
        except Exception as e:
            # Persistence must not fail the lookup itself
            logger.error(f"Error storing warranty info for {serial_number}: {e}")


class HTTPBatchBackend:
    """Batch warranty backend posting every eligible device in one request."""

    def __init__(self, client: WarrantyAPIClient):
        self.client = client

    async def fetch_batch(
        self,
        devices: List[Device],
        credentials: ManufacturerCredentials
    ) -> List[WarrantyRecord]:
        """Submit all devices to the batch endpoint and parse the records."""
        body = {
            "devices": [device.model_dump(mode="json") for device in devices],
            "credentials": credentials.model_dump(mode="json", exclude_none=True),
        }
        logger.info(f"Submitting {len(devices)} devices to batch warranty endpoint")
        payload = await self.client.post_batch(body)
        return [WarrantyRecord.model_validate(item) for item in payload]


class PlatformUpdateWriter:
    """
    Write-back over the platform update endpoint.

    The endpoint talks to the RMM/PSA platform on our behalf; per-platform
    credentials are forwarded with each request when given.
    """

    def __init__(
        self,
        client: WarrantyAPIClient,
        platform_credentials: Optional[Dict[str, Dict[str, Any]]] = None
    ):
        self.client = client
        self.platform_credentials = platform_credentials or {}

    async def write_warranty(self, device: Device, record: WarrantyRecord) -> None:
        """Post one record's dates to the device's source platform."""
        platform = device.source_platform.value
        body = {
            "platform": platform,
            "device_id": device.id,
            "warranty_info": {
                "serial_number": record.serial_number,
                "manufacturer": record.manufacturer.value if record.manufacturer else None,
                "start_date": record.start_date,
                "end_date": record.end_date,
                "product_description": record.product_description,
            },
        }
        credentials = self.platform_credentials.get(platform)
        if credentials:
            body["credentials"] = credentials

        logger.info(f"Writing back warranty for {record.serial_number} to {platform}")
        await self.client.post_platform_update(body)
