"""
Backend Interfaces

Narrow protocols for the collaborators the lookup engine depends on:
manufacturer warranty backends (single-device and batch form), the
credential provider, the device warranty store and the source platform
writer used for write-back.
"""

from typing import List, Optional, Protocol

from ..models import Device, ManufacturerCredentials, WarrantyRecord


class WarrantyBackend(Protocol):
    """Single-device manufacturer backend. Raising is the failure channel."""

    async def fetch_one(
        self,
        device: Device,
        credentials: ManufacturerCredentials,
    ) -> WarrantyRecord:
        """Look up the warranty for one device."""
        ...


class BatchWarrantyBackend(Protocol):
    """Batch manufacturer backend returning at most one record per device."""

    async def fetch_batch(
        self,
        devices: List[Device],
        credentials: ManufacturerCredentials,
    ) -> List[WarrantyRecord]:
        """Look up warranties for many devices in one request."""
        ...


class CredentialProvider(Protocol):
    """Source of the per-manufacturer credential bundle."""

    def get_manufacturer_credentials(self) -> ManufacturerCredentials:
        """Return the current credential bundle (may be partial or empty)."""
        ...


class WarrantyStore(Protocol):
    """Device storage collaborator, written to as a lookup side effect."""

    async def update_device_warranty(
        self,
        serial_number: str,
        start_date: str,
        end_date: str,
    ) -> None:
        ...

    async def mark_written_back(self, serial_number: str) -> None:
        ...

    async def get_device(self, serial_number: str) -> Optional[Device]:
        ...


class PlatformWriter(Protocol):
    """Pushes fetched warranty dates back to a device's source platform."""

    async def write_warranty(self, device: Device, record: WarrantyRecord) -> None:
        """
        Write one record to the platform the device came from.

        Raises:
            PlatformWriteError: The platform rejected the update
        """
        ...
