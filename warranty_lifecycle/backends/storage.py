"""
Device Warranty Store
=====================
In-memory implementation of the ``WarrantyStore`` collaborator.

Used by the demo entry point and tests. Production deployments plug in a
database-backed store with the same three coroutines.
"""

import time
from typing import Dict, Iterable, List, Optional

from ..models import Device


class InMemoryWarrantyStore:
    """Device pool keyed by serial number."""

    def __init__(self, devices: Optional[Iterable[Device]] = None):
        self._devices: Dict[str, Device] = {}
        for device in devices or []:
            if device.serial_number:
                self._devices[device.serial_number] = device

    async def get_device(self, serial_number: str) -> Optional[Device]:
        """Retrieve a device by serial number."""
        return self._devices.get(serial_number)

    async def update_device_warranty(
        self,
        serial_number: str,
        start_date: str,
        end_date: str
    ) -> None:
        """
        Record fresh warranty dates for a device.

        Unknown serial numbers are added to the pool.
        """
        device = self._devices.get(serial_number) or Device(serial_number=serial_number)
        self._devices[serial_number] = device.model_copy(update={
            "warranty_start_date": start_date,
            "warranty_end_date": end_date,
            "warranty_fetched_at": int(time.time()),
        })

    async def mark_written_back(self, serial_number: str) -> None:
        """Mark a device's warranty as written back to its source platform."""
        device = self._devices.get(serial_number)
        if device is None:
            raise KeyError(f"Unknown device {serial_number}")
        self._devices[serial_number] = device.model_copy(
            update={"warranty_written_back_at": int(time.time())}
        )

    def devices(self) -> List[Device]:
        """All devices in the pool."""
        return list(self._devices.values())
