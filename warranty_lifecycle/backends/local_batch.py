"""
In-Process Batch Backend

Serves the batch contract on top of a single-device backend: devices are
looked up one after another and every per-device failure is converted into
an error record, so the batch as a whole never fails because of one device.
"""

import logging
from typing import List

from ..models import (
    Device,
    ManufacturerCredentials,
    WarrantyRecord,
    error_record,
    missing_serial_record,
)
from .base import WarrantyBackend


logger = logging.getLogger(__name__)


class LocalBatchBackend:
    """Batch backend that fans out to a ``WarrantyBackend`` sequentially."""

    def __init__(self, backend: WarrantyBackend):
        self.backend = backend

    async def fetch_batch(
        self,
        devices: List[Device],
        credentials: ManufacturerCredentials
    ) -> List[WarrantyRecord]:
        logger.info(f"Received {len(devices)} devices for batch warranty lookup.")
        results = []

        for device in devices:
            if not device.serial_number:
                logger.warning(
                    f"Skipping device ID {device.id or 'N/A'} due to missing serial number."
                )
                results.append(missing_serial_record(device))
                continue

            try:
                results.append(await self.backend.fetch_one(device, credentials))
            except Exception as e:
                logger.error(f"Error processing device {device.serial_number} in batch: {e}")
                results.append(error_record(device, str(e) or "API fetch failed"))

        return results
