"""
Warranty Record Models

``WarrantyRecord`` is the unit produced by every lookup path (cache, error,
manufacturer backend) and consumed read-only by the report aggregator.
Records are frozen: build a new one with ``model_copy(update=...)``.
"""

from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..compute.status import WarrantyStatus, classify
from .device import Device
from .manufacturer import Manufacturer


MISSING_SERIAL = "N/A"
MISSING_SERIAL_MESSAGE = "Missing serial number"
UNKNOWN_SOURCE = "Unknown"


class WarrantyRecord(BaseModel):
    """Per-device result of a warranty lookup, success or failure."""

    model_config = ConfigDict(frozen=True)

    serial_number: str = MISSING_SERIAL
    manufacturer: Optional[Manufacturer] = None
    product_description: Optional[str] = None
    coverage_details: List[str] = Field(default_factory=list)
    start_date: str = ""
    end_date: str = ""
    device_source: str = UNKNOWN_SOURCE

    # Lookup outcome flags
    skipped: bool = False
    from_cache: bool = False
    error: bool = False
    error_message: Optional[str] = None
    is_loading_warranty: bool = False
    written_back: bool = False

    last_updated: Optional[str] = None

    @property
    def status(self) -> WarrantyStatus:
        """Warranty status as of now."""
        return classify(self.end_date)

    def status_at(self, now: datetime) -> WarrantyStatus:
        """Warranty status as of ``now``."""
        return classify(self.end_date, now=now)


class LookupResult(BaseModel):
    """Outcome of a whole lookup run."""

    results: List[WarrantyRecord] = Field(default_factory=list)
    success: bool = True
    error: Optional[str] = None


def source_label(device: Device) -> str:
    """Provenance tag of a device as stored on its records."""
    if device.source_platform is None:
        return UNKNOWN_SOURCE
    return device.source_platform.value


def device_to_record(device: Device) -> WarrantyRecord:
    """
    Build a record from the warranty data already stored on a device.

    Args:
        device: Device with optional stored warranty fields

    Returns:
        WarrantyRecord reflecting the stored state (no lookup flags set)
    """
    last_updated = None
    if device.warranty_fetched_at:
        last_updated = datetime.fromtimestamp(
            device.warranty_fetched_at, tz=timezone.utc
        ).isoformat()

    return WarrantyRecord(
        serial_number=device.serial_number or MISSING_SERIAL,
        manufacturer=device.manufacturer,
        product_description=device.model or "Unknown",
        start_date=device.warranty_start_date or "",
        end_date=device.warranty_end_date or "",
        device_source=source_label(device),
        from_cache=bool(device.warranty_fetched_at),
        written_back=bool(device.warranty_written_back_at),
        last_updated=last_updated,
    )


def cached_record(device: Device) -> WarrantyRecord:
    """Record for a device skipped because it already has warranty data."""
    return device_to_record(device).model_copy(
        update={"skipped": True, "from_cache": True}
    )


def missing_serial_record(device: Device) -> WarrantyRecord:
    """Record for a device that cannot be looked up without a serial number."""
    return WarrantyRecord(
        serial_number=MISSING_SERIAL,
        manufacturer=device.manufacturer,
        product_description=device.model or "Unknown",
        device_source=source_label(device),
        skipped=True,
        error=True,
        error_message=MISSING_SERIAL_MESSAGE,
    )


def error_record(device: Device, message: str) -> WarrantyRecord:
    """Record for a device whose lookup failed."""
    return device_to_record(device).model_copy(
        update={"error": True, "error_message": message, "is_loading_warranty": False}
    )
