"""
Device Model

The device shape owned by the storage collaborator. Devices arrive from RMM
platforms or CSV import; the lookup engine only reads them.
"""

from typing import Any, Optional
from pydantic import BaseModel, field_validator

from .manufacturer import Manufacturer, Platform, determine_manufacturer


class Device(BaseModel):
    """A managed device as supplied by a device source."""

    id: Optional[str] = None
    serial_number: Optional[str] = None
    manufacturer: Optional[Manufacturer] = None
    model: Optional[str] = None
    hostname: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = None

    # Provenance
    source_platform: Optional[Platform] = None
    source_device_id: Optional[str] = None

    # Stored warranty data (YYYY-MM-DD)
    warranty_start_date: Optional[str] = None
    warranty_end_date: Optional[str] = None
    # Epoch seconds of the last successful lookup
    warranty_fetched_at: Optional[int] = None
    warranty_written_back_at: Optional[int] = None

    @field_validator("manufacturer", mode="before")
    @classmethod
    def _normalize_manufacturer(cls, value: Any) -> Any:
        if value is None or isinstance(value, Manufacturer):
            return value
        if isinstance(value, str):
            try:
                return Manufacturer(value.lower().strip())
            except ValueError:
                return determine_manufacturer(value, default=None)
        return value

    @field_validator("serial_number", mode="before")
    @classmethod
    def _strip_serial(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    def has_serial(self) -> bool:
        """Check whether the device carries a usable serial number."""
        return bool(self.serial_number)
