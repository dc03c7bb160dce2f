"""Models Package - Data models for the warranty lifecycle engine."""

from .manufacturer import Manufacturer, Platform, determine_manufacturer
from .device import Device
from .warranty import (
    WarrantyRecord,
    LookupResult,
    device_to_record,
    cached_record,
    missing_serial_record,
    error_record,
    MISSING_SERIAL,
    MISSING_SERIAL_MESSAGE,
)
from .credentials import (
    DellCredentials,
    HPCredentials,
    LenovoCredentials,
    ManufacturerCredentials,
)

__all__ = [
    "Manufacturer",
    "Platform",
    "determine_manufacturer",
    "Device",
    "WarrantyRecord",
    "LookupResult",
    "device_to_record",
    "cached_record",
    "missing_serial_record",
    "error_record",
    "MISSING_SERIAL",
    "MISSING_SERIAL_MESSAGE",
    "DellCredentials",
    "HPCredentials",
    "LenovoCredentials",
    "ManufacturerCredentials",
]
