"""Fake collaborators shared by the warranty lifecycle tests."""

from typing import List, Optional, Sequence

from warranty_lifecycle.errors import PlatformWriteError, WarrantyLookupError
from warranty_lifecycle.models import Device, ManufacturerCredentials, WarrantyRecord


class RecordingBackend:
    """Single-device backend that records calls and fails selected serials."""

    def __init__(self, fail_serials: Sequence[str] = (), end_date: str = "2030-01-01"):
        self.fail_serials = set(fail_serials)
        self.end_date = end_date
        self.calls: List[str] = []

    async def fetch_one(self, device: Device, credentials: ManufacturerCredentials) -> WarrantyRecord:
        self.calls.append(device.serial_number)
        if device.serial_number in self.fail_serials:
            raise WarrantyLookupError(f"Lookup failed for {device.serial_number}")
        return WarrantyRecord(
            serial_number=device.serial_number,
            manufacturer=device.manufacturer,
            start_date="2027-01-01",
            end_date=self.end_date,
        )


class ShuffledBatchBackend:
    """
    Batch backend answering in reverse order, optionally dropping or failing.

    With ``with_source=False`` records carry only serial, manufacturer and
    end date, like an endpoint that does not echo the device source.
    """

    def __init__(
        self,
        omit_serials: Sequence[str] = (),
        error: Optional[Exception] = None,
        with_source: bool = True
    ):
        self.omit_serials = set(omit_serials)
        self.error = error
        self.with_source = with_source
        self.calls: List[List[str]] = []

    async def fetch_batch(self, devices: List[Device], credentials: ManufacturerCredentials) -> List[WarrantyRecord]:
        self.calls.append([d.serial_number for d in devices])
        if self.error is not None:
            raise self.error
        records = [
            WarrantyRecord(
                serial_number=d.serial_number,
                manufacturer=d.manufacturer,
                device_source=(
                    d.source_platform.value if d.source_platform and self.with_source else "Unknown"
                ),
                end_date="2030-01-01",
            )
            for d in devices
            if d.serial_number not in self.omit_serials
        ]
        return list(reversed(records))


class RecordingWriter:
    """Platform writer that records writes and rejects or crashes on selected serials."""

    def __init__(self, reject_serials: Sequence[str] = (), crash_serials: Sequence[str] = ()):
        self.reject_serials = set(reject_serials)
        self.crash_serials = set(crash_serials)
        self.calls: List[tuple] = []

    async def write_warranty(self, device: Device, record: WarrantyRecord) -> None:
        self.calls.append((device.source_platform.value, device.id, record.serial_number))
        if record.serial_number in self.reject_serials:
            raise PlatformWriteError("Device not found on platform", status=404)
        if record.serial_number in self.crash_serials:
            raise ConnectionError("connection reset")


class StaticProvider:
    def __init__(self, credentials: Optional[ManufacturerCredentials] = None):
        self.credentials = credentials or ManufacturerCredentials()
        self.calls = 0

    def get_manufacturer_credentials(self) -> ManufacturerCredentials:
        self.calls += 1
        return self.credentials


class FailingProvider:
    def get_manufacturer_credentials(self) -> ManufacturerCredentials:
        raise RuntimeError("credential store offline")


def make_device(serial: Optional[str], **kwargs) -> Device:
    """Build a device with sensible defaults."""
    kwargs.setdefault("manufacturer", "hp")
    kwargs.setdefault("source_platform", "datto")
    return Device(serial_number=serial, **kwargs)
