"""
Warranty Write-Back

Pushes freshly fetched warranty dates back to the RMM/PSA platform each
device was imported from, after a lookup run.

Only records fetched in this run are written: error records, skipped and
cached records, records already written back and records without a serial
number or end date are left alone. CSV-imported devices have no platform to
write to and are skipped.
"""

import logging
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from ..compute.rounding import round_half_up
from ..errors import PlatformWriteError
from ..models import MISSING_SERIAL, Device, Platform, WarrantyRecord
from ..backends.base import PlatformWriter, WarrantyStore
from .lookup import COMPLETE_PROGRESS, ProgressCallback, ProgressReporter


logger = logging.getLogger(__name__)

NOTHING_TO_WRITE_MESSAGE = "No new warranty information to write back to source platforms."


class WriteBackResult(BaseModel):
    """Outcome of a write-back run."""

    results: List[WarrantyRecord] = Field(default_factory=list)
    attempted: int = 0
    written: int = 0
    failed: int = 0
    message: Optional[str] = None


def needs_write_back(record: WarrantyRecord) -> bool:
    """True for a record fetched in this run that has not been written back yet."""
    return not (
        record.error
        or record.skipped
        or record.from_cache
        or record.written_back
        or not record.serial_number
        or record.serial_number == MISSING_SERIAL
        or not record.end_date
    )


def write_back_candidates(records: Sequence[WarrantyRecord]) -> List[int]:
    """Indices of the records eligible for write-back."""
    return [index for index, record in enumerate(records) if needs_write_back(record)]


def _skip_reason(device: Device) -> Optional[str]:
    if device.source_platform == Platform.CSV:
        return "source is CSV"
    if device.source_platform is None:
        return "no source platform"
    if not device.id:
        return "no device id"
    return None


async def write_back_warranties(
    devices: Sequence[Device],
    records: Sequence[WarrantyRecord],
    writer: PlatformWriter,
    store: Optional[WarrantyStore] = None,
    on_progress: Optional[ProgressCallback] = None
) -> WriteBackResult:
    """
    Write eligible lookup results back to their source platforms.

    Devices are handled one at a time, in order. A failed write turns that
    record into an error record and the run moves on to the next device.

    Args:
        devices: Devices of the lookup run
        records: Lookup results, the i-th belonging to the i-th device
        writer: Platform writer
        store: Device store, marked for every successful write
        on_progress: Receives increasing percentages, ending with 100

    Returns:
        WriteBackResult with one record per device in input order

    Raises:
        ValueError: ``devices`` and ``records`` differ in length
    """
    if len(devices) != len(records):
        raise ValueError(
            f"Write-back needs one record per device ({len(devices)} devices, {len(records)} records)"
        )

    results = list(records)
    candidates = write_back_candidates(results)
    if not candidates:
        logger.info(NOTHING_TO_WRITE_MESSAGE)
        return WriteBackResult(results=results, message=NOTHING_TO_WRITE_MESSAGE)

    progress = ProgressReporter(on_progress)
    progress.report(0)
    attempted = written = failed = 0
    logger.info(f"Starting warranty write-back for {len(candidates)} devices")

    for step, index in enumerate(candidates):
        device = devices[index]
        record = results[index]

        reason = _skip_reason(device)
        if reason:
            logger.info(f"Skipping write-back for {record.serial_number}, {reason}.")
        else:
            attempted += 1
            results[index] = await _write_one(device, record, writer, store)
            if results[index].written_back:
                written += 1
            else:
                failed += 1

        progress.report(round_half_up(((step + 1) / len(candidates)) * 100))

    progress.report(COMPLETE_PROGRESS)
    logger.info(f"Write-back finished: {written} written, {failed} failed, {len(candidates) - attempted} skipped")
    return WriteBackResult(
        results=results,
        attempted=attempted,
        written=written,
        failed=failed,
    )


async def _write_one(
    device: Device,
    record: WarrantyRecord,
    writer: PlatformWriter,
    store: Optional[WarrantyStore]
) -> WarrantyRecord:
    platform = device.source_platform.value
    try:
        await writer.write_warranty(device, record)
    except PlatformWriteError as e:
        logger.error(f"Write-back failed for {record.serial_number} to {platform}: {e}")
        return record.model_copy(update={
            "written_back": False,
            "error": True,
            "error_message": f"Write-back failed: {e}",
        })
    except Exception as e:
        logger.error(f"Exception during write-back for {record.serial_number}: {e}")
        return record.model_copy(update={
            "written_back": False,
            "error": True,
            "error_message": f"Write-back exception: {e}",
        })

    logger.info(f"Successfully wrote back warranty for {record.serial_number} to {platform}")
    if store is not None:
        try:
            await store.mark_written_back(record.serial_number)
        except Exception as e:
            logger.error(f"Error marking {record.serial_number} as written back: {e}")

    return record.model_copy(update={
        "written_back": True,
        "error": False,
        "error_message": None,
    })
