"""
Result Reconciler

Merges dispatcher output (any order, keyed by serial number) back into the
original device order, one record per device.

Serial numbers are treated as unique within a run. With ``MergeKey.SERIAL``
two devices sharing a serial number both receive the last record seen for
it; ``MergeKey.SOURCE_SERIAL`` keys on ``(device_source, serial_number)``
instead, for device pools merged from several platforms.
"""

import logging
from enum import Enum
from typing import Dict, Hashable, List, Sequence

from ..models import Device, WarrantyRecord, error_record, missing_serial_record
from ..models.warranty import source_label


logger = logging.getLogger(__name__)

NO_RESULT_MESSAGE = "No warranty result returned for device"


class MergeKey(str, Enum):
    """How records are matched back to devices."""
    SERIAL = "serial"
    SOURCE_SERIAL = "source_serial"


def record_key(record: WarrantyRecord, merge_key: MergeKey = MergeKey.SERIAL) -> Hashable:
    """Merge key of a record."""
    if merge_key == MergeKey.SOURCE_SERIAL:
        return (record.device_source, record.serial_number)
    return record.serial_number


def device_key(device: Device, merge_key: MergeKey = MergeKey.SERIAL) -> Hashable:
    """Merge key of a device with a serial number."""
    if merge_key == MergeKey.SOURCE_SERIAL:
        return (source_label(device), device.serial_number)
    return device.serial_number


def index_records(
    records: Sequence[WarrantyRecord],
    merge_key: MergeKey = MergeKey.SERIAL
) -> Dict[Hashable, WarrantyRecord]:
    """Build the key -> record table, last write wins."""
    table: Dict[Hashable, WarrantyRecord] = {}
    for record in records:
        key = record_key(record, merge_key)
        if key in table:
            logger.warning(f"Duplicate warranty result for key {key!r} - keeping the last one")
        table[key] = record
    return table


def reconcile(
    devices: Sequence[Device],
    records: Sequence[WarrantyRecord],
    merge_key: MergeKey = MergeKey.SERIAL
) -> List[WarrantyRecord]:
    """
    Restore device order and fill gaps.

    Args:
        devices: Original device list; defines order and length of the output
        records: Dispatcher output in any order
        merge_key: Matching strategy

    Returns:
        Exactly ``len(devices)`` records, the i-th belonging to the i-th device
    """
    table = index_records(records, merge_key)
    ordered = []
    gaps = 0

    for device in devices:
        if not device.serial_number:
            ordered.append(missing_serial_record(device))
            continue

        record = table.get(device_key(device, merge_key))
        if record is None:
            gaps += 1
            record = error_record(device, NO_RESULT_MESSAGE)
        ordered.append(record)

    if gaps:
        logger.warning(f"{gaps} device(s) had no lookup result and were filled with error records")

    return ordered
