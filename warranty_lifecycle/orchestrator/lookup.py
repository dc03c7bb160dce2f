"""
Warranty Lookup Dispatcher

Decides per device whether a manufacturer lookup is needed, dispatches the
eligible devices with one of two strategies, and hands the results to the
reconciler so that every input device gets exactly one record, in order.

Strategies:
1. Batch - every eligible device goes out in a single batch request
2. Sequential - one lookup at a time, with live progress and per-device callbacks

A failing device never aborts a run: its error becomes an error record.
Only credential retrieval, a rejected batch request or an exception escaping
the dispatch loop fail the whole run.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Callable, Dict, Hashable, List, Optional, Sequence, Tuple

from ..compute.rounding import round_half_up
from ..errors import CredentialRetrievalError, WarrantyLookupError
from ..models import (
    Device,
    LookupResult,
    ManufacturerCredentials,
    WarrantyRecord,
    cached_record,
    error_record,
    missing_serial_record,
)
from ..models.warranty import UNKNOWN_SOURCE, source_label
from ..backends.base import BatchWarrantyBackend, CredentialProvider, WarrantyBackend
from .reconcile import MergeKey, device_key, index_records, reconcile


logger = logging.getLogger(__name__)


ProgressCallback = Callable[[int], None]
DeviceResultCallback = Callable[[WarrantyRecord, int, int], None]

SETUP_PROGRESS = 5
BATCH_RETURNED_PROGRESS = 50
COMPLETE_PROGRESS = 100

NO_DEVICES_MESSAGE = "No devices provided to process for warranty lookup."
BATCH_MISSING_MESSAGE = "No result from batch API or error during fetch"
RUN_FAILED_MESSAGE = "Overall lookup processing failed"


class LookupStrategy(str, Enum):
    """How eligible devices are sent to the manufacturer backends."""
    BATCH = "batch"
    SEQUENTIAL = "sequential"


@dataclass
class LookupOptions:
    """Options for one lookup run."""
    skip_existing_for_lookup: bool = True
    on_progress: Optional[ProgressCallback] = None
    on_device_result: Optional[DeviceResultCallback] = None
    merge_key: MergeKey = MergeKey.SERIAL


class ProgressReporter:
    """
    Forwards progress values to a callback, only when they increase.

    Values are clamped to 0-100 and a value equal to or below the last one
    forwarded is dropped, so the callback sees a strictly increasing series
    ending in exactly one 100. In a sequential run over more than 95 devices
    several devices map to the same whole percentage; the callback then fires
    once per new percentage rather than once per device. Per-device
    notification goes through ``on_device_result``, which fires for every
    device.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.last: Optional[int] = None

    def report(self, percent: int) -> None:
        percent = max(0, min(COMPLETE_PROGRESS, int(percent)))
        if self.last is not None and percent <= self.last:
            return
        self.last = percent
        if self.callback:
            self.callback(percent)


def sequential_progress(index: int, total: int) -> int:
    """Progress after device ``index`` of ``total`` in the sequential strategy."""
    return round_half_up(((index + 1) / total) * 95) + 5


def triage_device(device: Device, skip_existing: bool) -> Optional[WarrantyRecord]:
    """
    Decide whether a device needs a manufacturer lookup.

    Args:
        device: Device to check
        skip_existing: Skip devices that already have fetched warranty data

    Returns:
        The final record for a device that is not looked up, or None when the
        device is eligible
    """
    if not device.serial_number:
        return missing_serial_record(device)
    if skip_existing and device.warranty_fetched_at:
        return cached_record(device)
    return None


def _stamp(record: WarrantyRecord, device: Device) -> WarrantyRecord:
    # The record belongs to this device whatever the backend echoed back
    return record.model_copy(update={
        "serial_number": device.serial_number,
        "device_source": source_label(device),
        "is_loading_warranty": False,
    })


def _batch_matcher(
    records: Sequence[WarrantyRecord],
    merge_key: MergeKey
) -> Callable[[Device], Optional[WarrantyRecord]]:
    """
    Build the device -> batch record lookup.

    Records are matched on the merge key. Under ``MergeKey.SOURCE_SERIAL`` a
    record that carries no source of its own is matched on serial number
    alone. Matched records are stamped with the device's serial and source
    before reconciliation.
    """
    by_key = index_records(records, merge_key)
    by_serial: Dict[Hashable, WarrantyRecord] = {}
    if merge_key != MergeKey.SERIAL:
        by_serial = index_records(
            [r for r in records if r.device_source == UNKNOWN_SOURCE],
            MergeKey.SERIAL,
        )

    def match(device: Device) -> Optional[WarrantyRecord]:
        record = by_key.get(device_key(device, merge_key))
        if record is None:
            record = by_serial.get(device.serial_number)
        return record

    return match


class WarrantyLookupDispatcher:
    """
    Runs warranty lookups over a device list.

    The dispatcher holds no state between runs; concurrent runs over
    different device lists are independent.
    """

    def __init__(
        self,
        credential_provider: CredentialProvider,
        backend: Optional[WarrantyBackend] = None,
        batch_backend: Optional[BatchWarrantyBackend] = None
    ):
        """
        Initialize the dispatcher.

        Args:
            credential_provider: Source of the manufacturer credential bundle
            backend: Single-device backend (sequential strategy)
            batch_backend: Batch backend (batch strategy)
        """
        self.credential_provider = credential_provider
        self.backend = backend
        self.batch_backend = batch_backend

    def _read_credentials(self) -> ManufacturerCredentials:
        try:
            return self.credential_provider.get_manufacturer_credentials()
        except Exception as e:
            raise CredentialRetrievalError(
                f"Failed to retrieve manufacturer credentials: {e}"
            ) from e

    async def dispatch_batch(
        self,
        devices: Sequence[Device],
        credentials: ManufacturerCredentials,
        options: LookupOptions
    ) -> List[WarrantyRecord]:
        """
        Batch strategy: one request for all eligible devices.

        Returns:
            One record per device, skipped devices first (not in input order)

        Raises:
            BatchLookupError: The batch endpoint rejected the request
        """
        skipped = []
        eligible = []
        for device in devices:
            record = triage_device(device, options.skip_existing_for_lookup)
            if record is None:
                eligible.append(device)
            else:
                skipped.append(record)

        logger.info(f"Batch lookup: {len(eligible)} eligible, {len(skipped)} skipped")
        if not eligible:
            return skipped

        if self.batch_backend is None:
            raise WarrantyLookupError("No batch warranty backend configured")

        batch_results = await self.batch_backend.fetch_batch(eligible, credentials)
        match = _batch_matcher(batch_results, options.merge_key)

        results = list(skipped)
        for device in eligible:
            record = match(device)
            if record is None:
                logger.warning(f"No batch result for {device.serial_number}")
                record = error_record(device, BATCH_MISSING_MESSAGE)
            else:
                record = _stamp(record, device)
            results.append(record)
        return results

    async def iter_sequential(
        self,
        devices: Sequence[Device],
        credentials: ManufacturerCredentials,
        options: LookupOptions
    ) -> AsyncIterator[Tuple[int, WarrantyRecord]]:
        """
        Sequential strategy: yield ``(index, record)`` for each device in order.

        The lookup for device ``i + 1`` starts only after device ``i`` has been
        yielded. Stopping iteration stops the run at that device boundary.
        """
        if self.backend is None and any(
            triage_device(d, options.skip_existing_for_lookup) is None for d in devices
        ):
            raise WarrantyLookupError("No warranty backend configured")

        for index, device in enumerate(devices):
            record = triage_device(device, options.skip_existing_for_lookup)
            if record is None:
                record = await self._fetch_one(device, credentials)
            yield index, record

    async def _fetch_one(
        self,
        device: Device,
        credentials: ManufacturerCredentials
    ) -> WarrantyRecord:
        try:
            record = await self.backend.fetch_one(device, credentials)
        except Exception as e:
            logger.error(f"Error fetching warranty for {device.serial_number}: {e}")
            return error_record(device, str(e) or "API fetch failed")

        return _stamp(record, device)

    async def lookup(
        self,
        devices: Sequence[Device],
        options: Optional[LookupOptions] = None,
        strategy: LookupStrategy = LookupStrategy.SEQUENTIAL
    ) -> LookupResult:
        """
        Run a full lookup: credentials, dispatch, reconciliation.

        Args:
            devices: Devices to look up
            options: Skip policy, callbacks and merge key
            strategy: Batch or sequential dispatch

        Returns:
            LookupResult with one record per device in input order. On a
            run-level failure ``success`` is False, devices that already had an
            answer keep it and every other device gets an error record.
        """
        options = options or LookupOptions()
        devices = list(devices)
        total = len(devices)

        if not devices:
            return LookupResult(results=[], success=False, error=NO_DEVICES_MESSAGE)

        progress = ProgressReporter(options.on_progress)
        answered: Dict[int, WarrantyRecord] = {}
        logger.info(f"Starting {strategy.value} warranty lookup for {total} devices")

        try:
            credentials = self._read_credentials()
            progress.report(SETUP_PROGRESS)

            if strategy == LookupStrategy.BATCH:
                records = await self.dispatch_batch(devices, credentials, options)
                progress.report(BATCH_RETURNED_PROGRESS)
                ordered = reconcile(devices, records, options.merge_key)
                for index, record in enumerate(ordered):
                    answered[index] = record
                    self._notify_device(options, record, index, total)
            else:
                records = []
                async for index, record in self.iter_sequential(devices, credentials, options):
                    answered[index] = record
                    records.append(record)
                    progress.report(sequential_progress(index, total))
                    self._notify_device(options, record, index, total)
                ordered = reconcile(devices, records, options.merge_key)

            progress.report(COMPLETE_PROGRESS)
        except Exception as e:
            message = str(e) or RUN_FAILED_MESSAGE
            logger.error(f"Warranty lookup failed: {message}")
            return LookupResult(
                results=self._best_effort(devices, answered, options, message),
                success=False,
                error=message,
            )

        failed = sum(1 for r in ordered if r.error)
        logger.info(f"Warranty lookup finished: {total} devices, {failed} with errors")
        return LookupResult(results=ordered, success=True)

    @staticmethod
    def _notify_device(
        options: LookupOptions,
        record: WarrantyRecord,
        index: int,
        total: int
    ) -> None:
        if options.on_device_result:
            options.on_device_result(record, index, total)

    @staticmethod
    def _best_effort(
        devices: Sequence[Device],
        answered: Dict[int, WarrantyRecord],
        options: LookupOptions,
        message: str
    ) -> List[WarrantyRecord]:
        results = []
        for index, device in enumerate(devices):
            record = answered.get(index)
            if record is None:
                record = triage_device(device, options.skip_existing_for_lookup)
            if record is None:
                record = error_record(device, message)
            results.append(record)
        return results


async def lookup_warranties_for_devices(
    devices: Sequence[Device],
    credential_provider: CredentialProvider,
    backend: Optional[WarrantyBackend] = None,
    batch_backend: Optional[BatchWarrantyBackend] = None,
    options: Optional[LookupOptions] = None,
    strategy: LookupStrategy = LookupStrategy.SEQUENTIAL
) -> LookupResult:
    """Convenience wrapper running a single lookup with a fresh dispatcher."""
    dispatcher = WarrantyLookupDispatcher(
        credential_provider,
        backend=backend,
        batch_backend=batch_backend,
    )
    return await dispatcher.lookup(devices, options=options, strategy=strategy)
