"""
Warranty Lifecycle - Demo Entry Point

Runs a warranty lookup over a pre-populated device pool with a deterministic
demo backend, optionally writes fresh results back to the source platforms,
then prints the lifecycle report. Exercises the full flow (Dispatcher ->
Reconciler -> Write-Back -> Report Aggregator -> Report Writer) without
manufacturer or platform credentials.
"""

import asyncio
import sys
import logging
from datetime import date, timedelta
from typing import Dict

from warranty_lifecycle.backends import InMemoryWarrantyStore, LocalBatchBackend, StaticCredentialProvider
from warranty_lifecycle.compute.report import build_lifecycle_report
from warranty_lifecycle.config import config
from warranty_lifecycle.errors import WarrantyLookupError
from warranty_lifecycle.models import Device, ManufacturerCredentials, WarrantyRecord, device_to_record
from warranty_lifecycle.orchestrator import (
    LookupOptions,
    LookupStrategy,
    WarrantyLookupDispatcher,
    write_back_warranties,
)
from warranty_lifecycle.utils.log_buffer import LogBuffer, setup_logging
from warranty_lifecycle.utils.report_writer import LifecycleReportWriter, export_csv


logger = logging.getLogger(__name__)


# =============================================================================
# DUMMY DEVICE POOL - Pre-populated for demo runs
# =============================================================================

def _days_from_today(days: int) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


DUMMY_DEVICES = [
    {
        "id": "dev-001",
        "serial_number": "DL-7XK2M93",
        "manufacturer": "Dell Inc.",
        "model": "Latitude 5420",
        "hostname": "ACME-LT-001",
        "client_name": "Acme Corp",
        "source_platform": "datto",
    },
    {
        "id": "dev-002",
        "serial_number": "HP-5CG1234XYZ",
        "manufacturer": "HP",
        "model": "EliteBook 840 G8",
        "hostname": "ACME-LT-002",
        "client_name": "Acme Corp",
        "source_platform": "ncentral",
    },
    {
        "id": "dev-003",
        "serial_number": "LN-PF2ABCDE",
        "manufacturer": "LENOVO",
        "model": "ThinkPad X1 Carbon",
        "hostname": "ACME-LT-003",
        "client_name": "Acme Corp",
        "source_platform": "csv",
        # Already looked up on a previous run
        "warranty_start_date": _days_from_today(-700),
        "warranty_end_date": _days_from_today(400),
        "warranty_fetched_at": 1735689600,
    },
    {
        "id": "dev-004",
        "serial_number": "",
        "manufacturer": "Dell",
        "model": "OptiPlex 7090",
        "hostname": "ACME-WS-004",
        "client_name": "Acme Corp",
        "source_platform": "datto",
    },
    {
        "id": "dev-005",
        "serial_number": "DL-9QW8E71",
        "manufacturer": "Dell",
        "model": "Precision 3560",
        "hostname": "ACME-WS-005",
        "client_name": "Acme Corp",
        "source_platform": "datto",
    },
    {
        "id": "dev-006",
        "serial_number": "HP-MXL0099ABC",
        "manufacturer": "Hewlett-Packard",
        "model": "ProDesk 600 G4",
        "hostname": "ACME-WS-006",
        "client_name": "Acme Corp",
        "source_platform": "ncentral",
    },
]

# Demo warranty data by serial number; serials not listed fail the lookup
DUMMY_WARRANTIES: Dict[str, Dict[str, str]] = {
    "DL-7XK2M93": {"start": _days_from_today(-300), "end": _days_from_today(795), "product": "Dell Latitude 5420"},
    "HP-5CG1234XYZ": {"start": _days_from_today(-1000), "end": _days_from_today(45), "product": "HP EliteBook 840 G8"},
    "HP-MXL0099ABC": {"start": _days_from_today(-1800), "end": _days_from_today(-700), "product": "HP ProDesk 600 G4"},
}


class DemoWarrantyBackend:
    """Deterministic single-device backend serving ``DUMMY_WARRANTIES``."""

    def __init__(self, store: InMemoryWarrantyStore, delay_seconds: float = 0.2):
        self.store = store
        self.delay_seconds = delay_seconds

    async def fetch_one(self, device: Device, credentials: ManufacturerCredentials) -> WarrantyRecord:
        await asyncio.sleep(self.delay_seconds)

        warranty = DUMMY_WARRANTIES.get(device.serial_number)
        if warranty is None:
            raise WarrantyLookupError(f"Warranty not found for {device.serial_number}")

        await self.store.update_device_warranty(device.serial_number, warranty["start"], warranty["end"])
        return device_to_record(device).model_copy(update={
            "start_date": warranty["start"],
            "end_date": warranty["end"],
            "product_description": warranty["product"],
            "from_cache": False,
        })


class DemoPlatformWriter:
    """Platform writer that accepts every update after a short delay."""

    def __init__(self, delay_seconds: float = 0.1):
        self.delay_seconds = delay_seconds

    async def write_warranty(self, device: Device, record: WarrantyRecord) -> None:
        await asyncio.sleep(self.delay_seconds)
        logger.info(
            f"Demo platform {device.source_platform.value}: device {device.id} warranty end {record.end_date}"
        )


def progress_printer(label: str):
    def print_progress(percent: int) -> None:
        filled = percent // 5
        print(f"\r  {label} progress: [{'#' * filled}{'.' * (20 - filled)}] {percent:3d}%", end="", flush=True)
        if percent == 100:
            print()
    return print_progress


def print_device_result(record: WarrantyRecord, index: int, total: int) -> None:
    outcome = "error" if record.error else ("cached" if record.from_cache else record.status.value)
    logger.info(f"[{index + 1}/{total}] {record.serial_number}: {outcome}")


async def run_demo(strategy: LookupStrategy, csv_path: str = None, write_back: bool = False) -> int:
    """Run the demo lookup and print the lifecycle report."""
    devices = [Device.model_validate(d) for d in DUMMY_DEVICES]
    store = InMemoryWarrantyStore(devices)
    backend = DemoWarrantyBackend(store)

    dispatcher = WarrantyLookupDispatcher(
        StaticCredentialProvider(),
        backend=backend,
        batch_backend=LocalBatchBackend(backend),
    )
    options = LookupOptions(
        skip_existing_for_lookup=config.lookup.skip_existing_for_lookup,
        on_progress=progress_printer("Lookup"),
        on_device_result=print_device_result,
    )

    print("\n" + "=" * 70)
    print(f"  WARRANTY LOOKUP - {len(devices)} devices ({strategy.value} strategy)")
    print("=" * 70)

    result = await dispatcher.lookup(devices, options=options, strategy=strategy)
    if not result.success:
        print(f"\nLookup failed: {result.error}")
        return 1

    records = result.results
    if write_back:
        written = await write_back_warranties(
            devices, records, DemoPlatformWriter(), store=store, on_progress=progress_printer("Write-back")
        )
        records = written.results
        print(f"  Wrote back {written.written} of {written.attempted} eligible devices")

    report = build_lifecycle_report(
        records,
        client_name="Acme Corp",
        expiring_days=config.report.expiring_soon_days,
        aging_months_threshold=config.report.aging_months_threshold,
    )
    print()
    print(LifecycleReportWriter().render(report))

    if csv_path:
        with open(csv_path, "w", encoding="utf-8", newline="") as f:
            rows = export_csv(records, f, devices=devices)
        print(f"\nExported {rows} rows to {csv_path}")

    return 0


async def main():
    """Main entry point."""
    log_buffer = LogBuffer(max_entries=config.log_buffer_size)
    setup_logging(config.log_level, log_buffer)

    strategy = LookupStrategy.SEQUENTIAL
    csv_path = None
    args = sys.argv[1:]

    if "--help" in args:
        print("Usage:")
        print("  python main.py                 - Sequential lookup with live progress")
        print("  python main.py --batch         - Batch lookup")
        print("  python main.py --csv <path>    - Also export results as CSV")
        print("  python main.py --write-back    - Write fresh results back to source platforms")
        print("  python main.py --help          - Show this help")
        return 0

    if "--batch" in args:
        strategy = LookupStrategy.BATCH
    write_back = "--write-back" in args
    if "--csv" in args:
        position = args.index("--csv")
        if position + 1 >= len(args):
            print("--csv requires a file path")
            return 2
        csv_path = args[position + 1]

    status = await run_demo(strategy, csv_path, write_back)
    logger.info(f"Demo finished with {len(log_buffer)} buffered log entries")
    return status


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
