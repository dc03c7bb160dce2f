"""
Lifecycle Report Writer

Renders a ``LifecycleReport`` as a plain-text document (for print or
e-mail) and exports warranty records as CSV.
"""

import csv
from typing import IO, List, Optional, Sequence

from ..compute.report import LifecycleReport
from ..compute.status import classify
from ..models import Device, WarrantyRecord
from .dates import format_relative_time, format_warranty_date


WIDTH = 90

CSV_COLUMNS = [
    "Device Name",
    "Serial Number",
    "Client Name",
    "Manufacturer",
    "Status",
    "Start Date",
    "End Date",
    "Product",
    "Source",
    "Last Updated",
    "Error Status",
    "Write Back",
]

INSIGHT_MARKERS = {
    "warning": "[!]",
    "success": "[+]",
    "info": "[i]",
}


class LifecycleReportWriter:
    """Generates formatted lifecycle reports."""

    def __init__(self, width: int = WIDTH):
        self.width = width

    def render(self, report: LifecycleReport) -> str:
        """Render the full report as text."""
        lines = []
        lines.extend(self._format_header(report))
        lines.extend(self._format_summary(report))
        lines.extend(self._format_insights(report))
        lines.extend(self._format_expiring(report))
        lines.extend(self._format_devices(report))

        lines.append("=" * self.width)
        lines.append("END OF REPORT")
        lines.append("=" * self.width)
        return "\n".join(lines)

    def write(self, report: LifecycleReport, output_path: str) -> None:
        """Render the report and write it to a file."""
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self.render(report))

    def _format_header(self, report: LifecycleReport) -> List[str]:
        lines = []
        lines.append("=" * self.width)
        lines.append("HARDWARE WARRANTY LIFECYCLE REPORT")
        lines.append("=" * self.width)
        lines.append(f"Client:    {report.client_name or 'All Clients'}")
        lines.append(f"Generated: {report.generated_at.strftime('%Y-%m-%d %H:%M:%S %Z')}")
        lines.append(f"Devices:   {report.stats.total}")
        lines.append("")
        return lines

    def _format_summary(self, report: LifecycleReport) -> List[str]:
        stats = report.stats
        health = report.health
        lines = []
        lines.append("-" * self.width)
        lines.append("WARRANTY SUMMARY")
        lines.append("-" * self.width)
        lines.append(f"Health Score:  {health.score}/100 ({health.grade})")
        lines.append(f"Active:        {stats.active}{self._share(report, 'active')}")
        lines.append(f"Expired:       {stats.expired}{self._share(report, 'expired')}")
        lines.append(f"Unknown:       {stats.unknown}{self._share(report, 'unknown')}")
        lines.append(f"Expiring Soon: {len(report.expiring_soon)} (next 90 days)")
        lines.append("")
        return lines

    @staticmethod
    def _share(report: LifecycleReport, status: str) -> str:
        if status not in report.distribution:
            return ""
        return f" ({report.distribution[status]}%)"

    def _format_insights(self, report: LifecycleReport) -> List[str]:
        lines = []
        lines.append("-" * self.width)
        lines.append("INSIGHTS")
        lines.append("-" * self.width)
        if not report.insights:
            lines.append("  (none)")
        for insight in report.insights:
            marker = INSIGHT_MARKERS.get(insight.type.value, "[-]")
            wrapped = self._wrap_text(insight.message, self.width - 6)
            lines.append(f"  {marker} {wrapped[0]}")
            for line in wrapped[1:]:
                lines.append(f"      {line}")
        lines.append("")
        return lines

    def _format_expiring(self, report: LifecycleReport) -> List[str]:
        lines = []
        lines.append("-" * self.width)
        lines.append("EXPIRING IN THE NEXT 90 DAYS")
        lines.append("-" * self.width)
        if not report.expiring_soon:
            lines.append("  (none)")
        for record in report.expiring_soon:
            lines.append(
                f"  {record.serial_number:<20} {self._manufacturer(record):<10} "
                f"ends {format_warranty_date(record.end_date)}"
            )
        lines.append("")
        return lines

    def _format_devices(self, report: LifecycleReport) -> List[str]:
        lines = []
        lines.append("-" * self.width)
        lines.append("DEVICES")
        lines.append("-" * self.width)
        lines.append(
            f"  {'Serial':<20} {'Make':<10} {'Status':<8} {'Start':<10} {'End':<10} Notes"
        )
        for record in report.records:
            status = classify(record.end_date, now=report.generated_at).value
            lines.append(
                f"  {record.serial_number:<20} {self._manufacturer(record):<10} {status:<8} "
                f"{format_warranty_date(record.start_date):<10} "
                f"{format_warranty_date(record.end_date):<10} {self._notes(record, report)}"
            )
        lines.append("")
        return lines

    @staticmethod
    def _manufacturer(record: WarrantyRecord) -> str:
        return record.manufacturer.value if record.manufacturer else "unknown"

    @staticmethod
    def _notes(record: WarrantyRecord, report: LifecycleReport) -> str:
        if record.error:
            return f"Error: {record.error_message or 'lookup failed'}"
        if record.from_cache:
            updated = format_relative_time(record.last_updated, now=report.generated_at)
            return f"Cached ({updated})"
        return ""

    def _wrap_text(self, text: str, width: int) -> List[str]:
        """Wrap text to a maximum width."""
        if not text:
            return ["(empty)"]

        lines = []
        current_line: List[str] = []
        current_length = 0
        for word in text.split():
            if current_line and current_length + len(word) + 1 > width:
                lines.append(" ".join(current_line))
                current_line = []
                current_length = 0
            current_line.append(word)
            current_length += len(word) + 1
        if current_line:
            lines.append(" ".join(current_line))
        return lines


def _error_status(record: WarrantyRecord) -> str:
    if record.error:
        return f"Error: {record.error_message}" if record.error_message else "Error"
    if not record.error_message:
        return "None"
    return "Success"


def _write_back_status(record: WarrantyRecord) -> str:
    if record.skipped:
        return "Skipped"
    if record.written_back:
        return "Success"
    return "Not Written"


def export_csv(
    records: Sequence[WarrantyRecord],
    stream: IO[str],
    devices: Optional[Sequence[Device]] = None
) -> int:
    """
    Write records as CSV.

    Args:
        records: Reconciled records, in device order
        stream: Text stream to write to
        devices: The devices the records were looked up for, same order; used
            for device and client names

    Returns:
        Number of data rows written
    """
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)

    for index, record in enumerate(records):
        device = devices[index] if devices and index < len(devices) else None
        row = [
            (device.hostname if device else None) or "Unknown Device",
            record.serial_number,
            device.client_name if device else "",
            record.manufacturer.value if record.manufacturer else "",
            classify(record.end_date).value,
            record.start_date,
            record.end_date,
            record.product_description,
            record.device_source,
            record.last_updated,
            _error_status(record),
            _write_back_status(record),
        ]
        # Commas become spaces
        writer.writerow([str(value or "").replace(",", " ") for value in row])

    return len(records)
