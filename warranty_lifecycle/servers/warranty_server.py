"""
Warranty Lifecycle MCP Server - FastMCP HTTP

Exposes warranty lookups, platform write-back, lifecycle reports, status
classification and the recent log buffer as MCP tools.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from fastmcp import FastMCP
from pydantic import ValidationError

from ..backends import (
    EnvCredentialProvider,
    HTTPBatchBackend,
    ManufacturerAPIBackend,
    PlatformUpdateWriter,
    PlatformWriter,
    WarrantyAPIClient,
)
from ..compute.report import build_lifecycle_report
from ..compute.status import classify, parse_warranty_date
from ..config import LifecycleConfig, config
from ..models import Device, WarrantyRecord
from ..orchestrator import (
    LookupOptions,
    LookupStrategy,
    MergeKey,
    WarrantyLookupDispatcher,
    write_back_warranties,
)
from ..utils.log_buffer import LEVELS, LogBuffer, setup_logging
from ..utils.report_writer import LifecycleReportWriter


logger = logging.getLogger(__name__)


def _error(message: str, error_code: str) -> Dict[str, Any]:
    return {"status": "error", "error_code": error_code, "message": message}


class WarrantyToolService:
    """Tool implementations behind the MCP server."""

    def __init__(
        self,
        log_buffer: LogBuffer,
        settings: Optional[LifecycleConfig] = None,
        dispatcher_factory: Optional[Callable[[WarrantyAPIClient], WarrantyLookupDispatcher]] = None,
        writer_factory: Optional[Callable[[WarrantyAPIClient], PlatformWriter]] = None
    ):
        """
        Initialize the tool service.

        Args:
            log_buffer: Process log buffer served by ``recent_logs``
            settings: Configuration (defaults to the environment config)
            dispatcher_factory: Builds the dispatcher for a run from an API client
            writer_factory: Builds the platform writer for a write-back from an API client
        """
        self.log_buffer = log_buffer
        self.settings = settings or config
        self.dispatcher_factory = dispatcher_factory or self._default_dispatcher
        self.writer_factory = writer_factory or PlatformUpdateWriter

    def _default_dispatcher(self, client: WarrantyAPIClient) -> WarrantyLookupDispatcher:
        return WarrantyLookupDispatcher(
            EnvCredentialProvider(self.settings.credentials),
            backend=ManufacturerAPIBackend(client),
            batch_backend=HTTPBatchBackend(client),
        )

    def _client(self) -> WarrantyAPIClient:
        api = self.settings.api
        return WarrantyAPIClient(
            api_base_url=api.base_url,
            batch_url=api.get_batch_url(),
            platform_update_url=api.get_platform_update_url(),
            timeout_seconds=api.timeout_seconds,
        )

    async def lookup_warranties(
        self,
        devices: List[Dict[str, Any]],
        skip_existing_for_lookup: Optional[bool] = None,
        strategy: Optional[str] = None
    ) -> Dict[str, Any]:
        """Look up warranties for a list of devices.

        Returns one record per device, in the order the devices were given.
        Devices with fetched warranty data are skipped unless
        skip_existing_for_lookup is false. Strategy is "sequential" or "batch".
        """
        try:
            parsed = [Device.model_validate(d) for d in devices]
        except ValidationError as e:
            return _error(f"Invalid device payload: {e.error_count()} validation error(s)", "INVALID_DEVICE")

        lookup_settings = self.settings.lookup
        try:
            run_strategy = LookupStrategy((strategy or lookup_settings.strategy).lower())
            merge_key = MergeKey(lookup_settings.merge_key)
        except ValueError as e:
            return _error(str(e), "INVALID_OPTION")

        if skip_existing_for_lookup is None:
            skip_existing_for_lookup = lookup_settings.skip_existing_for_lookup

        options = LookupOptions(
            skip_existing_for_lookup=skip_existing_for_lookup,
            merge_key=merge_key,
        )

        async with self._client() as client:
            dispatcher = self.dispatcher_factory(client)
            result = await dispatcher.lookup(parsed, options=options, strategy=run_strategy)

        return {
            "status": "ok" if result.success else "error",
            "message": result.error,
            "data": result.model_dump(mode="json"),
        }

    async def write_back_warranties(
        self,
        devices: List[Dict[str, Any]],
        records: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Write fetched warranty dates back to each device's source platform.

        records are the lookup results, one per device in the same order.
        Only records fetched in this run are written; CSV devices are skipped.
        """
        try:
            parsed_devices = [Device.model_validate(d) for d in devices]
            parsed_records = [WarrantyRecord.model_validate(r) for r in records]
        except ValidationError as e:
            return _error(f"Invalid write-back payload: {e.error_count()} validation error(s)", "INVALID_PAYLOAD")

        if len(parsed_devices) != len(parsed_records):
            return _error("devices and records must have the same length", "LENGTH_MISMATCH")

        async with self._client() as client:
            result = await write_back_warranties(
                parsed_devices, parsed_records, self.writer_factory(client)
            )

        return {
            "status": "ok" if result.failed == 0 else "error",
            "message": result.message,
            "data": result.model_dump(mode="json"),
        }

    def lifecycle_report(
        self,
        records: List[Dict[str, Any]],
        client_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Build the warranty lifecycle report for a list of warranty records.

        Returns status counts, expiring-soon devices, health score and grade,
        insights and a printable text rendering.
        """
        try:
            parsed = [WarrantyRecord.model_validate(r) for r in records]
        except ValidationError as e:
            return _error(f"Invalid warranty record: {e.error_count()} validation error(s)", "INVALID_RECORD")

        report = build_lifecycle_report(
            parsed,
            client_name=client_name,
            expiring_days=self.settings.report.expiring_soon_days,
            aging_months_threshold=self.settings.report.aging_months_threshold,
        )
        data = report.model_dump(mode="json", exclude={"records"})
        data["text"] = LifecycleReportWriter().render(report)
        return {"status": "ok", "data": data}

    def warranty_status(self, end_date: Optional[str] = None) -> Dict[str, Any]:
        """Classify a warranty end date as active, expired or unknown."""
        parsed = parse_warranty_date(end_date)
        return {
            "status": "ok",
            "data": {
                "end_date": end_date,
                "parsed_end_date": parsed.isoformat() if parsed else None,
                "warranty_status": classify(end_date).value,
            },
        }

    def recent_logs(self, limit: int = 100, level: Optional[str] = None) -> Dict[str, Any]:
        """Get the most recent server log entries, optionally for one level."""
        if level is not None and level not in LEVELS:
            return _error(f"Unknown log level: {level}", "INVALID_LEVEL")

        entries = self.log_buffer.by_level(level, limit) if level else self.log_buffer.recent(limit)
        return {"status": "ok", "data": [entry.to_dict() for entry in entries]}


def create_server(service: WarrantyToolService) -> FastMCP:
    """Create the MCP server with every tool registered."""
    mcp = FastMCP(service.settings.server.name)
    mcp.tool(service.lookup_warranties)
    mcp.tool(service.write_back_warranties)
    mcp.tool(service.lifecycle_report)
    mcp.tool(service.warranty_status)
    mcp.tool(service.recent_logs)
    return mcp


def main() -> None:
    log_buffer = LogBuffer(max_entries=config.log_buffer_size)
    setup_logging(config.log_level, log_buffer)

    mcp = create_server(WarrantyToolService(log_buffer))
    logger.info(f"Starting warranty lifecycle MCP server on {config.server.get_url()}")
    mcp.run(transport="http", host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
