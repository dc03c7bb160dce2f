"""
Tests for the Warranty Lookup Dispatcher

Covers both strategies end to end through the dispatcher: ordering, skip
policy, fault isolation, progress reporting and run-level failures.
"""

import itertools

import pytest

from fakes import FailingProvider, RecordingBackend, ShuffledBatchBackend, StaticProvider, make_device
from warranty_lifecycle.backends import LocalBatchBackend
from warranty_lifecycle.errors import BatchLookupError
from warranty_lifecycle.models import MISSING_SERIAL, MISSING_SERIAL_MESSAGE, Device
from warranty_lifecycle.orchestrator import (
    LookupOptions,
    LookupStrategy,
    MergeKey,
    WarrantyLookupDispatcher,
    lookup_warranties_for_devices,
)
from warranty_lifecycle.orchestrator.lookup import (
    BATCH_MISSING_MESSAGE,
    NO_DEVICES_MESSAGE,
    ProgressReporter,
    sequential_progress,
    triage_device,
)


def _devices(count: int):
    return [make_device(f"SN-{i}", id=f"dev-{i}") for i in range(count)]


def _cached(serial: str) -> Device:
    return make_device(
        serial,
        warranty_start_date="2024-01-01",
        warranty_end_date="2027-01-01",
        warranty_fetched_at=1735689600,
    )


class TestTriage:
    """Tests for the per-device eligibility decision."""

    def test_missing_serial_wins_over_cache(self):
        device = make_device(None, warranty_fetched_at=1735689600)
        record = triage_device(device, skip_existing=True)
        assert record.error is True
        assert record.error_message == MISSING_SERIAL_MESSAGE

    def test_cached_device_is_skipped(self):
        record = triage_device(_cached("SN-1"), skip_existing=True)
        assert record.skipped is True
        assert record.from_cache is True
        assert record.end_date == "2027-01-01"
        assert record.last_updated == "2025-01-01T00:00:00+00:00"

    def test_cached_device_is_eligible_without_skip_policy(self):
        assert triage_device(_cached("SN-1"), skip_existing=False) is None

    def test_device_without_fetch_is_eligible(self):
        assert triage_device(make_device("SN-1"), skip_existing=True) is None


class TestProgress:
    """Tests for progress values."""

    def test_sequential_progress_formula(self):
        assert [sequential_progress(i, 4) for i in range(4)] == [29, 53, 76, 100]

    def test_reporter_drops_repeated_and_decreasing_values(self):
        seen = []
        reporter = ProgressReporter(seen.append)
        for value in [5, 5, 3, 50, 120, 100]:
            reporter.report(value)
        assert seen == [5, 50, 100]


class TestSequentialLookup:
    """Tests for the sequential strategy."""

    @pytest.mark.asyncio
    async def test_results_follow_input_order(self, provider):
        backend = RecordingBackend()
        devices = _devices(4)

        result = await WarrantyLookupDispatcher(provider, backend=backend).lookup(devices)

        assert result.success is True
        assert [r.serial_number for r in result.results] == ["SN-0", "SN-1", "SN-2", "SN-3"]
        assert backend.calls == ["SN-0", "SN-1", "SN-2", "SN-3"]
        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_progress_for_four_devices(self, provider):
        progress = []
        options = LookupOptions(on_progress=progress.append)

        await WarrantyLookupDispatcher(provider, backend=RecordingBackend()).lookup(_devices(4), options=options)

        assert progress == [5, 29, 53, 76, 100]

    @pytest.mark.asyncio
    async def test_progress_single_device_reports_hundred_once(self, provider):
        progress = []
        options = LookupOptions(on_progress=progress.append)

        await WarrantyLookupDispatcher(provider, backend=RecordingBackend()).lookup(_devices(1), options=options)

        assert progress == [5, 100]

    @pytest.mark.asyncio
    async def test_large_run_reports_each_percentage_once(self, provider):
        progress = []
        calls = []
        options = LookupOptions(
            on_progress=progress.append,
            on_device_result=lambda r, i, n: calls.append(i),
        )

        await WarrantyLookupDispatcher(provider, backend=RecordingBackend()).lookup(_devices(200), options=options)

        assert len(calls) == 200
        assert len(progress) <= 96
        assert progress == sorted(set(progress))
        assert progress[0] == 5 and progress[-1] == 100

    @pytest.mark.asyncio
    async def test_device_callback_in_order(self, provider):
        calls = []
        options = LookupOptions(on_device_result=lambda r, i, n: calls.append((r.serial_number, i, n)))

        await WarrantyLookupDispatcher(provider, backend=RecordingBackend()).lookup(_devices(3), options=options)

        assert calls == [("SN-0", 0, 3), ("SN-1", 1, 3), ("SN-2", 2, 3)]

    @pytest.mark.asyncio
    async def test_failing_device_does_not_abort_run(self, provider):
        backend = RecordingBackend(fail_serials=["SN-2"])

        result = await WarrantyLookupDispatcher(provider, backend=backend).lookup(_devices(5))

        assert result.success is True
        assert len(result.results) == 5
        assert [r.error for r in result.results] == [False, False, True, False, False]
        assert result.results[2].error_message == "Lookup failed for SN-2"
        assert result.results[2].serial_number == "SN-2"
        assert backend.calls == ["SN-0", "SN-1", "SN-2", "SN-3", "SN-4"]

    @pytest.mark.asyncio
    async def test_skip_policy_makes_no_backend_calls(self, provider):
        backend = RecordingBackend()
        devices = [_cached("SN-0"), _cached("SN-1")]

        result = await WarrantyLookupDispatcher(provider, backend=backend).lookup(devices)

        assert backend.calls == []
        assert all(r.skipped and r.from_cache for r in result.results)
        assert [r.end_date for r in result.results] == ["2027-01-01", "2027-01-01"]

    @pytest.mark.asyncio
    async def test_skip_policy_disabled_refetches(self, provider):
        backend = RecordingBackend(end_date="2031-01-01")
        options = LookupOptions(skip_existing_for_lookup=False)

        result = await WarrantyLookupDispatcher(provider, backend=backend).lookup([_cached("SN-0")], options=options)

        assert backend.calls == ["SN-0"]
        assert result.results[0].end_date == "2031-01-01"
        assert result.results[0].skipped is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("skip_existing", [True, False])
    async def test_missing_serial_never_reaches_backend(self, provider, skip_existing):
        backend = RecordingBackend()
        devices = [make_device(""), make_device("SN-1")]
        options = LookupOptions(skip_existing_for_lookup=skip_existing)

        result = await WarrantyLookupDispatcher(provider, backend=backend).lookup(devices, options=options)

        first = result.results[0]
        assert first.serial_number == MISSING_SERIAL
        assert first.error is True
        assert first.skipped is True
        assert first.error_message == MISSING_SERIAL_MESSAGE
        assert backend.calls == ["SN-1"]

    @pytest.mark.asyncio
    async def test_record_is_stamped_with_device_identity(self, provider):
        class EchoingBackend(RecordingBackend):
            async def fetch_one(self, device, credentials):
                record = await super().fetch_one(device, credentials)
                return record.model_copy(update={"serial_number": "WRONG", "is_loading_warranty": True})

        result = await WarrantyLookupDispatcher(provider, backend=EchoingBackend()).lookup(
            [make_device("SN-0", source_platform="ncentral")]
        )

        record = result.results[0]
        assert record.serial_number == "SN-0"
        assert record.device_source == "ncentral"
        assert record.is_loading_warranty is False

    @pytest.mark.asyncio
    async def test_stopping_iteration_stops_lookups(self, provider):
        backend = RecordingBackend()
        dispatcher = WarrantyLookupDispatcher(provider, backend=backend)

        seen = []
        async for index, record in dispatcher.iter_sequential(_devices(5), provider.credentials, LookupOptions()):
            seen.append(index)
            if index == 1:
                break

        assert seen == [0, 1]
        assert backend.calls == ["SN-0", "SN-1"]


class TestBatchLookup:
    """Tests for the batch strategy."""

    @pytest.mark.asyncio
    async def test_shuffled_response_is_reordered(self, provider):
        devices = _devices(4)
        for permutation in itertools.permutations(devices):
            batch = ShuffledBatchBackend()
            result = await WarrantyLookupDispatcher(provider, batch_backend=batch).lookup(
                list(permutation), strategy=LookupStrategy.BATCH
            )
            assert [r.serial_number for r in result.results] == [d.serial_number for d in permutation]

    @pytest.mark.asyncio
    async def test_only_eligible_devices_are_sent(self, provider):
        batch = ShuffledBatchBackend()
        devices = [_cached("SN-0"), make_device(None), make_device("SN-2"), make_device("SN-3")]

        result = await WarrantyLookupDispatcher(provider, batch_backend=batch).lookup(
            devices, strategy=LookupStrategy.BATCH
        )

        assert batch.calls == [["SN-2", "SN-3"]]
        assert result.results[0].skipped is True
        assert result.results[1].error_message == MISSING_SERIAL_MESSAGE
        assert [r.serial_number for r in result.results[2:]] == ["SN-2", "SN-3"]

    @pytest.mark.asyncio
    async def test_missing_batch_result_becomes_error_record(self, provider):
        batch = ShuffledBatchBackend(omit_serials=["SN-1"])

        result = await WarrantyLookupDispatcher(provider, batch_backend=batch).lookup(
            _devices(3), strategy=LookupStrategy.BATCH
        )

        assert result.success is True
        assert result.results[1].error is True
        assert result.results[1].error_message == BATCH_MISSING_MESSAGE
        assert result.results[1].serial_number == "SN-1"
        assert not result.results[0].error and not result.results[2].error

    @pytest.mark.asyncio
    async def test_source_serial_matches_records_without_source(self, provider):
        batch = ShuffledBatchBackend(with_source=False)
        options = LookupOptions(merge_key=MergeKey.SOURCE_SERIAL)

        result = await WarrantyLookupDispatcher(provider, batch_backend=batch).lookup(
            _devices(2), options=options, strategy=LookupStrategy.BATCH
        )

        assert result.success is True
        assert [r.error for r in result.results] == [False, False]
        assert [r.serial_number for r in result.results] == ["SN-0", "SN-1"]
        assert [r.device_source for r in result.results] == ["datto", "datto"]
        assert [r.end_date for r in result.results] == ["2030-01-01", "2030-01-01"]

    @pytest.mark.asyncio
    async def test_source_serial_keeps_same_serial_on_two_platforms(self, provider):
        devices = [
            make_device("SN-DUP", source_platform="datto"),
            make_device("SN-DUP", source_platform="ncentral"),
        ]
        options = LookupOptions(merge_key=MergeKey.SOURCE_SERIAL)

        for with_source in (True, False):
            batch = ShuffledBatchBackend(with_source=with_source)
            result = await WarrantyLookupDispatcher(provider, batch_backend=batch).lookup(
                devices, options=options, strategy=LookupStrategy.BATCH
            )

            assert [r.error for r in result.results] == [False, False]
            assert [r.device_source for r in result.results] == ["datto", "ncentral"]

    @pytest.mark.asyncio
    async def test_batch_progress_and_callbacks(self, provider):
        progress = []
        calls = []
        options = LookupOptions(
            on_progress=progress.append,
            on_device_result=lambda r, i, n: calls.append((r.serial_number, i, n)),
        )

        await WarrantyLookupDispatcher(provider, batch_backend=ShuffledBatchBackend()).lookup(
            _devices(3), options=options, strategy=LookupStrategy.BATCH
        )

        assert progress == [5, 50, 100]
        assert calls == [("SN-0", 0, 3), ("SN-1", 1, 3), ("SN-2", 2, 3)]

    @pytest.mark.asyncio
    async def test_rejected_batch_fails_the_run(self, provider):
        batch = ShuffledBatchBackend(error=BatchLookupError("Batch warranty fetch failed with status: 500", status=500))
        devices = [_cached("SN-0"), make_device("SN-1"), make_device("SN-2")]

        result = await WarrantyLookupDispatcher(provider, batch_backend=batch).lookup(
            devices, strategy=LookupStrategy.BATCH
        )

        assert result.success is False
        assert result.error == "Batch warranty fetch failed with status: 500"
        assert len(result.results) == 3
        assert result.results[0].skipped is True
        assert result.results[0].error is False
        assert all(r.error for r in result.results[1:])
        assert result.results[1].error_message == "Batch warranty fetch failed with status: 500"

    @pytest.mark.asyncio
    async def test_local_batch_backend_isolates_failures(self, provider):
        backend = RecordingBackend(fail_serials=["SN-1"])
        dispatcher = WarrantyLookupDispatcher(provider, batch_backend=LocalBatchBackend(backend))

        result = await dispatcher.lookup(_devices(3), strategy=LookupStrategy.BATCH)

        assert result.success is True
        assert [r.error for r in result.results] == [False, True, False]
        assert result.results[1].error_message == "Lookup failed for SN-1"


class TestRunFailures:
    """Tests for failures that end the whole run."""

    @pytest.mark.asyncio
    async def test_empty_device_list(self, provider):
        result = await WarrantyLookupDispatcher(provider, backend=RecordingBackend()).lookup([])

        assert result.success is False
        assert result.error == NO_DEVICES_MESSAGE
        assert result.results == []

    @pytest.mark.asyncio
    async def test_credential_failure(self):
        backend = RecordingBackend()
        progress = []
        devices = [make_device("SN-0"), _cached("SN-1"), make_device(None)]

        result = await WarrantyLookupDispatcher(FailingProvider(), backend=backend).lookup(
            devices, options=LookupOptions(on_progress=progress.append)
        )

        assert result.success is False
        assert result.error.startswith("Failed to retrieve manufacturer credentials")
        assert "credential store offline" in result.error
        assert backend.calls == []
        assert progress == []
        assert result.results[0].error is True
        assert result.results[1].skipped is True and result.results[1].error is False
        assert result.results[2].error_message == MISSING_SERIAL_MESSAGE

    @pytest.mark.asyncio
    async def test_exception_in_callback_keeps_answered_records(self, provider):
        def explode(record, index, total):
            if index == 1:
                raise RuntimeError("display crashed")

        backend = RecordingBackend()
        result = await WarrantyLookupDispatcher(provider, backend=backend).lookup(
            _devices(4), options=LookupOptions(on_device_result=explode)
        )

        assert result.success is False
        assert result.error == "display crashed"
        assert [r.error for r in result.results] == [False, False, True, True]
        assert result.results[2].error_message == "display crashed"
        assert backend.calls == ["SN-0", "SN-1"]

    @pytest.mark.asyncio
    async def test_missing_backend_fails_the_run(self, provider):
        result = await WarrantyLookupDispatcher(provider).lookup(_devices(2))

        assert result.success is False
        assert result.error == "No warranty backend configured"
        assert len(result.results) == 2


class TestConvenienceWrapper:
    """Tests for lookup_warranties_for_devices()."""

    @pytest.mark.asyncio
    async def test_runs_a_single_lookup(self):
        result = await lookup_warranties_for_devices(
            _devices(2),
            StaticProvider(),
            batch_backend=ShuffledBatchBackend(),
            strategy=LookupStrategy.BATCH,
        )

        assert result.success is True
        assert [r.serial_number for r in result.results] == ["SN-0", "SN-1"]
