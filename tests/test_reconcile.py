"""
Tests for the Result Reconciler

Tests order restoration, gap filling and merge keys.
"""

from fakes import make_device
from warranty_lifecycle.models import MISSING_SERIAL, WarrantyRecord
from warranty_lifecycle.orchestrator import MergeKey, reconcile
from warranty_lifecycle.orchestrator.reconcile import NO_RESULT_MESSAGE, index_records


def _record(serial: str, end_date: str = "2030-01-01", source: str = "datto") -> WarrantyRecord:
    return WarrantyRecord(serial_number=serial, end_date=end_date, device_source=source)


class TestReconcile:
    """Tests for reconcile()."""

    def test_restores_device_order(self):
        devices = [make_device("A"), make_device("B"), make_device("C")]
        records = [_record("C"), _record("A"), _record("B")]

        ordered = reconcile(devices, records)

        assert [r.serial_number for r in ordered] == ["A", "B", "C"]

    def test_output_length_matches_devices(self):
        devices = [make_device("A"), make_device(None), make_device("C")]

        ordered = reconcile(devices, [_record("A"), _record("Z")])

        assert len(ordered) == 3

    def test_device_without_serial_gets_missing_serial_record(self):
        ordered = reconcile([make_device(None, model="OptiPlex 7090")], [])

        assert ordered[0].serial_number == MISSING_SERIAL
        assert ordered[0].error is True
        assert ordered[0].product_description == "OptiPlex 7090"

    def test_device_without_result_gets_error_record(self):
        ordered = reconcile([make_device("A"), make_device("B")], [_record("A")])

        assert ordered[0].error is False
        assert ordered[1].error is True
        assert ordered[1].error_message == NO_RESULT_MESSAGE
        assert ordered[1].serial_number == "B"

    def test_duplicate_serials_last_write_wins(self):
        devices = [make_device("A"), make_device("A")]
        records = [_record("A", end_date="2028-01-01"), _record("A", end_date="2029-01-01")]

        ordered = reconcile(devices, records)

        assert [r.end_date for r in ordered] == ["2029-01-01", "2029-01-01"]

    def test_source_serial_key_separates_platforms(self):
        devices = [
            make_device("A", source_platform="datto"),
            make_device("A", source_platform="ncentral"),
        ]
        records = [
            _record("A", end_date="2029-01-01", source="ncentral"),
            _record("A", end_date="2028-01-01", source="datto"),
        ]

        ordered = reconcile(devices, records, merge_key=MergeKey.SOURCE_SERIAL)

        assert [r.end_date for r in ordered] == ["2028-01-01", "2029-01-01"]

    def test_does_not_modify_inputs(self):
        records = [_record("B"), _record("A")]
        reconcile([make_device("A"), make_device("B")], records)
        assert [r.serial_number for r in records] == ["B", "A"]


class TestIndexRecords:
    """Tests for index_records()."""

    def test_serial_key(self):
        table = index_records([_record("A"), _record("B")])
        assert set(table) == {"A", "B"}

    def test_source_serial_key(self):
        table = index_records([_record("A", source="csv")], MergeKey.SOURCE_SERIAL)
        assert set(table) == {("csv", "A")}
