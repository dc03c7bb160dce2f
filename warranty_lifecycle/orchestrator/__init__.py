"""Orchestrator Package - warranty lookup dispatch, result reconciliation and write-back."""

from .lookup import (
    LookupOptions,
    LookupStrategy,
    ProgressReporter,
    WarrantyLookupDispatcher,
    lookup_warranties_for_devices,
    sequential_progress,
    triage_device,
)
from .reconcile import MergeKey, reconcile
from .writeback import WriteBackResult, write_back_candidates, write_back_warranties

__all__ = [
    "LookupOptions",
    "LookupStrategy",
    "ProgressReporter",
    "WarrantyLookupDispatcher",
    "lookup_warranties_for_devices",
    "sequential_progress",
    "triage_device",
    "MergeKey",
    "reconcile",
    "WriteBackResult",
    "write_back_candidates",
    "write_back_warranties",
]
