"""
consolidate.py

Fold raw per-stack records into one record per call site.
"""
from typing import Dict, Iterable, List, Tuple

from lock_profiler.records import ConsolidatedRecord, Metric, RawLockRecord


def merge_average(avg: int, count: int, in_avg: int, in_count: int) -> Tuple[int, int]:
    """
    Weighted average of two (avg, count) pairs, truncated to an integer.
    Returns (new_avg, new_count); the average is unchanged when the combined
    count is zero.
    """
    total = count + in_count
    if total == 0:
        return avg, total
    return (avg * count + in_avg * in_count) // total, total


def fold(target: ConsolidatedRecord, raw: RawLockRecord) -> ConsolidatedRecord:
    """Merge one raw record into ``target`` in place."""
    target.acq_avg, target.acq_count = merge_average(
        target.acq_avg, target.acq_count, raw[Metric.ACQ_AVG], raw[Metric.ACQ_COUNT]
    )
    target.hold_avg, target.hold_count = merge_average(
        target.hold_avg, target.hold_count, raw[Metric.HOLD_AVG], raw[Metric.HOLD_COUNT]
    )
    target.acq_max = max(target.acq_max, raw[Metric.ACQ_MAX])
    target.hold_max = max(target.hold_max, raw[Metric.HOLD_MAX])
    return target


def consolidate(raw_records: Iterable[RawLockRecord]) -> List[ConsolidatedRecord]:
    """
    Group raw records by call site and merge each group.

    Records are folded in (called_from, stack) order so the truncated
    averages come out the same on every run.
    """
    merged: Dict[Tuple[str, ...], ConsolidatedRecord] = {}
    for raw in sorted(raw_records, key=lambda r: (r.called_from, r.stack)):
        entry = merged.get(raw.frames)
        if entry is None:
            entry = merged[raw.frames] = ConsolidatedRecord(frames=raw.frames)
        fold(entry, raw)
    return list(merged.values())
