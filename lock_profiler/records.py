"""
records.py

Record types shared by the parser, consolidation and report stages.
"""
import dataclasses
from enum import IntEnum
from typing import List, Tuple


class Metric(IntEnum):
    """Metric slots, in the order the tracer prints its sections."""
    ACQ_AVG = 0
    ACQ_MAX = 1
    ACQ_COUNT = 2
    HOLD_AVG = 3
    HOLD_MAX = 4
    HOLD_COUNT = 5


SECTION_ORDER = tuple(Metric)
FRAME_SEPARATOR = ":"


def _zero_metrics() -> List[int]:
    return [0] * len(Metric)


@dataclasses.dataclass
class RawLockRecord:
    """One distinct full call stack seen in the tracer dump."""
    stack: Tuple[str, ...]
    frames: Tuple[str, ...]
    metrics: List[int] = dataclasses.field(default_factory=_zero_metrics)

    @property
    def called_from(self) -> str:
        return FRAME_SEPARATOR.join(self.frames)

    def __getitem__(self, metric: Metric) -> int:
        return self.metrics[metric]


@dataclasses.dataclass
class ConsolidatedRecord:
    """Merged statistics for every stack sharing one call site."""
    frames: Tuple[str, ...]
    acq_avg: int = 0
    acq_max: int = 0
    acq_count: int = 0
    hold_avg: int = 0
    hold_max: int = 0
    hold_count: int = 0

    @property
    def called_from(self) -> str:
        return FRAME_SEPARATOR.join(self.frames)

    @property
    def caller(self) -> str:
        # leading frame up to its first blank, e.g. "kernfs_iop_permission+39"
        if not self.frames or not self.frames[0].split():
            return ""
        return self.frames[0].split()[0]

    @property
    def acq_total(self) -> int:
        return self.acq_avg * self.acq_count

    @property
    def hold_total(self) -> int:
        return self.hold_avg * self.hold_count
