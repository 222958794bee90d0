"""
report.py

Rank consolidated call sites and print the fixed-width contention table:

                                          caller        # holds  Hold Max (ns) ...
                        kernfs_iop_permission+39          67713        3312432 ...
"""
import sys
from contextlib import contextmanager
from operator import attrgetter
from typing import Iterable, List, NamedTuple, Optional, TextIO

import click

from lock_profiler.records import ConsolidatedRecord

CALLER_WIDTH = 48
COLUMN_WIDTH = 15
HEADER = ("caller", "# holds", "Hold Max (ns)", "Hold Avg (ns)",
          "# ACQs", "ACQs Max (ns)", "ACQs Avg (ns)")


class SortMode(NamedTuple):
    label: str
    field: str


SORT_MODES = {
    0: SortMode("# holds", "hold_count"),
    1: SortMode("hold max", "hold_max"),
    2: SortMode("hold average", "hold_avg"),
    3: SortMode("hold total (avg * count)", "hold_total"),
    4: SortMode("# ACQs", "acq_count"),
    5: SortMode("ACQs max", "acq_max"),
    6: SortMode("ACQs average", "acq_avg"),
    7: SortMode("ACQs total time (avg * count)", "acq_total"),
}
DEFAULT_SORT_MODE = 7


def rank(records: Iterable[ConsolidatedRecord], sort_mode: int = DEFAULT_SORT_MODE,
         top_n: Optional[int] = None, caller: Optional[str] = None) -> List[ConsolidatedRecord]:
    """
    Sort records descending on the ``sort_mode`` key, keep the first
    ``top_n`` and then drop rows whose leading frame is not ``caller``.

    The caller filter runs after truncation, so fewer than ``top_n`` rows
    may come back even when more matching call sites exist.
    """
    if sort_mode not in SORT_MODES:
        raise ValueError(f"unknown sort mode {sort_mode!r}, expected 0-7")
    rows = sorted(records, key=attrgetter(SORT_MODES[sort_mode].field), reverse=True)
    if top_n is not None:
        rows = rows[:max(top_n, 0)]
    if caller is not None:
        rows = [r for r in rows if r.caller == caller]
    return rows


def format_header() -> str:
    return HEADER[0].rjust(CALLER_WIDTH) + "".join(h.rjust(COLUMN_WIDTH) for h in HEADER[1:])


def format_row(record: ConsolidatedRecord) -> List[str]:
    """The data line for ``record`` followed by one line per extra frame."""
    values = (record.hold_count, record.hold_max, record.hold_avg,
              record.acq_count, record.acq_max, record.acq_avg)
    leading = record.frames[0] if record.frames else ""
    lines = [leading.rjust(CALLER_WIDTH) + "".join(str(v).rjust(COLUMN_WIDTH) for v in values)]
    lines.extend(frame.rjust(CALLER_WIDTH) for frame in record.frames[1:])
    return lines


def render_table(rows: Iterable[ConsolidatedRecord], sink: TextIO) -> None:
    sink.write(format_header() + "\n")
    for record in rows:
        for line in format_row(record):
            sink.write(line + "\n")


def report(records: Iterable[ConsolidatedRecord], sort_mode: int = DEFAULT_SORT_MODE,
           top_n: Optional[int] = None, caller: Optional[str] = None,
           sink: Optional[TextIO] = None) -> List[ConsolidatedRecord]:
    """Rank ``records`` and write the table to ``sink`` (stdout by default)."""
    rows = rank(records, sort_mode, top_n, caller)
    render_table(rows, sink if sink is not None else sys.stdout)
    return rows


@contextmanager
def open_output(path: Optional[str] = None):
    """
    Yield a writable stream for the report. When ``path`` cannot be opened
    a warning goes to stderr and stdout is used instead.
    """
    if not path:
        yield sys.stdout
        return
    try:
        f = open(path, "w", encoding="utf-8")
    except OSError as exc:
        click.echo(f"warning: opening {path} failed ({exc.strerror or exc}), "
                   "falling back to stdout", err=True)
        yield sys.stdout
        return
    with f:
        yield f
