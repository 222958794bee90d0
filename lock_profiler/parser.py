"""
parser.py

Read the text dump that the generated bpftrace program prints on exit and
build one RawLockRecord per distinct kernel stack.

The dump holds six sections (see records.SECTION_ORDER). Each map entry is
printed as:

    @aq_report_avg[
        mutex_lock+5
        kernfs_iop_permission+39
        inode_permission+66
    ]: 66842

The first frame is the lock routine itself, the second is the call site,
and the rest are further callers. A line starting with '=' closes a section.
"""
from typing import Dict, Iterable, Optional, TextIO, Tuple

from lock_profiler.errors import (
    CapacityExceededError,
    InputError,
    MalformedLineError,
    TruncatedInputError,
)
from lock_profiler.records import SECTION_ORDER, Metric, RawLockRecord

FILE_HEADER_LINES = 2
SECTION_HEADER_LINES = 2
MAX_LINE_LENGTH = 65536

RecordMap = Dict[Tuple[str, ...], RawLockRecord]


class LineReader:
    """Hand out dump lines one at a time, keeping track of line numbers."""

    def __init__(self, lines: Iterable[str], max_line_length: Optional[int] = MAX_LINE_LENGTH):
        self._lines = iter(lines)
        self.line_no = 0
        self.max_line_length = max_line_length

    def next_line(self, section: Optional[Metric] = None) -> str:
        try:
            line = next(self._lines)
        except StopIteration:
            where = f"section {section.name}" if section is not None else "header"
            raise TruncatedInputError(
                self.line_no, "", f"unexpected end of input in {where}"
            ) from None
        self.line_no += 1
        if self.max_line_length and len(line) > self.max_line_length:
            raise CapacityExceededError(
                self.line_no, line[:80], f"line longer than {self.max_line_length} characters"
            )
        return line

    def skip(self, count: int) -> None:
        for _ in range(count):
            self.next_line()

    def frame(self, line: str) -> str:
        """Return the frame text of a content line, which must be newline terminated."""
        if not line.endswith("\n"):
            raise MalformedLineError(self.line_no, line, "line is missing its terminator")
        return line.strip()


def _parse_value(reader: LineReader, line: str) -> int:
    # "]: 42" -> 42
    _, sep, value = line.partition(":")
    if not sep:
        raise MalformedLineError(reader.line_no, line, "group terminator has no ':'")
    try:
        return int(value.strip())
    except ValueError:
        raise MalformedLineError(
            reader.line_no, line, "group terminator value is not an integer"
        ) from None


def _record_sample(records: RecordMap, metric: Metric, stack, frames, value: int) -> None:
    stack = tuple(stack)
    record = records.get(stack)
    if record is None:
        record = RawLockRecord(stack=stack, frames=tuple(frames))
        records[stack] = record
    # a repeated stack is one more sample for this slot
    record.metrics[metric] += value


def ingest(reader: LineReader, metric: Metric, records: RecordMap, stack_depth: int = 1) -> RecordMap:
    """
    Consume one section body, up to and including its '=' line, adding every
    sample to ``records`` under ``metric``.
    """
    stack = None  # None while outside a group
    frames = []
    depth_limit = max(stack_depth, 1)

    while True:
        line = reader.next_line(metric)
        # end of section
        if line.startswith("="):
            break
        # empty map entry
        if "[]" in line:
            continue
        # start of a new stack
        if line.startswith("@"):
            stack = []
            frames = []
            continue

        text = reader.frame(line)
        if not text:
            continue
        if stack is None:
            raise MalformedLineError(reader.line_no, line, "stack frame outside of a group")

        if line.startswith("]"):
            if not stack:
                raise MalformedLineError(reader.line_no, line, "group has no stack")
            value = _parse_value(reader, line)
            _record_sample(records, metric, stack, frames, value)
            stack = None
            continue

        if not stack:
            # stack key seed (the lock routine), then the call site
            stack.append(text)
            line = reader.next_line(metric)
            if line.startswith(("]", "=", "@")):
                raise MalformedLineError(reader.line_no, line, "group has no call site")
            call_site = reader.frame(line)
            stack.append(call_site)
            frames.append(call_site)
            continue

        stack.append(text)
        if len(frames) < depth_limit:
            frames.append(text)

    return records


def read_lock_data(stream: TextIO, stack_depth: int = 1,
                   max_line_length: Optional[int] = MAX_LINE_LENGTH) -> RecordMap:
    """Parse a whole tracer dump from an open text stream."""
    reader = LineReader(stream, max_line_length=max_line_length)
    records: RecordMap = {}
    reader.skip(FILE_HEADER_LINES)
    for metric in SECTION_ORDER:
        reader.skip(SECTION_HEADER_LINES)
        ingest(reader, metric, records, stack_depth)
    return records


def load_lock_data(path: str, stack_depth: int = 1,
                   max_line_length: Optional[int] = MAX_LINE_LENGTH) -> RecordMap:
    """Open ``path`` and parse it, see read_lock_data."""
    try:
        f = open(path, "r", encoding="utf-8", errors="replace", newline="")
    except OSError as exc:
        raise InputError(f"cannot open {path}: {exc.strerror or exc}") from exc
    with f:
        return read_lock_data(f, stack_depth, max_line_length)
