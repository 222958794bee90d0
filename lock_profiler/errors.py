"""
Exceptions raised by the lock profiler pipeline.
"""


class LockProfilerError(Exception):
    """Base class for every error the pipeline raises."""


class MalformedLineError(LockProfilerError):
    """A tracer dump line is structurally broken."""

    def __init__(self, line_no: int, line: str, reason: str = "malformed line"):
        self.line_no = line_no
        self.line = line
        self.reason = reason
        super().__init__(f"{reason} at line {line_no}: {line.rstrip()!r}")


class TruncatedInputError(MalformedLineError):
    """The dump ended before the current section was closed."""


class CapacityExceededError(MalformedLineError):
    """A line is longer than the parser accepts."""


class InputError(LockProfilerError):
    """The tracer dump cannot be opened."""


class TracerError(LockProfilerError):
    """The tracer program is missing or could not be started."""
