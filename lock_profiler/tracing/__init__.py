"""
Collect lock samples by running bpftrace around a command.
"""

import os

from .runner import DEFAULT_SETTLE_SECS, run_traced
from .script import write_script

DEFAULT_BPFTRACE = "/usr/local/bin/bpftrace"
DEFAULT_SCRIPT = "/tmp/lock_tracker.bt"


def collect(command: str, data_file: str, script_path: str = None,
            bpftrace: str = None, settle: float = DEFAULT_SETTLE_SECS) -> int:
    """
    Write the tracer program and run ``command`` under it, leaving the
    tracer dump in ``data_file``. Paths not given come from the
    LOCK_PROFILER_SCRIPT / LOCK_PROFILER_BPFTRACE environment variables.
    """
    script_path = script_path or os.environ.get("LOCK_PROFILER_SCRIPT", DEFAULT_SCRIPT)
    bpftrace = bpftrace or os.environ.get("LOCK_PROFILER_BPFTRACE", DEFAULT_BPFTRACE)
    write_script(script_path, bpftrace)
    return run_traced(command, data_file, script_path, bpftrace=bpftrace, settle=settle)
