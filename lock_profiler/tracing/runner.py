"""
Run the tracer around a profiled command.

The tracer's stdout goes to the data file while the command keeps its own
stdout, so the two outputs never mix. The tracer is stopped with SIGINT
once the command finishes, which makes bpftrace run its END block.
"""

import signal
import subprocess
import time

from lock_profiler.errors import TracerError

DEFAULT_SETTLE_SECS = 5.0


def run_traced(command: str, data_file: str, script_path: str,
               bpftrace: str = "/usr/local/bin/bpftrace",
               settle: float = DEFAULT_SETTLE_SECS) -> int:
    """
    Start the tracer, give its probes ``settle`` seconds to attach, run
    ``command`` through the shell and stop the tracer. Returns the
    command's exit status.
    """
    try:
        out = open(data_file, "w")
    except OSError as exc:
        raise TracerError(f"cannot write {data_file}: {exc.strerror or exc}") from exc

    with out:
        try:
            tracer = subprocess.Popen([bpftrace, script_path], stdout=out)
        except OSError as exc:
            raise TracerError(f"cannot start {bpftrace}: {exc.strerror or exc}") from exc

        try:
            time.sleep(settle)
            if tracer.poll() is not None:
                raise TracerError(f"{bpftrace} exited early with status {tracer.returncode}")
            result = subprocess.run(command, shell=True)
        finally:
            if tracer.poll() is None:
                tracer.send_signal(signal.SIGINT)
            # bpftrace prints the maps from END before it exits
            tracer.wait()
    return result.returncode
