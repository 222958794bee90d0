"""
bpftrace program that samples mutex_lock acquisition and hold times keyed
by kernel stack, and prints the six report maps when it exits.
"""

import os

from lock_profiler.records import SECTION_ORDER, Metric

BANNER = "=" * 40

# map printed for each section, with its header label
SECTION_MAPS = {
    Metric.ACQ_AVG: ("@aq_report_avg", "mutex aq _averages"),
    Metric.ACQ_MAX: ("@aq_report_max", "mutex aq max"),
    Metric.ACQ_COUNT: ("@aq_report_count", "mutex aq count"),
    Metric.HOLD_AVG: ("@hl_report_avg", "mutex hold avg"),
    Metric.HOLD_MAX: ("@hl_report_max", "mutex hold max"),
    Metric.HOLD_COUNT: ("@hl_report_count", "mutex hold count"),
}

# holds of a second or more are dropped as noise
MAX_HOLD_NS = 1_000_000_000

PROBES = """\
kprobe:mutex_lock
{
	@track[tid] = 1;
	@stack[tid, @lock_depth[tid]] = kstack();
	@time[tid] = nsecs;
	@lock_depth[tid] = @lock_depth[tid] + 1;
}
kretprobe:mutex_lock
	/ @track[tid] == 1 /
{
	$temp = nsecs;
	if ($temp > @time[tid]) {
		@aq_report_avg[@stack[tid, @lock_depth[tid] - 1]] = avg($temp - @time[tid]);
		@aq_report_max[@stack[tid, @lock_depth[tid] - 1]] = max($temp - @time[tid]);
		@aq_report_count[@stack[tid, @lock_depth[tid] - 1]] = count();
	}
	@time_held[tid, @lock_depth[tid] - 1] = nsecs;
	@track[tid] = 0;
}

kprobe:mutex_unlock
	/ @lock_depth[tid] > 0 /
{
	$temp = nsecs;
	@lock_depth[tid] = @lock_depth[tid] - 1;
	if ($temp > @time_held[tid, @lock_depth[tid]]) {
		$val = $temp - @time_held[tid, @lock_depth[tid]];
		if ($val < %(max_hold)d) {
			@hl_report_avg[@stack[tid, @lock_depth[tid]]] = avg($val);
			@hl_report_max[@stack[tid, @lock_depth[tid]]] = max($val);
			@hl_report_count[@stack[tid, @lock_depth[tid]]] = count();
		}
	}
	delete(@stack[tid, @lock_depth[tid]]);
	delete(@time_held[tid, @lock_depth[tid]]);
}
"""

CLEANUP_MAPS = ("@track", "@stack", "@time_held", "@time", "@lock_depth")


def _printf(text: str) -> str:
    return f'\tprintf("{text}\\n");\n'


def build_script(bpftrace: str = "/usr/local/bin/bpftrace") -> str:
    """Return the bpftrace program text."""
    parts = [f"#!{bpftrace}\n\n", PROBES % {"max_hold": MAX_HOLD_NS}, "\nEND\n{\n"]
    for metric in SECTION_ORDER:
        name, label = SECTION_MAPS[metric]
        parts.append(_printf(BANNER))
        parts.append(_printf(label))
        parts.append(_printf(BANNER))
        parts.append(f"\tprint({name});\n")
    parts.append(_printf(BANNER))
    parts.append(_printf("END OF DATA"))
    parts.append(_printf(BANNER))
    # cleared maps are not dumped again when bpftrace exits
    for name in CLEANUP_MAPS + tuple(name for name, _ in SECTION_MAPS.values()):
        parts.append(f"\tclear({name});\n")
    parts.append("}\n")
    return "".join(parts)


def write_script(path: str, bpftrace: str = "/usr/local/bin/bpftrace") -> str:
    """Write the program to ``path`` and make it executable."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w") as f:
        f.write(build_script(bpftrace))
    os.chmod(path, 0o755)
    return path
