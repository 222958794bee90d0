#!/usr/bin/env python3
"""
cli.py

Command-line interface: optionally trace a command with bpftrace, then
reduce the tracer dump into a ranked mutex contention report.
"""
import click

from lock_profiler import tracing
from lock_profiler.consolidate import consolidate
from lock_profiler.errors import LockProfilerError
from lock_profiler.exporters import view_tree
from lock_profiler.parser import load_lock_data
from lock_profiler.report import DEFAULT_SORT_MODE, SORT_MODES, open_output, rank, report

DEFAULT_DATA_FILE = "/tmp/lock_data.out"


def _sort_help():
    lines = [f"{mode}: {sort.label}" for mode, sort in SORT_MODES.items()]
    return "Sort key: " + ", ".join(lines) + "."


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-f", "--file", "data_file", default=DEFAULT_DATA_FILE, show_default=True,
              envvar="LOCK_PROFILER_DATA_FILE", help="bpftrace data file to read (and write with -c).")
@click.option("-o", "--output", default=None, help="Write the report here instead of stdout.")
@click.option("-c", "--command", default=None,
              help="Command to profile. Without it, only the data file is reduced.")
@click.option("-s", "--stack-depth", type=click.IntRange(min=1), default=1, show_default=True,
              help="Frames of the stack used to identify a caller.")
@click.option("-n", "--number", "top_n", type=click.IntRange(min=0), default=None,
              help="Number of callers to show.")
@click.option("-S", "--sort", "sort_mode", type=int, default=DEFAULT_SORT_MODE,
              show_default=True, help=_sort_help())
@click.option("-C", "--caller", default=None,
              help="Only show callers whose leading frame is exactly this.")
@click.option("--tree", is_flag=True, help="Show a tree in the terminal instead of the table.")
@click.option("-v", "--verbose", is_flag=True, help="Print progress to stderr.")
@click.option("--bpftrace", default=tracing.DEFAULT_BPFTRACE, show_default=True,
              envvar="LOCK_PROFILER_BPFTRACE", help="bpftrace executable.")
@click.option("--script", "script_path", default=tracing.DEFAULT_SCRIPT, show_default=True,
              envvar="LOCK_PROFILER_SCRIPT", help="Where to write the generated bpftrace program.")
def main(data_file, output, command, stack_depth, top_n, sort_mode, caller, tree,
         verbose, bpftrace, script_path):
    """
    Report which kernel call paths spend the most time acquiring and
    holding mutexes.
    """
    if sort_mode not in SORT_MODES:
        click.echo(f"warning: invalid sort option {sort_mode}, "
                   f"defaulting to option {DEFAULT_SORT_MODE}", err=True)
        sort_mode = DEFAULT_SORT_MODE

    try:
        if command:
            if verbose:
                click.echo(f"tracing {command!r} into {data_file}", err=True)
            status = tracing.collect(command, data_file, script_path=script_path, bpftrace=bpftrace)
            if verbose:
                click.echo(f"command exited with status {status}", err=True)

        raw = load_lock_data(data_file, stack_depth)
    except LockProfilerError as exc:
        click.echo(f"error: {exc}", err=True)
        raise SystemExit(1)
    if verbose:
        click.echo(f"read {len(raw)} unique stacks from {data_file}", err=True)

    records = consolidate(raw.values())
    if verbose:
        click.echo(f"consolidated into {len(records)} callers", err=True)

    if tree:
        rows = rank(records, sort_mode, top_n, caller)
        view_tree.render(rows)
    else:
        with open_output(output) as sink:
            rows = report(records, sort_mode, top_n, caller, sink)
    if verbose:
        click.echo(f"showed {len(rows)} callers", err=True)


if __name__ == "__main__":
    main()
