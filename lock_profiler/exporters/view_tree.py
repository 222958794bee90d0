"""
view_tree.py

Render ranked call sites as a collapsible tree in your terminal using
Rich, with human-friendly time units. Each call site is a branch whose
children walk down the rest of its captured frames.
"""

from typing import Iterable

from rich import print
from rich.markup import escape
from rich.tree import Tree

from lock_profiler.records import ConsolidatedRecord


def format_time(ns: int) -> str:
    """Convert nanoseconds to a human-friendly string."""
    if ns >= 1_000_000_000:
        return f"{ns / 1_000_000_000:.2f}s"
    elif ns >= 1_000_000:
        return f"{ns / 1_000_000:.2f}ms"
    elif ns >= 1_000:
        return f"{ns / 1_000:.2f}μs"
    else:
        return f"{ns}ns"


def build_tree(rows: Iterable[ConsolidatedRecord]) -> Tree:
    rows = list(rows)
    total = sum(r.acq_total for r in rows)
    human_total = format_time(total)
    tree = Tree(f"[b]mutex_lock[/] • {human_total} acquiring (100%)")
    for record in rows:
        pct = record.acq_total / total * 100 if total else 0.0
        leading = escape(record.frames[0]) if record.frames else "?"
        branch = tree.add(
            f"[bold]{leading}[/] • acq {format_time(record.acq_total)} ({pct:.1f}%)"
            f" x{record.acq_count}, max {format_time(record.acq_max)}"
            f" • held {format_time(record.hold_total)} x{record.hold_count},"
            f" max {format_time(record.hold_max)}"
        )
        # deeper frames hang off the call site, one level each
        for frame in record.frames[1:]:
            branch = branch.add(escape(frame))
    return tree


def render(rows: Iterable[ConsolidatedRecord]) -> Tree:
    tree = build_tree(rows)
    print(tree)
    return tree
