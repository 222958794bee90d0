"""
Reduce bpftrace mutex_lock samples into a ranked lock contention report.

Pipeline: parser (raw per-stack records) -> consolidate (per call site)
-> report (ranked table).
"""

__version__ = "0.1.0"
