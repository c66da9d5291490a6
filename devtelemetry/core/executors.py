# devtelemetry/core/executors.py
"""
Thread pools used by the service.

Tailing is blocking file I/O, so per-file work fans out to a small bounded
pool. The pool is created at application startup and shut down at shutdown.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor


def create_tail_executor(max_workers: int) -> ThreadPoolExecutor:
    """Bounded pool for per-file tail + parse work."""
    return ThreadPoolExecutor(max_workers=max(1, int(max_workers)), thread_name_prefix="tail")
