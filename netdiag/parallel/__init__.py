"""
Bounded-parallel probe execution.
"""

from netdiag.parallel.executor import (
    ConcurrencyThrottler,
    Deadline,
    ParallelConfig,
    ParallelProbeExecutor,
    ResultAccumulator,
)

__all__ = [
    "ConcurrencyThrottler",
    "Deadline",
    "ParallelConfig",
    "ParallelProbeExecutor",
    "ResultAccumulator",
]
