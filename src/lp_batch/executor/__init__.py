"""Solver executor contract and implementations."""

from lp_batch.executor.base import (
    JobError,
    JobExecutionError,
    JobExecutor,
    JobInput,
    JobReadError,
    JobResult,
    TerminationReason,
)
from lp_batch.executor.command import CommandJobExecutor

__all__ = [
    "CommandJobExecutor",
    "JobError",
    "JobExecutionError",
    "JobExecutor",
    "JobInput",
    "JobReadError",
    "JobResult",
    "TerminationReason",
]
