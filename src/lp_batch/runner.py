"""Resumable, sequential batch execution over a manifest and a ledger."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any

from lp_batch import paths
from lp_batch.executor.base import (
    JobError,
    JobExecutionError,
    JobExecutor,
    JobInput,
    JobReadError,
    JobResult,
)
from lp_batch.ledger.codec import READ_ERROR, SOLVER_ERROR, blank_row, format_scientific
from lp_batch.ledger.completion import load_completed_jobs
from lp_batch.ledger.writer import LedgerWriter
from lp_batch.manifest import ManifestEntry, open_manifest

logger = logging.getLogger(__name__)

_DATASET = 0
_INSTANCE = 1
_TERMINATION_REASON = 2
_RUNTIME_SEC = 3
_ITERATIONS_COUNT = 4
_PRIMAL_OBJECTIVE = 5
_DUAL_OBJECTIVE = 6
_RELATIVE_PRIMAL_RESIDUAL = 7
_RELATIVE_DUAL_RESIDUAL = 8
_ABSOLUTE_OBJECTIVE_GAP = 9
_RELATIVE_OBJECTIVE_GAP = 10
_POLISHING_TIME_SEC = 11
_POLISHING_ITERATION_COUNT = 12


class ExitStatus(IntEnum):
    """Process exit codes for a batch run."""

    OK = 0
    SETUP_ERROR = 1
    JOBS_FAILED = 2


class JobOutcome(str, Enum):
    """What happened to one manifest entry."""

    SOLVED = "solved"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(slots=True)
class BatchSummary:
    """Counters for one run; never persisted."""

    solved: int = 0
    failed: int = 0
    skipped: int = 0
    dataset_root: str | None = None

    @property
    def attempted(self) -> int:
        return self.solved + self.failed

    @property
    def exit_status(self) -> ExitStatus:
        return ExitStatus.OK if self.failed == 0 else ExitStatus.JOBS_FAILED

    def record(self, outcome: JobOutcome) -> None:
        if outcome is JobOutcome.SOLVED:
            self.solved += 1
        elif outcome is JobOutcome.FAILED:
            self.failed += 1
        else:
            self.skipped += 1


def build_result_row(job_id: str, result: JobResult) -> list[str]:
    """Render a successful result as a full ledger row."""

    row = blank_row()
    row[_DATASET] = job_id
    row[_INSTANCE] = paths.instance_name(job_id)
    row[_TERMINATION_REASON] = result.termination_reason.value
    row[_RUNTIME_SEC] = format_scientific(result.runtime_sec)
    row[_ITERATIONS_COUNT] = str(result.iterations_count)
    row[_PRIMAL_OBJECTIVE] = format_scientific(result.primal_objective_value)
    row[_DUAL_OBJECTIVE] = format_scientific(result.dual_objective_value)
    row[_RELATIVE_PRIMAL_RESIDUAL] = format_scientific(result.relative_primal_residual)
    row[_RELATIVE_DUAL_RESIDUAL] = format_scientific(result.relative_dual_residual)
    row[_ABSOLUTE_OBJECTIVE_GAP] = format_scientific(result.absolute_objective_gap)
    row[_RELATIVE_OBJECTIVE_GAP] = format_scientific(result.relative_objective_gap)
    if result.polishing_ran:
        row[_POLISHING_TIME_SEC] = format_scientific(result.feasibility_polishing_time_sec)
        row[_POLISHING_ITERATION_COUNT] = str(result.feasibility_polishing_iteration_count)
    return row


def build_failure_row(job_id: str, sentinel: str) -> list[str]:
    """Render a failed attempt: identity columns plus the sentinel outcome."""

    row = blank_row()
    row[_DATASET] = job_id
    row[_INSTANCE] = paths.instance_name(job_id)
    row[_TERMINATION_REASON] = sentinel
    return row


class BatchRunner:
    """Executes every manifest job not yet recorded in the ledger, in order."""

    def __init__(
        self,
        *,
        executor: JobExecutor,
        parameters: Mapping[str, Any],
    ) -> None:
        self.executor = executor
        self.parameters = parameters

    def run(self, manifest_path: Path, ledger_path: Path) -> BatchSummary:
        """Run the batch; setup problems raise :class:`BatchSetupError`."""

        summary = BatchSummary()
        with open_manifest(manifest_path) as reader:
            completed = load_completed_jobs(ledger_path)
            with LedgerWriter(ledger_path) as writer:
                logger.info(
                    "Starting batch: manifest=%s ledger=%s already_recorded=%d new_ledger=%s",
                    manifest_path,
                    ledger_path,
                    len(completed),
                    "yes" if writer.header_written else "no",
                )
                for entry in reader:
                    if entry.job_id in completed:
                        logger.debug("Skipping already recorded job %s", entry.job_id)
                        summary.record(JobOutcome.SKIPPED)
                        continue
                    completed.add(entry.job_id)
                    summary.record(self._run_job(entry, writer))
            summary.dataset_root = reader.require_root()

        logger.info(
            "Batch complete: %d solved, %d failed, %d skipped",
            summary.solved,
            summary.failed,
            summary.skipped,
        )
        return summary

    def _run_job(self, entry: ManifestEntry, writer: LedgerWriter) -> JobOutcome:
        job_id = entry.job_id
        try:
            result = self._attempt(job_id)
        except JobReadError as error:
            logger.warning(
                "Failed to read MPS file at line %d: %s (%s)",
                entry.line_number,
                job_id,
                error,
            )
            writer.append(build_failure_row(job_id, READ_ERROR))
            return JobOutcome.FAILED
        except JobError as error:
            logger.warning(
                "Solver failed for dataset at line %d: %s (%s)",
                entry.line_number,
                job_id,
                error,
            )
            writer.append(build_failure_row(job_id, SOLVER_ERROR))
            return JobOutcome.FAILED

        writer.append(build_result_row(job_id, result))
        logger.info(
            "Solved %s: %s in %.3fs",
            job_id,
            result.termination_reason.value,
            result.runtime_sec,
        )
        return JobOutcome.SOLVED

    def _attempt(self, job_id: str) -> JobResult:
        try:
            job_input: JobInput = self.executor.open(job_id)
        except JobError:
            raise
        except Exception as error:  # noqa: BLE001
            logger.exception("Executor crashed while opening %s", job_id)
            raise JobReadError(f"Unexpected error opening {job_id}: {error}") from error

        try:
            return self.executor.execute(job_input, self.parameters)
        except JobError:
            raise
        except Exception as error:  # noqa: BLE001
            logger.exception("Executor crashed while solving %s", job_id)
            raise JobExecutionError(f"Unexpected error solving {job_id}: {error}") from error
        finally:
            job_input.close()


def run_batch(
    *,
    manifest_path: Path,
    ledger_path: Path,
    executor: JobExecutor,
    parameters: Mapping[str, Any],
) -> BatchSummary:
    """Run one resumable batch with provided dependencies."""

    return BatchRunner(executor=executor, parameters=parameters).run(manifest_path, ledger_path)
