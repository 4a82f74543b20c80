"""Controllers for batch CLI commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TypeVar

from lp_batch.config import Settings, SolverParameters
from lp_batch.errors import BatchSetupError
from lp_batch.executor.command import CommandJobExecutor
from lp_batch.ledger.completion import load_completed_jobs
from lp_batch.manifest import read_job_ids
from lp_batch.runner import ExitStatus, run_batch

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class BatchRunCommand:
    """CLI input for one batch run."""

    datasets_path: Path
    output_csv: Path
    verbose: bool = False
    debug: bool = False
    time_limit: float | None = None
    iter_limit: int | None = None
    eps_opt: float | None = None
    eps_feas: float | None = None
    eps_infeas_detect: float | None = None
    eps_feas_polish: float | None = None
    feasibility_polishing: bool = False
    l_inf_ruiz_iter: int | None = None
    pock_chambolle_alpha: float | None = None
    no_pock_chambolle: bool = False
    no_bound_obj_rescaling: bool = False
    sv_max_iter: int | None = None
    sv_tol: float | None = None
    eval_freq: int | None = None
    solver_command: str | None = None
    solver_timeout_seconds: float | None = None
    workdir: Path | None = None


@dataclass(slots=True)
class BatchPendingCommand:
    """CLI input for listing jobs a run would still attempt."""

    datasets_path: Path
    output_csv: Path


@dataclass(slots=True)
class BatchReport:
    """Lines to render plus the process exit status."""

    lines: list[str]
    exit_status: ExitStatus


class BatchCliController:
    """Coordinates batch command execution."""

    def run(self, command: BatchRunCommand) -> BatchReport:
        try:
            settings = _resolve_settings(command)
            settings.validate()
            executor = CommandJobExecutor(
                settings.executor.command_template,
                timeout_seconds=settings.executor.timeout_seconds,
                workdir=command.workdir,
            )
        except ValueError as error:
            return BatchReport(lines=[f"Error: {error}"], exit_status=ExitStatus.SETUP_ERROR)

        try:
            summary = run_batch(
                manifest_path=command.datasets_path,
                ledger_path=command.output_csv,
                executor=executor,
                parameters=settings.solver.to_dict(),
            )
        except BatchSetupError as error:
            logger.error("Batch aborted: %s", error)
            return BatchReport(lines=[str(error)], exit_status=ExitStatus.SETUP_ERROR)

        return BatchReport(
            lines=[
                f"Batch complete: {summary.solved} solved, "
                f"{summary.failed} failed, {summary.skipped} skipped.",
            ],
            exit_status=summary.exit_status,
        )

    def pending(self, command: BatchPendingCommand) -> BatchReport:
        try:
            job_ids = read_job_ids(command.datasets_path)
        except BatchSetupError as error:
            return BatchReport(lines=[str(error)], exit_status=ExitStatus.SETUP_ERROR)

        completed = load_completed_jobs(command.output_csv)
        pending: list[str] = []
        seen: set[str] = set()
        for job_id in job_ids:
            if job_id in completed or job_id in seen:
                continue
            seen.add(job_id)
            pending.append(job_id)

        lines = list(pending)
        lines.append(
            f"Pending: {len(pending)} of {len(job_ids)} manifest entries "
            f"({len(job_ids) - len(pending)} already recorded or repeated).",
        )
        return BatchReport(lines=lines, exit_status=ExitStatus.OK)


def _resolve_settings(command: BatchRunCommand) -> Settings:
    settings = Settings.from_env()
    return replace(
        settings,
        solver=_resolve_solver(settings.solver, command),
        executor=replace(
            settings.executor,
            command_template=(command.solver_command or settings.executor.command_template),
            timeout_seconds=(
                command.solver_timeout_seconds
                if command.solver_timeout_seconds is not None
                else settings.executor.timeout_seconds
            ),
        ),
    )


def _resolve_solver(base: SolverParameters, command: BatchRunCommand) -> SolverParameters:
    criteria = base.termination_criteria
    return replace(
        base,
        verbose=base.verbose or command.verbose,
        debug=base.debug or command.debug,
        termination_criteria=replace(
            criteria,
            time_sec_limit=_pick(command.time_limit, criteria.time_sec_limit),
            iteration_limit=_pick(command.iter_limit, criteria.iteration_limit),
            eps_optimal_relative=_pick(command.eps_opt, criteria.eps_optimal_relative),
            eps_feasible_relative=_pick(command.eps_feas, criteria.eps_feasible_relative),
            eps_infeasible=_pick(command.eps_infeas_detect, criteria.eps_infeasible),
            eps_feas_polish_relative=_pick(
                command.eps_feas_polish,
                criteria.eps_feas_polish_relative,
            ),
        ),
        feasibility_polishing=base.feasibility_polishing or command.feasibility_polishing,
        l_inf_ruiz_iterations=_pick(command.l_inf_ruiz_iter, base.l_inf_ruiz_iterations),
        pock_chambolle_alpha=_pick(command.pock_chambolle_alpha, base.pock_chambolle_alpha),
        has_pock_chambolle_alpha=base.has_pock_chambolle_alpha and not command.no_pock_chambolle,
        bound_objective_rescaling=(
            base.bound_objective_rescaling and not command.no_bound_obj_rescaling
        ),
        sv_max_iter=_pick(command.sv_max_iter, base.sv_max_iter),
        sv_tol=_pick(command.sv_tol, base.sv_tol),
        termination_evaluation_frequency=_pick(
            command.eval_freq,
            base.termination_evaluation_frequency,
        ),
    )


def _pick(override: T | None, default: T) -> T:
    return default if override is None else override
