"""Runtime configuration for batch solves."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from typing import Any

DEFAULT_ITERATION_LIMIT = 2_147_483_647


@dataclass(slots=True)
class TerminationCriteria:
    """Solver stopping rules."""

    time_sec_limit: float = 3600.0
    iteration_limit: int = DEFAULT_ITERATION_LIMIT
    eps_optimal_relative: float = 1e-4
    eps_feasible_relative: float = 1e-4
    eps_infeasible: float = 1e-10
    eps_feas_polish_relative: float = 1e-6


@dataclass(slots=True)
class SolverParameters:
    """Options passed through unchanged to the solver backend."""

    verbose: bool = False
    debug: bool = False
    termination_criteria: TerminationCriteria = field(default_factory=TerminationCriteria)
    l_inf_ruiz_iterations: int = 10
    has_pock_chambolle_alpha: bool = True
    pock_chambolle_alpha: float = 1.0
    bound_objective_rescaling: bool = True
    termination_evaluation_frequency: int = 200
    sv_max_iter: int = 5000
    sv_tol: float = 1e-4
    feasibility_polishing: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class ExecutorSettings:
    """How solver processes are launched."""

    command_template: str = ""
    timeout_seconds: float | None = None


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    solver: SolverParameters = field(default_factory=SolverParameters)
    executor: ExecutorSettings = field(default_factory=ExecutorSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from ``LP_BATCH_*`` environment variables."""

        timeout_raw = os.getenv("LP_BATCH_SOLVER_TIMEOUT_SECONDS", "").strip()
        return cls(
            solver=SolverParameters(
                termination_criteria=TerminationCriteria(
                    time_sec_limit=float(os.getenv("LP_BATCH_TIME_LIMIT", "3600.0")),
                    iteration_limit=int(
                        os.getenv("LP_BATCH_ITER_LIMIT", str(DEFAULT_ITERATION_LIMIT)),
                    ),
                ),
                feasibility_polishing=_env_bool(
                    "LP_BATCH_FEASIBILITY_POLISHING",
                    default=False,
                ),
            ),
            executor=ExecutorSettings(
                command_template=os.getenv("LP_BATCH_SOLVER_COMMAND", "").strip(),
                timeout_seconds=float(timeout_raw) if timeout_raw else None,
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if any option is out of range."""

        criteria = self.solver.termination_criteria
        if criteria.time_sec_limit <= 0:
            raise ValueError("--time_limit must be > 0.")
        if criteria.iteration_limit <= 0:
            raise ValueError("--iter_limit must be > 0.")
        for name, value in (
            ("--eps_opt", criteria.eps_optimal_relative),
            ("--eps_feas", criteria.eps_feasible_relative),
            ("--eps_infeas_detect", criteria.eps_infeasible),
            ("--eps_feas_polish", criteria.eps_feas_polish_relative),
            ("--sv_tol", self.solver.sv_tol),
        ):
            if value <= 0:
                raise ValueError(f"{name} must be > 0.")
        if self.solver.l_inf_ruiz_iterations < 0:
            raise ValueError("--l_inf_ruiz_iter must be >= 0.")
        if self.solver.termination_evaluation_frequency <= 0:
            raise ValueError("--eval_freq must be > 0.")
        if self.solver.sv_max_iter <= 0:
            raise ValueError("--sv_max_iter must be > 0.")
        if not self.executor.command_template:
            raise ValueError(
                "A solver command is required. "
                "Set LP_BATCH_SOLVER_COMMAND or pass --solver-command.",
            )
        if self.executor.timeout_seconds is not None and self.executor.timeout_seconds <= 0:
            raise ValueError("LP_BATCH_SOLVER_TIMEOUT_SECONDS must be > 0.")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
