"""Contract between the batch runner and a per-job solver backend."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Protocol


class TerminationReason(str, Enum):
    """Solver termination labels written to the ledger."""

    OPTIMAL = "OPTIMAL"
    PRIMAL_INFEASIBLE = "PRIMAL_INFEASIBLE"
    DUAL_INFEASIBLE = "DUAL_INFEASIBLE"
    TIME_LIMIT = "TIME_LIMIT"
    ITERATION_LIMIT = "ITERATION_LIMIT"
    FEAS_POLISH_SUCCESS = "FEAS_POLISH_SUCCESS"
    UNSPECIFIED = "UNSPECIFIED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: object) -> TerminationReason:
        """Map a raw label to a known reason; anything else becomes UNKNOWN."""

        if isinstance(value, TerminationReason):
            return value
        normalized = str(value).strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            return cls.UNKNOWN


@dataclass(slots=True)
class JobError(Exception):
    """Base per-job failure; recorded in the ledger, never fatal to the batch."""

    message: str
    code: str = "job_error"

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class JobReadError(JobError):
    """Job input could not be loaded."""

    code: str = "read_error"


@dataclass(slots=True)
class JobExecutionError(JobError):
    """Solver started but did not produce a result."""

    code: str = "solver_error"


@dataclass(slots=True)
class JobInput:
    """Loaded job handed from ``open`` to ``execute``."""

    job_id: str
    path: Path
    payload: Any = None
    release: Callable[[], None] | None = None

    def close(self) -> None:
        """Release any backend resources tied to this input."""

        if self.release is not None:
            self.release()
            self.release = None


@dataclass(slots=True)
class JobResult:
    """Structured solver outcome serialized verbatim into the ledger."""

    termination_reason: TerminationReason
    runtime_sec: float
    iterations_count: int
    primal_objective_value: float
    dual_objective_value: float
    relative_primal_residual: float
    relative_dual_residual: float
    absolute_objective_gap: float
    relative_objective_gap: float
    feasibility_polishing_time_sec: float = 0.0
    feasibility_polishing_iteration_count: int = 0

    @property
    def polishing_ran(self) -> bool:
        return self.feasibility_polishing_time_sec > 0.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> JobResult:
        """Build a result from a decoded JSON object, validating field types."""

        values: dict[str, Any] = {}
        for result_field in fields(cls):
            name = result_field.name
            if name not in raw:
                if name.startswith("feasibility_polishing_"):
                    continue
                raise ValueError(f"Solver result is missing field: {name}")
            value = raw[name]
            if name == "termination_reason":
                values[name] = TerminationReason.parse(value)
            elif name.endswith("_count"):
                values[name] = _as_int(name, value)
            else:
                values[name] = _as_float(name, value)
        return cls(**values)


class JobExecutor(Protocol):
    """Interface implemented by solver backends."""

    def open(self, job_id: str) -> JobInput:
        """Load the job input or raise :class:`JobReadError`."""
        raise NotImplementedError

    def execute(self, job_input: JobInput, parameters: Mapping[str, Any]) -> JobResult:
        """Solve one loaded job or raise :class:`JobExecutionError`."""
        raise NotImplementedError


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"Solver result field {name} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"Solver result field {name} must be an integer, got {value!r}")
    return int(value)


def _as_float(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        raise TypeError(f"Solver result field {name} must be a number")
    try:
        return float(value)
    except ValueError as error:
        raise ValueError(f"Solver result field {name} is not a number: {value!r}") from error
