"""Shared test fixtures."""

from __future__ import annotations

import os
import shlex
import sys
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import pytest

from lp_batch.executor.base import (
    JobExecutionError,
    JobInput,
    JobReadError,
    JobResult,
    TerminationReason,
)

ECHO_SOLVER_COMMAND = (
    f"{shlex.quote(sys.executable)} -m lp_batch.executor.echo_solver "
    "--dataset {dataset} --params-file {params_file} --result-file {result_file}"
)


def make_result(**overrides: Any) -> JobResult:
    values: dict[str, Any] = {
        "termination_reason": TerminationReason.OPTIMAL,
        "runtime_sec": 1.5,
        "iterations_count": 42,
        "primal_objective_value": -3.25,
        "dual_objective_value": -3.25,
        "relative_primal_residual": 1e-9,
        "relative_dual_residual": 2e-9,
        "absolute_objective_gap": 0.0,
        "relative_objective_gap": 0.0,
    }
    values.update(overrides)
    return JobResult(**values)


class FakeExecutor:
    """In-process executor that records calls and fails on demand."""

    def __init__(
        self,
        *,
        read_failures: tuple[str, ...] = (),
        solver_failures: tuple[str, ...] = (),
        crashes: tuple[str, ...] = (),
        open_crashes: tuple[str, ...] = (),
        results: Mapping[str, JobResult] | None = None,
    ) -> None:
        self.read_failures = read_failures
        self.solver_failures = solver_failures
        self.crashes = crashes
        self.open_crashes = open_crashes
        self.results = dict(results or {})
        self.opened: list[str] = []
        self.executed: list[str] = []
        self.released: list[str] = []
        self.parameters: list[Mapping[str, Any]] = []

    def open(self, job_id: str) -> JobInput:
        self.opened.append(job_id)
        if _matches(job_id, self.read_failures):
            raise JobReadError(f"cannot read {job_id}")
        if _matches(job_id, self.open_crashes):
            raise OSError("device vanished")
        return JobInput(
            job_id=job_id,
            path=Path(job_id),
            release=lambda: self.released.append(job_id),
        )

    def execute(self, job_input: JobInput, parameters: Mapping[str, Any]) -> JobResult:
        self.executed.append(job_input.job_id)
        self.parameters.append(parameters)
        if _matches(job_input.job_id, self.solver_failures):
            raise JobExecutionError(f"solver gave up on {job_input.job_id}")
        if _matches(job_input.job_id, self.crashes):
            raise RuntimeError("segfault-like crash")
        for suffix, result in self.results.items():
            if job_input.job_id.endswith(suffix):
                return result
        return make_result()


def _matches(job_id: str, suffixes: tuple[str, ...]) -> bool:
    return any(job_id.endswith(suffix) for suffix in suffixes)


@pytest.fixture()
def make_executor() -> Callable[..., FakeExecutor]:
    return FakeExecutor


@pytest.fixture()
def write_manifest(tmp_path: Path) -> Callable[..., Path]:
    """Write a manifest whose root is ``tmp_path / 'data'``."""

    def _write(*job_lines: str, name: str = "datasets.txt") -> Path:
        manifest = tmp_path / name
        body = "\n".join([str(tmp_path / "data"), *job_lines]) + "\n"
        manifest.write_text(body, "utf-8")
        return manifest

    return _write


@pytest.fixture()
def result_factory() -> Callable[..., JobResult]:
    return make_result


@pytest.fixture()
def echo_solver_command(monkeypatch: pytest.MonkeyPatch) -> str:
    """Solver template for the bundled echo solver, importable from the subprocess."""

    src_dir = str(Path(__file__).resolve().parents[1] / "src")
    existing = os.environ.get("PYTHONPATH")
    monkeypatch.setenv("PYTHONPATH", os.pathsep.join(filter(None, [src_dir, existing])))
    return ECHO_SOLVER_COMMAND
