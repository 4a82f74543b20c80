"""Subprocess-based executor for external solver command templates."""

from __future__ import annotations

import json
import logging
import os
import shlex
import subprocess
import tempfile
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from lp_batch.executor.base import (
    JobExecutionError,
    JobInput,
    JobReadError,
    JobResult,
)

logger = logging.getLogger(__name__)

READ_FAILURE_EXIT_CODE = 3
_SUPPORTED_PLACEHOLDERS = ("dataset", "params_file", "result_file")


class CommandJobExecutor:
    """Run one solver process per job and read its JSON result file.

    The template is rendered with shell-quoted ``{dataset}``, ``{params_file}``
    and ``{result_file}`` values. Exit code 3 means the solver could not parse
    its input; any other nonzero exit is a solver failure.
    """

    def __init__(
        self,
        command_template: str,
        *,
        timeout_seconds: float | None = None,
        workdir: Path | None = None,
    ) -> None:
        stripped = command_template.strip()
        if not stripped:
            raise ValueError("Solver command template is empty.")
        if "{dataset}" not in stripped:
            raise ValueError("Solver command template must include {dataset}.")
        build_run_args(
            command_template=stripped,
            dataset="dataset.mps",
            params_file=Path("parameters.json"),
            result_file=Path("result.json"),
        )
        self.command_template = stripped
        self.timeout_seconds = timeout_seconds
        self.workdir = workdir

    def open(self, job_id: str) -> JobInput:
        path = Path(job_id)
        try:
            with path.open("rb") as handle:
                handle.read(1)
        except OSError as error:
            raise JobReadError(f"Failed to read dataset file {job_id}: {error}") from error

        if self.workdir is not None:
            self.workdir.mkdir(parents=True, exist_ok=True)
        scratch = tempfile.TemporaryDirectory(prefix="lp-batch-", dir=self.workdir)
        return JobInput(
            job_id=job_id,
            path=path,
            payload=Path(scratch.name),
            release=scratch.cleanup,
        )

    def execute(self, job_input: JobInput, parameters: Mapping[str, Any]) -> JobResult:
        scratch_dir = Path(job_input.payload)
        params_file = scratch_dir / "parameters.json"
        result_file = scratch_dir / "result.json"
        params_file.write_text(json.dumps(dict(parameters), indent=2, sort_keys=True), "utf-8")

        argv = build_run_args(
            command_template=self.command_template,
            dataset=job_input.job_id,
            params_file=params_file,
            result_file=result_file,
        )
        env = os.environ.copy()
        env["LP_BATCH_DATASET"] = job_input.job_id

        started = time.monotonic()
        try:
            completed = subprocess.run(  # noqa: S603
                argv,
                env=env,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as error:
            raise JobExecutionError(f"Solver command not found: {argv[0]}") from error
        except subprocess.TimeoutExpired as error:
            raise JobExecutionError(
                f"Solver timed out after {self.timeout_seconds}s for {job_input.job_id}",
                code="solver_timeout",
            ) from error
        except OSError as error:
            raise JobExecutionError(f"Solver failed to start: {error}") from error

        logger.debug(
            "Solver exited with %d after %.3fs for %s",
            completed.returncode,
            time.monotonic() - started,
            job_input.job_id,
        )
        if completed.returncode == READ_FAILURE_EXIT_CODE:
            raise JobReadError(
                f"Solver could not read {job_input.job_id}: {_tail(completed.stderr)}",
            )
        if completed.returncode != 0:
            raise JobExecutionError(
                f"Solver exited with code {completed.returncode} for {job_input.job_id}: "
                f"{_tail(completed.stderr)}",
            )
        return read_result_file(result_file)


def build_run_args(
    *,
    command_template: str,
    dataset: str,
    params_file: Path,
    result_file: Path,
) -> list[str]:
    """Render a command template into an argv list."""

    try:
        rendered = command_template.format(
            dataset=shlex.quote(dataset),
            params_file=shlex.quote(str(params_file)),
            result_file=shlex.quote(str(result_file)),
        )
    except (KeyError, IndexError, AttributeError) as error:
        raise ValueError(
            f"Unsupported command template placeholder: {error}. "
            f"Supported: {', '.join(_SUPPORTED_PLACEHOLDERS)}",
        ) from error

    argv = shlex.split(rendered)
    if not argv:
        raise ValueError("Solver command template rendered empty command.")
    return argv


def read_result_file(path: Path) -> JobResult:
    """Load and validate a solver result JSON document."""

    try:
        payload = json.loads(path.read_text("utf-8"))
    except FileNotFoundError as error:
        raise JobExecutionError(f"Solver did not write a result file: {path}") from error
    except (OSError, json.JSONDecodeError) as error:
        raise JobExecutionError(f"Solver result file is unreadable: {path} ({error})") from error
    if not isinstance(payload, dict):
        raise JobExecutionError(f"Expected JSON object in {path}")
    try:
        return JobResult.from_mapping(payload)
    except (TypeError, ValueError) as error:
        raise JobExecutionError(f"Invalid solver result in {path}: {error}") from error


def _tail(text: str, limit: int = 500) -> str:
    stripped = (text or "").strip()
    if len(stripped) <= limit:
        return stripped
    return "..." + stripped[-limit:]
