"""Local deterministic solver for command executor integration tests."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from lp_batch.executor.base import TerminationReason
from lp_batch.executor.command import READ_FAILURE_EXIT_CODE

_FLOAT_FIELDS = (
    "runtime_sec",
    "primal_objective_value",
    "dual_objective_value",
    "relative_primal_residual",
    "relative_dual_residual",
    "absolute_objective_gap",
    "relative_objective_gap",
    "feasibility_polishing_time_sec",
)
_INT_FIELDS = ("iterations_count", "feasibility_polishing_iteration_count")


def solve_text(text: str, parameters: dict[str, Any]) -> dict[str, Any]:
    """Derive a result payload from dataset text; ``key=value`` lines override."""

    lines = [line.strip() for line in text.splitlines() if line.strip()]
    objective = float(len(lines))
    result: dict[str, Any] = {
        "termination_reason": TerminationReason.OPTIMAL.value,
        "runtime_sec": 0.001 * (len(text) + 1),
        "iterations_count": len(text),
        "primal_objective_value": objective,
        "dual_objective_value": objective,
        "relative_primal_residual": 0.0,
        "relative_dual_residual": 0.0,
        "absolute_objective_gap": 0.0,
        "relative_objective_gap": 0.0,
    }
    if parameters.get("feasibility_polishing"):
        result["feasibility_polishing_time_sec"] = 0.25
        result["feasibility_polishing_iteration_count"] = 10

    for line in lines:
        if "=" not in line:
            continue
        key, value = (part.strip() for part in line.split("=", 1))
        if key in _FLOAT_FIELDS:
            result[key] = float(value)
        elif key in _INT_FIELDS:
            result[key] = int(value)
        elif key == "termination_reason":
            result[key] = value
    return result


def main(argv: list[str] | None = None) -> int:
    """Solve one dataset file and write the result JSON."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--dataset", required=True)
    parser.add_argument("--params-file", required=True)
    parser.add_argument("--result-file", required=True)
    args = parser.parse_args(argv)

    try:
        text = Path(args.dataset).read_text("utf-8")
    except (OSError, UnicodeDecodeError) as error:
        print(f"cannot read dataset: {error}", file=sys.stderr)
        return READ_FAILURE_EXIT_CODE

    first_line = text.strip().splitlines()[0].strip() if text.strip() else ""
    if first_line == "fail":
        print("solver failed: dataset requested failure", file=sys.stderr)
        return 1

    parameters = json.loads(Path(args.params_file).read_text("utf-8"))
    payload = solve_text(text, parameters)
    Path(args.result_file).write_text(json.dumps(payload, indent=2, sort_keys=True), "utf-8")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
