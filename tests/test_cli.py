from __future__ import annotations

import json
from pathlib import Path

import allure
from click.testing import CliRunner

from lp_batch.ledger.codec import iter_rows
from lp_batch.main import lp_batch

pytestmark = [
    allure.epic("Batch Runs"),
    allure.feature("CLI"),
]


def _dataset_tree(tmp_path: Path) -> Path:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "afiro.mps").write_text("ROWS\nprimal_objective_value=-464.75\n", "utf-8")
    (data_dir / "broken.mps").write_text("fail\n", "utf-8")
    (data_dir / "adlittle.mps").write_text("ROWS\nCOLUMNS\n", "utf-8")
    manifest = tmp_path / "datasets.txt"
    manifest.write_text(
        "data  # root relative to this file\n"
        "afiro.mps\n"
        "\n"
        "missing.mps\n"
        "broken.mps\n"
        "adlittle.mps\n",
        "utf-8",
    )
    return manifest


def _ledger_rows(path: Path) -> list[list[str]]:
    with path.open("r", encoding="utf-8", newline="") as handle:
        return list(iter_rows(handle))


def test_run_records_every_job_and_reports_failures(
    tmp_path: Path,
    echo_solver_command: str,
) -> None:
    manifest = _dataset_tree(tmp_path)
    ledger = tmp_path / "results.csv"
    runner = CliRunner()

    result = runner.invoke(
        lp_batch,
        ["run", str(manifest), str(ledger), "--solver-command", echo_solver_command, "-f"],
    )

    assert result.exit_code == 2, result.output
    assert "Batch complete: 2 solved, 2 failed, 0 skipped." in result.output
    rows = _ledger_rows(ledger)
    assert [row[1] for row in rows[1:]] == ["afiro", "missing", "broken", "adlittle"]
    assert [row[2] for row in rows[1:]] == ["OPTIMAL", "READ_ERROR", "SOLVER_ERROR", "OPTIMAL"]
    assert rows[1][5] == "-4.64750000000000000e+02"
    assert rows[1][11:] == ["2.50000000000000000e-01", "10"]

    second = runner.invoke(
        lp_batch,
        ["run", str(manifest), str(ledger), "--solver-command", echo_solver_command],
    )

    assert second.exit_code == 0, second.output
    assert "Batch complete: 0 solved, 0 failed, 4 skipped." in second.output
    assert len(_ledger_rows(ledger)) == 5


def test_run_passes_flags_to_solver_parameters(
    tmp_path: Path,
    monkeypatch,
    echo_solver_command: str,
) -> None:
    captured: list[dict] = []
    original = json.dumps

    def _capture(payload, *args, **kwargs):
        if isinstance(payload, dict) and "termination_criteria" in payload:
            captured.append(payload)
        return original(payload, *args, **kwargs)

    monkeypatch.setattr("lp_batch.executor.command.json.dumps", _capture)
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "a.mps").write_text("ROWS\n", "utf-8")
    manifest = tmp_path / "datasets.txt"
    manifest.write_text(f"{data_dir}\na.mps\n", "utf-8")

    result = CliRunner().invoke(
        lp_batch,
        [
            "run",
            str(manifest),
            str(tmp_path / "results.csv"),
            "--solver-command",
            echo_solver_command,
            "--time_limit",
            "12.5",
            "--iter_limit",
            "300",
            "--eps_opt",
            "1e-6",
            "--no_pock_chambolle",
            "--no_bound_obj_rescaling",
            "--eval_freq",
            "64",
        ],
    )

    assert result.exit_code == 0, result.output
    assert len(captured) == 1
    params = captured[0]
    assert params["termination_criteria"]["time_sec_limit"] == 12.5
    assert params["termination_criteria"]["iteration_limit"] == 300
    assert params["termination_criteria"]["eps_optimal_relative"] == 1e-6
    assert params["has_pock_chambolle_alpha"] is False
    assert params["bound_objective_rescaling"] is False
    assert params["termination_evaluation_frequency"] == 64


def test_run_without_root_exits_with_setup_error(tmp_path: Path, echo_solver_command: str) -> None:
    manifest = tmp_path / "datasets.txt"
    manifest.write_text("# nothing\n\n", "utf-8")

    result = CliRunner().invoke(
        lp_batch,
        ["run", str(manifest), str(tmp_path / "out.csv"), "--solver-command", echo_solver_command],
    )

    assert result.exit_code == 1
    assert "does not define a dataset root path" in result.output


def test_run_with_missing_manifest_exits_with_setup_error(
    tmp_path: Path,
    echo_solver_command: str,
) -> None:
    result = CliRunner().invoke(
        lp_batch,
        [
            "run",
            str(tmp_path / "absent.txt"),
            str(tmp_path / "out.csv"),
            "--solver-command",
            echo_solver_command,
        ],
    )

    assert result.exit_code == 1
    assert "Failed to open datasets file" in result.output
    assert not (tmp_path / "out.csv").exists()


def test_run_without_solver_command_exits_with_setup_error(
    tmp_path: Path,
    monkeypatch,
) -> None:
    monkeypatch.delenv("LP_BATCH_SOLVER_COMMAND", raising=False)
    manifest = tmp_path / "datasets.txt"
    manifest.write_text("/data\na.mps\n", "utf-8")

    result = CliRunner().invoke(lp_batch, ["run", str(manifest), str(tmp_path / "out.csv")])

    assert result.exit_code == 1
    assert "solver command is required" in result.output


def test_pending_lists_unrecorded_jobs(tmp_path: Path, echo_solver_command: str) -> None:
    manifest = _dataset_tree(tmp_path)
    ledger = tmp_path / "results.csv"
    runner = CliRunner()

    before = runner.invoke(lp_batch, ["pending", str(manifest), str(ledger)])
    assert before.exit_code == 0
    assert "Pending: 4 of 4 manifest entries" in before.output

    runner.invoke(
        lp_batch,
        ["run", str(manifest), str(ledger), "--solver-command", echo_solver_command],
    )
    after = runner.invoke(lp_batch, ["pending", str(manifest), str(ledger)])

    assert after.exit_code == 0
    assert "Pending: 0 of 4 manifest entries (4 already recorded or repeated)." in after.output


def test_run_with_unknown_template_placeholder_writes_no_rows(
    tmp_path: Path,
    monkeypatch,
) -> None:
    monkeypatch.delenv("LP_BATCH_SOLVER_COMMAND", raising=False)
    manifest = tmp_path / "datasets.txt"
    manifest.write_text(f"{tmp_path}\na.mps\n", "utf-8")
    (tmp_path / "a.mps").write_text("x\n", "utf-8")
    ledger = tmp_path / "out.csv"

    result = CliRunner().invoke(
        lp_batch,
        ["run", str(manifest), str(ledger), "--solver-command", "solver {dataset} --out {output}"],
    )

    assert result.exit_code == 1
    assert "Unsupported command template placeholder" in result.output
    assert not ledger.exists()
