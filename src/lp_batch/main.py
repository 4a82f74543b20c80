"""CLI entrypoint for lp-batch."""

import logging
from pathlib import Path

import rich_click as click

from lp_batch import __version__
from lp_batch.controllers import BatchCliController, BatchPendingCommand, BatchRunCommand

click.rich_click.USE_MARKDOWN = True
BATCH_CONTROLLER = BatchCliController()

_MANIFEST_HELP = """
**Datasets file format**

- First non-empty line: dataset root directory (absolute, or relative to the datasets file)
- Subsequent lines: dataset paths relative to the root (or absolute paths)
- `#` starts a comment; blank lines are ignored
"""


@click.group()
@click.version_option(version=__version__, prog_name="lp-batch")
def lp_batch() -> None:
    """Resumable batch LP solves with an append-only CSV ledger."""


@lp_batch.command("run", epilog=_MANIFEST_HELP)
@click.argument("datasets_txt", type=click.Path(path_type=Path))
@click.argument("output_csv", type=click.Path(path_type=Path))
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging.")
@click.option("-d", "--debug", is_flag=True, help="Enable debug logging.")
@click.option("--time_limit", type=float, default=None, help="Time limit in seconds [3600.0].")
@click.option("--iter_limit", type=int, default=None, help="Iteration limit [2147483647].")
@click.option("--eps_opt", type=float, default=None, help="Relative optimality tolerance [1e-4].")
@click.option(
    "--eps_feas",
    type=float,
    default=None,
    help="Relative feasibility tolerance [1e-4].",
)
@click.option(
    "--eps_infeas_detect",
    type=float,
    default=None,
    help="Infeasibility detection tolerance [1e-10].",
)
@click.option(
    "--eps_feas_polish",
    type=float,
    default=None,
    help="Relative feasibility polish tolerance [1e-6].",
)
@click.option(
    "-f",
    "--feasibility_polishing",
    is_flag=True,
    help="Enable feasibility polishing.",
)
@click.option(
    "--l_inf_ruiz_iter",
    type=int,
    default=None,
    help="Iterations for L-inf Ruiz rescaling [10].",
)
@click.option(
    "--pock_chambolle_alpha",
    type=float,
    default=None,
    help="Value for Pock-Chambolle alpha [1.0].",
)
@click.option("--no_pock_chambolle", is_flag=True, help="Disable Pock-Chambolle rescaling.")
@click.option(
    "--no_bound_obj_rescaling",
    is_flag=True,
    help="Disable bound objective rescaling.",
)
@click.option(
    "--eval_freq",
    type=int,
    default=None,
    help="Termination evaluation frequency [200].",
)
@click.option(
    "--sv_max_iter",
    type=int,
    default=None,
    help="Max iterations for singular value estimation [5000].",
)
@click.option(
    "--sv_tol",
    type=float,
    default=None,
    help="Tolerance for singular value estimation [1e-4].",
)
@click.option(
    "--solver-command",
    default=None,
    help=(
        "Solver command template. Supports {dataset}, {params_file} and {result_file}. "
        "If omitted, LP_BATCH_SOLVER_COMMAND is used."
    ),
)
@click.option(
    "--solver-timeout-seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Kill a solver process after this many seconds (recorded as SOLVER_ERROR).",
)
@click.option(
    "--workdir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory for per-job scratch files (system temp by default).",
)
@click.pass_context
def run(  # noqa: PLR0913
    ctx: click.Context,
    datasets_txt: Path,
    output_csv: Path,
    verbose: bool,
    debug: bool,
    time_limit: float | None,
    iter_limit: int | None,
    eps_opt: float | None,
    eps_feas: float | None,
    eps_infeas_detect: float | None,
    eps_feas_polish: float | None,
    feasibility_polishing: bool,
    l_inf_ruiz_iter: int | None,
    pock_chambolle_alpha: float | None,
    no_pock_chambolle: bool,
    no_bound_obj_rescaling: bool,
    eval_freq: int | None,
    sv_max_iter: int | None,
    sv_tol: float | None,
    solver_command: str | None,
    solver_timeout_seconds: float | None,
    workdir: Path | None,
) -> None:
    """Solve every dataset listed in DATASETS_TXT not yet recorded in OUTPUT_CSV."""

    _configure_logging(verbose=verbose, debug=debug)
    report = BATCH_CONTROLLER.run(
        BatchRunCommand(
            datasets_path=datasets_txt,
            output_csv=output_csv,
            verbose=verbose,
            debug=debug,
            time_limit=time_limit,
            iter_limit=iter_limit,
            eps_opt=eps_opt,
            eps_feas=eps_feas,
            eps_infeas_detect=eps_infeas_detect,
            eps_feas_polish=eps_feas_polish,
            feasibility_polishing=feasibility_polishing,
            l_inf_ruiz_iter=l_inf_ruiz_iter,
            pock_chambolle_alpha=pock_chambolle_alpha,
            no_pock_chambolle=no_pock_chambolle,
            no_bound_obj_rescaling=no_bound_obj_rescaling,
            sv_max_iter=sv_max_iter,
            sv_tol=sv_tol,
            eval_freq=eval_freq,
            solver_command=solver_command,
            solver_timeout_seconds=solver_timeout_seconds,
            workdir=workdir,
        ),
    )
    _emit_lines(report.lines, err=True)
    ctx.exit(int(report.exit_status))


@lp_batch.command("pending", epilog=_MANIFEST_HELP)
@click.argument("datasets_txt", type=click.Path(path_type=Path))
@click.argument("output_csv", type=click.Path(path_type=Path))
@click.pass_context
def pending(ctx: click.Context, datasets_txt: Path, output_csv: Path) -> None:
    """List datasets that the next run would still attempt."""

    report = BATCH_CONTROLLER.pending(
        BatchPendingCommand(datasets_path=datasets_txt, output_csv=output_csv),
    )
    _emit_lines(report.lines)
    ctx.exit(int(report.exit_status))


def _configure_logging(*, verbose: bool, debug: bool) -> None:
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("lp_batch").setLevel(level)


def _emit_lines(lines: list[str], *, err: bool = False) -> None:
    for line in lines:
        click.echo(line, err=err)


if __name__ == "__main__":  # pragma: no cover
    lp_batch()
