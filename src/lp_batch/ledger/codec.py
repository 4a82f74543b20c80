"""CSV codec for the result ledger."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Iterator, Sequence
from typing import TextIO

from lp_batch.errors import LedgerFormatError

DEDUP_KEY_COLUMN = "dataset"

LEDGER_HEADER: tuple[str, ...] = (
    DEDUP_KEY_COLUMN,
    "instance",
    "termination_reason",
    "runtime_sec",
    "iterations_count",
    "primal_objective_value",
    "dual_objective_value",
    "relative_primal_residual",
    "relative_dual_residual",
    "absolute_objective_gap",
    "relative_objective_gap",
    "feasibility_polishing_time_sec",
    "feasibility_polishing_iteration_count",
)

READ_ERROR = "READ_ERROR"
SOLVER_ERROR = "SOLVER_ERROR"


class LedgerDialect(csv.Dialect):
    """Comma separated, double-quote escaped, quoted only when needed."""

    delimiter = ","
    quotechar = '"'
    doublequote = True
    skipinitialspace = False
    lineterminator = "\n"
    quoting = csv.QUOTE_MINIMAL
    strict = False


class _QuotedLedgerDialect(LedgerDialect):
    quoting = csv.QUOTE_ALL


_LINE_BREAKS = ("\n", "\r")


def encode_row(fields: Sequence[str]) -> str:
    """Encode fields as one ledger record, without the trailing newline."""

    # Older csv writers leave a bare "\r" unquoted under QUOTE_MINIMAL.
    dialect: type[csv.Dialect] = LedgerDialect
    if any(brk in field for field in fields for brk in _LINE_BREAKS):
        dialect = _QuotedLedgerDialect
    buffer = io.StringIO()
    csv.writer(buffer, dialect=dialect).writerow(fields)
    return buffer.getvalue()[: -len(LedgerDialect.lineterminator)]


def decode_row(line: str) -> list[str]:
    """Decode one ledger record produced by :func:`encode_row`."""

    if not line:
        raise LedgerFormatError("Empty line is not a ledger row.")
    rows = list(csv.reader(io.StringIO(line, newline=""), dialect=LedgerDialect))
    if len(rows) != 1:
        raise LedgerFormatError(f"Expected exactly one ledger row, got {len(rows)}: {line!r}")
    return rows[0]


def iter_rows(lines: TextIO | Iterable[str]) -> Iterator[list[str]]:
    """Yield decoded records from an open ledger, skipping blank lines.

    Quoted fields may span physical lines. A record whose quote is still open
    at end of input was torn mid-write; it is decoded from its own line and
    the lines after it are read as records again. Open files with
    ``newline=""``.
    """

    physical = list(lines)
    start = 0
    while start < len(physical):
        end = _record_end(physical, start)
        record = "".join(physical[start:end])
        for row in csv.reader(io.StringIO(record, newline=""), dialect=LedgerDialect):
            if row:
                yield row
        start = end


def _record_end(physical: list[str], start: int) -> int:
    """Index just past the physical lines forming the record at ``start``."""

    quote_open = False
    for index in range(start, len(physical)):
        if physical[index].count(LedgerDialect.quotechar) % 2:
            quote_open = not quote_open
        if not quote_open:
            return index + 1
    return start + 1


def write_row(handle: TextIO, fields: Sequence[str]) -> None:
    """Append one encoded record plus line terminator to ``handle``."""

    handle.write(encode_row(fields) + LedgerDialect.lineterminator)


def format_scientific(value: float) -> str:
    """Render a float in fixed scientific notation with 17 fractional digits."""

    return f"{float(value):.17e}"


def blank_row() -> list[str]:
    """Return a row with every ledger column present and empty."""

    return [""] * len(LEDGER_HEADER)
