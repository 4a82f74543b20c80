"""Append-only ledger writer with per-row durability."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from pathlib import Path
from types import TracebackType
from typing import TextIO

from lp_batch.errors import BatchSetupError
from lp_batch.ledger.codec import LEDGER_HEADER, write_row

logger = logging.getLogger(__name__)


def ledger_has_content(path: Path) -> bool:
    """Return True when ``path`` exists and has nonzero length."""

    try:
        return path.stat().st_size > 0
    except OSError:
        return False


class LedgerWriter:
    """Writes ledger rows strictly by appending.

    The header is emitted only when the ledger was empty or absent at open
    time. Existing bytes are never rewritten; if a previous run died in the
    middle of a record, a line break is appended so the torn record cannot
    merge with the next one.
    """

    def __init__(self, path: Path, header: Sequence[str] = LEDGER_HEADER) -> None:
        self.path = path
        self.header = tuple(header)
        self.rows_written = 0
        self.header_written = False
        self._handle: TextIO | None = None

    def open(self) -> LedgerWriter:
        has_content = ledger_has_content(self.path)
        needs_separator = has_content and not _ends_with_newline(self.path)
        try:
            self._handle = self.path.open(
                "a" if has_content else "w",
                encoding="utf-8",
                errors="surrogateescape",
                newline="",
            )
        except OSError as error:
            raise BatchSetupError(
                f"Failed to open CSV output file: {self.path} ({error})",
            ) from error

        if needs_separator:
            logger.warning("Ledger %s ends with a partial record; starting a new line", self.path)
            self._handle.write("\n")
            self._sync()
        if not has_content:
            write_row(self._handle, self.header)
            self._sync()
            self.header_written = True
        return self

    def append(self, row: Sequence[str]) -> None:
        """Write one row and force it to durable storage before returning."""

        if self._handle is None:
            raise RuntimeError("Ledger writer is not open.")
        if len(row) != len(self.header):
            raise ValueError(
                f"Ledger row must have {len(self.header)} fields, got {len(row)}.",
            )
        write_row(self._handle, row)
        self._sync()
        self.rows_written += 1

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> LedgerWriter:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def _sync(self) -> None:
        if self._handle is None:
            return
        self._handle.flush()
        os.fsync(self._handle.fileno())


def _ends_with_newline(path: Path) -> bool:
    try:
        with path.open("rb") as handle:
            handle.seek(-1, os.SEEK_END)
            return handle.read(1) in (b"\n", b"\r")
    except OSError:
        return True
