"""Recover the set of already-recorded jobs from an existing ledger."""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from lp_batch.ledger.codec import DEDUP_KEY_COLUMN, iter_rows

logger = logging.getLogger(__name__)


def load_completed_jobs(ledger_path: Path, *, key_column: str = DEDUP_KEY_COLUMN) -> set[str]:
    """Return trimmed, non-empty dedup-key values found in the ledger.

    A missing or unreadable ledger yields an empty set. The first row is a
    header only if one of its fields equals ``key_column``; otherwise column 0
    is the key and that first row counts as data. Decoding problems end the
    scan early instead of failing, which at worst causes jobs to be re-run.
    """

    completed: set[str] = set()
    try:
        handle = ledger_path.open("r", encoding="utf-8", errors="surrogateescape", newline="")
    except OSError as error:
        logger.debug("No readable ledger at %s (%s); starting fresh", ledger_path, error)
        return completed

    key_index: int | None = None
    with handle:
        try:
            for fields in iter_rows(handle):
                if key_index is None:
                    key_index = _header_key_index(fields, key_column)
                    if key_index is not None:
                        continue
                    key_index = 0
                if key_index < len(fields):
                    value = fields[key_index].strip()
                    if value:
                        completed.add(value)
        except (csv.Error, OSError) as error:
            logger.warning(
                "Stopped reading ledger %s early: %s (recovered %d jobs)",
                ledger_path,
                error,
                len(completed),
            )

    logger.debug("Recovered %d completed jobs from %s", len(completed), ledger_path)
    return completed


def _header_key_index(fields: list[str], key_column: str) -> int | None:
    for index, field in enumerate(fields):
        if field.strip() == key_column:
            return index
    return None
