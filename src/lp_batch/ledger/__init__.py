"""Result ledger: codec, completion recovery, and append-only writer."""

from lp_batch.ledger.codec import (
    DEDUP_KEY_COLUMN,
    LEDGER_HEADER,
    READ_ERROR,
    SOLVER_ERROR,
    decode_row,
    encode_row,
    format_scientific,
)
from lp_batch.ledger.completion import load_completed_jobs
from lp_batch.ledger.writer import LedgerWriter, ledger_has_content

__all__ = [
    "DEDUP_KEY_COLUMN",
    "LEDGER_HEADER",
    "READ_ERROR",
    "SOLVER_ERROR",
    "LedgerWriter",
    "decode_row",
    "encode_row",
    "format_scientific",
    "ledger_has_content",
    "load_completed_jobs",
]
