"""Exception hierarchy shared by the batch harness."""

from __future__ import annotations


class BatchError(RuntimeError):
    """Base error for failures that abort a whole batch run."""


class BatchSetupError(BatchError):
    """Run cannot start: manifest or ledger could not be opened."""


class ManifestError(BatchSetupError):
    """Manifest is unusable, for example it never declares a dataset root."""


class LedgerFormatError(ValueError):
    """Text passed to the ledger codec is not a valid row."""
