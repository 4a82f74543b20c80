"""Resumable batch LP solves recorded in an append-only CSV ledger."""

__version__ = "0.1.0"
