"""Manifest parsing: dataset root line followed by job paths."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from lp_batch import paths
from lp_batch.errors import BatchSetupError, ManifestError

COMMENT_MARKER = "#"


class ManifestState(str, Enum):
    """Parser states for the root-then-jobs manifest grammar."""

    AWAITING_ROOT = "awaiting_root"
    READING_JOBS = "reading_jobs"


@dataclass(slots=True, frozen=True)
class ManifestEntry:
    """One resolved job from the manifest."""

    job_id: str
    line_number: int


def clean_line(line: str) -> str:
    """Strip the comment tail and surrounding whitespace."""

    return line.split(COMMENT_MARKER, 1)[0].strip()


class ManifestReader:
    """Single-pass iterator over resolved job identifiers.

    The first non-empty cleaned line is captured as the dataset root and
    resolved against ``manifest_dir``; every later line is resolved against
    that root. Nothing is yielded before the root is known.
    """

    def __init__(self, lines: Iterable[str], manifest_dir: str) -> None:
        self._lines = lines
        self.manifest_dir = manifest_dir
        self.state = ManifestState.AWAITING_ROOT
        self.root: str | None = None

    def __iter__(self) -> Iterator[ManifestEntry]:
        for line_number, raw_line in enumerate(self._lines, start=1):
            cleaned = clean_line(raw_line)
            if not cleaned:
                continue

            if self.state is ManifestState.AWAITING_ROOT:
                self.root = paths.resolve(self.manifest_dir, cleaned)
                self.state = ManifestState.READING_JOBS
                continue

            yield ManifestEntry(
                job_id=paths.resolve(self.root or "", cleaned),
                line_number=line_number,
            )

    def require_root(self) -> str:
        """Return the captured root or raise if the manifest never declared one."""

        if self.state is ManifestState.AWAITING_ROOT or self.root is None:
            raise ManifestError("Datasets file does not define a dataset root path.")
        return self.root


@contextmanager
def open_manifest(manifest_path: Path) -> Iterator[ManifestReader]:
    """Open a manifest file and yield a reader bound to its directory."""

    try:
        handle = manifest_path.open("r", encoding="utf-8", errors="surrogateescape")
    except OSError as error:
        raise BatchSetupError(
            f"Failed to open datasets file: {manifest_path} ({error})",
        ) from error
    with handle:
        yield ManifestReader(handle, paths.directory_of(str(manifest_path)))


def read_job_ids(manifest_path: Path) -> list[str]:
    """Return all resolved job identifiers of a manifest, in file order."""

    with open_manifest(manifest_path) as reader:
        job_ids = [entry.job_id for entry in reader]
        reader.require_root()
    return job_ids
