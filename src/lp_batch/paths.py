"""String-level path resolution for manifest entries.

Job identity is the resolved string, so these helpers never touch the
filesystem and never normalize beyond separator handling.
"""

from __future__ import annotations

_SEPARATORS = "/\\"


def is_absolute(path: str) -> bool:
    """Return True for rooted POSIX/Windows paths and drive-letter prefixes."""

    if not path:
        return False
    if path[0] in _SEPARATORS:
        return True
    return len(path) > 1 and path[0].isascii() and path[0].isalpha() and path[1] == ":"


def join(base: str, leaf: str) -> str:
    """Join two path fragments with exactly one separator between them."""

    if not base:
        return leaf
    if not leaf:
        return base
    if base[-1] in _SEPARATORS:
        return base + leaf
    return f"{base}/{leaf}"


def resolve(base: str, path: str) -> str:
    """Resolve ``path`` against ``base`` unless it is already absolute."""

    if is_absolute(path):
        return path
    return join(base, path)


def directory_of(path: str) -> str:
    """Return the parent directory component, or ``.`` when there is none."""

    index = _last_separator(path)
    if index < 0:
        return "."
    if index == 0:
        return path[:1]
    return path[:index]


def instance_name(path: str) -> str:
    """Return the last segment without its extensions (``a/b.mps.gz`` -> ``b``)."""

    base = path[_last_separator(path) + 1 :]
    return base.split(".", 1)[0]


def _last_separator(path: str) -> int:
    return max(path.rfind("/"), path.rfind("\\"))
