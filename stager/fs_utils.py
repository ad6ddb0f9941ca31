"""Filesystem path helpers for staging."""

from __future__ import annotations

import os
from pathlib import PurePosixPath

from .errors import InvalidConfigurationError

__all__ = ["abs_to_rel", "logical_path", "require_bare_filename"]

_SEPARATORS = frozenset(sep for sep in ("/", os.sep, os.altsep) if sep)


def abs_to_rel(abs_path: str) -> PurePosixPath:
    """Return the staging-root-relative form of the logical path ``abs_path``.

    The normalisation is purely lexical: empty and ``.`` components are
    dropped and ``..`` removes the previously kept component. Nothing is
    looked up on disk.

    Parameters
    ----------
    abs_path : str
        Rendered target path. It must start with ``/``, which stands for the
        staging root.

    Returns
    -------
    PurePosixPath
        Normalised path relative to the staging root (``PurePosixPath(".")``
        for the root itself).

    Raises
    ------
    InvalidConfigurationError
        Raised when ``abs_path`` is not absolute or climbs above the staging
        root.

    Examples
    --------
    >>> abs_to_rel("/hello/./world")
    PurePosixPath('hello/world')
    >>> abs_to_rel("/hello/world/../../foo/bar")
    PurePosixPath('foo/bar')
    """

    if not abs_path.startswith("/"):
        message = f"Path is not absolute (within the stage): {abs_path}"
        raise InvalidConfigurationError(message)

    parts: list[str] = []
    for part in abs_path.lstrip("/").split("/"):
        if part in {"", "."}:
            continue
        if part == "..":
            if not parts:
                message = f"Path is outside of staging root: {abs_path!r}"
                raise InvalidConfigurationError(message)
            parts.pop()
        else:
            parts.append(part)
    return PurePosixPath(*parts)


def logical_path(rel_path: PurePosixPath) -> str:
    """Return the ``/``-prefixed logical form of a root-relative path."""
    return "/" if rel_path == PurePosixPath() else f"/{rel_path.as_posix()}"


def require_bare_filename(name: str, label: str) -> str:
    """Return ``name`` when it is a single path component.

    ``label`` names the offending field in the error message (for example
    ``"SourceFile rename"``).
    """

    if name in {"", ".", ".."} or any(sep in name for sep in _SEPARATORS):
        message = f"{label} must not change directories: {name!r}"
        raise InvalidConfigurationError(message)
    return name
