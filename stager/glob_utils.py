"""Gitignore-style file discovery for ``SourceFiles`` entries."""

from __future__ import annotations

import logging
import os
import typing as typ
from pathlib import Path

import pathspec
from pathspec.patterns.gitignore.spec import GitIgnoreSpecPattern

from .errors import HarvestingError

__all__ = ["compile_patterns", "iter_matching_files"]

logger = logging.getLogger(__name__)


def compile_patterns(patterns: typ.Sequence[str]) -> pathspec.PathSpec:
    """Return a matcher for ``patterns`` written in gitignore syntax.

    Raises
    ------
    HarvestingError
        Raised when any pattern is invalid.
    """

    try:
        return pathspec.PathSpec.from_lines(GitIgnoreSpecPattern, patterns)
    except (TypeError, ValueError) as exc:
        message = f"Invalid glob pattern in {list(patterns)!r}: {exc}"
        raise HarvestingError(message) from exc


def iter_matching_files(
    root: Path,
    spec: pathspec.PathSpec,
    *,
    follow_links: bool = False,
    onerror: typ.Callable[[HarvestingError], None] | None = None,
) -> typ.Iterator[Path]:
    """Yield files below ``root`` whose relative path matches ``spec``.

    Entries are visited in sorted order so the result is stable across runs.
    Directories are never yielded. Broken symbolic links and, when
    ``follow_links`` is set, symbolic links that loop back onto a directory
    being walked are reported as errors for that entry.

    Parameters
    ----------
    root : Path
        Absolute directory to walk.
    spec : pathspec.PathSpec
        Matcher built by :func:`compile_patterns`.
    follow_links : bool, default=False
        Descend into symbolic links to directories.
    onerror : Callable[[HarvestingError], None] | None, optional
        Receives per-entry failures so the walk can continue. When omitted the
        first failure is raised.
    """

    def report(error: HarvestingError) -> None:
        if onerror is None:
            raise error
        onerror(error)

    def walk_error(exc: OSError) -> None:
        report(HarvestingError(f"Failed to read {exc.filename}: {exc.strerror}"))

    # Real directories on the path from ``root`` to each visited directory.
    chains: dict[str, frozenset[Path]] = {str(root): frozenset({root.resolve()})}

    for dirpath, dirnames, filenames in os.walk(
        root, onerror=walk_error, followlinks=follow_links
    ):
        dirnames.sort()
        filenames.sort()
        chain = chains.pop(dirpath, frozenset())
        if follow_links:
            for name in list(dirnames):
                child = os.path.join(dirpath, name)
                real = Path(child).resolve()
                if real in chain:
                    report(HarvestingError(f"Symbolic link loop detected at {child}"))
                    dirnames.remove(name)
                    continue
                chains[child] = chain | {real}

        current = Path(dirpath)
        for name in filenames:
            path = current / name
            if path.is_symlink() and not path.exists():
                report(HarvestingError(f"Broken symbolic link: {path}"))
                continue
            if spec.match_file(path.relative_to(root).as_posix()):
                logger.debug(f"Matched {path}")
                yield path
