"""Filesystem operations that populate a staging tree.

Every action has a one-line shell-like preview (``str(action)``) used for dry
runs and error context, and a :meth:`Action.perform` step that applies it.
"""

from __future__ import annotations

import abc
import dataclasses
import shutil
from pathlib import Path

from ..errors import StageError

__all__ = [
    "Action",
    "ApplyAccess",
    "CopyFile",
    "CreateDirectory",
    "CreateSymlink",
]


class Action(abc.ABC):
    """Operation for setting up the staged directory tree."""

    @abc.abstractmethod
    def perform(self) -> None:
        """Apply the action to the filesystem.

        Raises
        ------
        StageError
            Raised when the underlying filesystem call fails.
        """

    @abc.abstractmethod
    def __str__(self) -> str: ...


def _ensure_parent(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        message = f"Cannot create directory {path.parent}: {exc}"
        raise StageError(message) from exc


@dataclasses.dataclass(frozen=True, slots=True)
class CreateDirectory(Action):
    """Create ``path`` and any missing parents; existing directories are fine."""

    path: Path

    def perform(self) -> None:
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            message = f"Cannot create directory {self.path}: {exc}"
            raise StageError(message) from exc

    def __str__(self) -> str:
        return f"mkdir {self.path}"


@dataclasses.dataclass(frozen=True, slots=True)
class CopyFile(Action):
    """Copy ``source`` to ``staged``, replacing whatever ``staged`` held.

    Parameters
    ----------
    staged : Path
        Full path of the file to write inside the staging tree.
    source : Path
        Full path of the file being copied.
    """

    staged: Path
    source: Path

    def perform(self) -> None:
        _ensure_parent(self.staged)
        try:
            if self.staged.is_symlink() or self.staged.exists():
                self.staged.unlink()
            shutil.copy2(self.source, self.staged)
        except OSError as exc:
            message = f"Cannot copy {self.source} to {self.staged}: {exc}"
            raise StageError(message) from exc

    def __str__(self) -> str:
        return f"cp {self.source} {self.staged}"


@dataclasses.dataclass(frozen=True, slots=True)
class CreateSymlink(Action):
    """Create a symbolic link at ``staged`` pointing at ``target``.

    Unlike :class:`CopyFile`, an existing entry at ``staged`` is an error.
    """

    staged: Path
    target: Path

    def perform(self) -> None:
        _ensure_parent(self.staged)
        try:
            self.staged.symlink_to(self.target)
        except OSError as exc:
            message = f"Cannot link {self.staged} to {self.target}: {exc}"
            raise StageError(message) from exc

    def __str__(self) -> str:
        return f"ln -s {self.target} {self.staged}"


@dataclasses.dataclass(frozen=True, slots=True)
class ApplyAccess(Action):
    """Apply the permission operation ``op`` to ``path``.

    No permission model exists yet, so :meth:`perform` always fails. The
    action still appears in previews so dry runs show the full plan.
    """

    path: Path
    op: str

    def perform(self) -> None:
        message = f"Access operations are not supported yet: {self.op!r} on {self.path}"
        raise StageError(message)

    def __str__(self) -> str:
        return f"access {self.op} {self.path}"
