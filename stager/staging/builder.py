"""Translate rendered stage sources into concrete filesystem actions.

Each builder receives the directory it populates and the shared
:class:`~stager.errors.ErrorCollector`. A failure that invalidates the whole
source is raised; failures confined to one matched entry are pushed into the
collector so the remaining entries are still evaluated.
"""

from __future__ import annotations

import dataclasses
import logging
import typing as typ
from pathlib import Path, PurePosixPath

from ..errors import ErrorCollector, HarvestingError, InvalidConfigurationError
from ..fs_utils import logical_path, require_bare_filename
from ..glob_utils import compile_patterns, iter_matching_files
from .actions import Action, ApplyAccess, CopyFile, CreateDirectory, CreateSymlink

__all__ = [
    "AccessSpec",
    "ActionBuilder",
    "Directory",
    "SourceFile",
    "SourceFiles",
    "Staging",
    "Symlink",
]

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class AccessSpec:
    """Permission operation to apply to a staged path."""

    op: str


def _access_actions(path: Path, access: typ.Iterable[AccessSpec]) -> list[Action]:
    return [ApplyAccess(path, spec.op) for spec in access]


@dataclasses.dataclass(frozen=True, slots=True)
class Directory:
    """Create the target directory itself and apply its access overrides."""

    access: tuple[AccessSpec, ...] = ()

    def build(self, target_dir: Path, errors: ErrorCollector) -> list[Action]:
        return [CreateDirectory(target_dir), *_access_actions(target_dir, self.access)]


@dataclasses.dataclass(frozen=True, slots=True)
class SourceFile:
    """Copy one file into the target directory.

    Parameters
    ----------
    path : Path
        Absolute path of the file to copy.
    rename : str | None, optional
        File name to use inside the target directory. Defaults to the name of
        ``path``.
    symlink : tuple[str, ...], optional
        Additional names in the target directory that link to the copy.
    access : tuple[AccessSpec, ...], optional
        Permission operations applied to the copy.
    """

    path: Path
    rename: str | None = None
    symlink: tuple[str, ...] = ()
    access: tuple[AccessSpec, ...] = ()

    def build(self, target_dir: Path, errors: ErrorCollector) -> list[Action]:
        if not self.path.is_absolute():
            message = f"SourceFile path must be absolute: {self.path}"
            raise HarvestingError(message)

        filename = self.rename if self.rename is not None else self.path.name
        require_bare_filename(filename, "SourceFile rename")
        copy_target = target_dir / filename

        actions: list[Action] = [CopyFile(copy_target, self.path)]
        actions.extend(_access_actions(copy_target, self.access))
        for alias in self.symlink:
            require_bare_filename(alias, "SourceFile symlink")
            actions.append(CreateSymlink(target_dir / alias, copy_target))
        return actions


@dataclasses.dataclass(frozen=True, slots=True)
class SourceFiles:
    """Copy every file below ``path`` matching ``pattern``.

    ``pattern`` uses gitignore syntax, evaluated against paths relative to
    ``path``. Matched files keep their relative location inside the target
    directory.

    Parameters
    ----------
    path : Path
        Absolute root the patterns are evaluated against.
    pattern : tuple[str, ...]
        Gitignore-style patterns selecting the files to stage.
    follow_links : bool, default=False
        Walk into symbolic links to directories. Broken links and link loops
        are reported as errors.
    allow_empty : bool, default=False
        Treat "nothing matched" as a no-op instead of an error. The default
        makes typos in patterns obvious; opt in for "good enough" default
        configurations.
    access : tuple[AccessSpec, ...], optional
        Permission operations applied to every copied file.
    """

    path: Path
    pattern: tuple[str, ...]
    follow_links: bool = False
    allow_empty: bool = False
    access: tuple[AccessSpec, ...] = ()

    def build(self, target_dir: Path, errors: ErrorCollector) -> list[Action]:
        root = self.path
        if not root.is_absolute():
            message = f"SourceFiles path must be absolute: {root}"
            raise HarvestingError(message)
        if not root.is_dir():
            message = f"SourceFiles path is not a directory: {root}"
            raise HarvestingError(message)

        spec = compile_patterns(self.pattern)
        actions: list[Action] = []
        matched = 0
        for source in iter_matching_files(
            root, spec, follow_links=self.follow_links, onerror=errors.push
        ):
            copy_target = target_dir / source.relative_to(root)
            actions.append(CopyFile(copy_target, source))
            actions.extend(_access_actions(copy_target, self.access))
            matched += 1

        if not matched:
            message = f"No files found under {root} with patterns {list(self.pattern)}"
            if not self.allow_empty:
                raise HarvestingError(message)
            logger.info(message)
        return actions


@dataclasses.dataclass(frozen=True, slots=True)
class Symlink:
    """Create a symbolic link to ``target`` in the target directory.

    The link is named ``rename`` when given, otherwise after the last
    component of ``target``.
    """

    target: Path
    rename: str | None = None
    access: tuple[AccessSpec, ...] = ()

    def build(self, target_dir: Path, errors: ErrorCollector) -> list[Action]:
        filename = self.rename if self.rename is not None else self.target.name
        require_bare_filename(filename, "Symlink rename")
        staged = target_dir / filename
        return [CreateSymlink(staged, self.target), *_access_actions(staged, self.access)]


ActionBuilder = typ.Union[Directory, SourceFile, SourceFiles, Symlink]


@dataclasses.dataclass(frozen=True, slots=True)
class Staging:
    """For each target, the builders that populate it.

    Targets are paths relative to the staging root. They are built in
    lexicographic order of their components, so a directory precedes
    everything below it; builders of one target keep their
    configured order.
    """

    targets: typ.Mapping[PurePosixPath, typ.Sequence[ActionBuilder]]

    def build(self, output_root: Path) -> list[Action]:
        """Return every action needed to populate ``output_root``.

        Raises
        ------
        StageErrors
            Raised with all failures when any target or builder is invalid.
        """

        errors = ErrorCollector()
        actions: list[Action] = []
        for target, builders in sorted(
            self.targets.items(), key=lambda item: item[0].parts
        ):
            if target.is_absolute():
                errors.push(
                    InvalidConfigurationError(
                        f"Target must be relative to the stage root: {target}"
                    )
                )
                continue
            target_dir = output_root / target
            for index, builder in enumerate(builders, start=1):
                source_errors = ErrorCollector()
                with source_errors.capture():
                    actions.extend(builder.build(target_dir, source_errors))
                for error in source_errors:
                    errors.push(error, f"{logical_path(target)} source #{index}")
        return errors.ok(actions)
