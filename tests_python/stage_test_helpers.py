"""Shared helpers for the staging test suites."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from stager.config import SourceConfig, StageConfig
from stager.template_utils import Template

__all__ = ["list_tree", "make_stage", "write_file", "write_source_tree"]


def write_file(path: Path, content: str = "payload") -> Path:
    """Write ``content`` to ``path``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def write_source_tree(root: Path) -> None:
    """Populate ``root`` with a small build output and documentation tree.

    Parameters
    ----------
    root : Path
        Directory to populate.
    """
    write_file(root / "target" / "release" / "tool", "binary")
    write_file(root / "LICENSE", "Copyright Tool")
    write_file(root / "docs" / "README.md", "# Tool")
    write_file(root / "docs" / "guide" / "usage.md", "usage")
    write_file(root / "docs" / "guide" / "notes.txt", "notes")
    write_file(root / "docs" / "drafts" / "plan.md", "draft")


def make_stage(
    targets: dict[str, list[SourceConfig]], **variables: typ.Any
) -> StageConfig:
    """Return a :class:`StageConfig` with ``targets`` keyed by template."""
    return StageConfig(
        targets={Template(key): tuple(value) for key, value in targets.items()},
        variables=variables,
    )


def list_tree(root: Path) -> list[str]:
    """Return the POSIX paths of every non-directory entry below ``root``."""
    return sorted(
        path.relative_to(root).as_posix()
        for path in root.rglob("*")
        if path.is_symlink() or not path.is_dir()
    )
