"""Tests validating gitignore-style discovery for ``SourceFiles`` entries."""

from __future__ import annotations

import sys
import warnings
from pathlib import Path, PurePosixPath

import pytest

from stager.errors import ErrorCollector, HarvestingError, StageErrors
from stager.glob_utils import compile_patterns, iter_matching_files
from stager.staging.actions import ApplyAccess, CopyFile
from stager.staging.builder import AccessSpec, SourceFiles, Staging

from stage_test_helpers import write_source_tree

needs_symlinks = pytest.mark.skipif(
    sys.platform == "win32", reason="symbolic links need privileges on Windows"
)


def _relative(paths: list[Path], root: Path) -> list[str]:
    return [path.relative_to(root).as_posix() for path in paths]


def test_patterns_match_at_any_depth(workspace: Path) -> None:
    """A bare ``*.md`` pattern matches Markdown files in every directory."""

    write_source_tree(workspace)
    docs = workspace / "docs"

    found = list(iter_matching_files(docs, compile_patterns(["*.md"])))

    assert _relative(found, docs) == [
        "README.md",
        "drafts/plan.md",
        "guide/usage.md",
    ], "Matches should be yielded in sorted walk order"


def test_negated_patterns_exclude_directories(workspace: Path) -> None:
    """Later ``!`` patterns remove earlier matches, as in ``.gitignore``."""

    write_source_tree(workspace)
    docs = workspace / "docs"
    spec = compile_patterns(["*.md", "!drafts/"])

    assert _relative(list(iter_matching_files(docs, spec)), docs) == [
        "README.md",
        "guide/usage.md",
    ]


def test_directories_are_never_yielded(workspace: Path) -> None:
    write_source_tree(workspace)
    docs = workspace / "docs"

    found = list(iter_matching_files(docs, compile_patterns(["*"])))

    assert found, "Expected the wildcard to match files"
    assert all(path.is_file() for path in found)
    assert "guide/notes.txt" in _relative(found, docs)


def test_source_files_keeps_relative_layout(workspace: Path, output_root: Path) -> None:
    """Matched files are copied below the target with their relative paths."""

    write_source_tree(workspace)
    docs = workspace / "docs"
    target_dir = output_root / "share" / "doc"
    builder = SourceFiles(
        path=docs, pattern=("guide/*.md",), access=(AccessSpec("0644"),)
    )

    actions = builder.build(target_dir, ErrorCollector())

    assert actions == [
        CopyFile(target_dir / "guide" / "usage.md", docs / "guide" / "usage.md"),
        ApplyAccess(target_dir / "guide" / "usage.md", "0644"),
    ]


def test_empty_match_is_an_error(workspace: Path, output_root: Path) -> None:
    write_source_tree(workspace)
    builder = SourceFiles(path=workspace / "docs", pattern=("*.rst",))

    with pytest.raises(HarvestingError, match="No files found"):
        builder.build(output_root, ErrorCollector())


def test_allow_empty_accepts_no_matches(workspace: Path, output_root: Path) -> None:
    write_source_tree(workspace)
    builder = SourceFiles(path=workspace / "docs", pattern=("*.rst",), allow_empty=True)

    assert builder.build(output_root, ErrorCollector()) == []


def test_relative_root_is_rejected(output_root: Path) -> None:
    builder = SourceFiles(path=Path("docs"), pattern=("*",))

    with pytest.raises(HarvestingError, match="must be absolute"):
        builder.build(output_root, ErrorCollector())


def test_missing_root_is_rejected(workspace: Path, output_root: Path) -> None:
    builder = SourceFiles(path=workspace / "missing", pattern=("*",))

    with pytest.raises(HarvestingError, match="not a directory"):
        builder.build(output_root, ErrorCollector())


@needs_symlinks
def test_broken_symlink_is_reported(workspace: Path, output_root: Path) -> None:
    """A dangling link is an error for that entry; other matches still count."""

    write_source_tree(workspace)
    docs = workspace / "docs"
    (docs / "dangling.md").symlink_to(docs / "missing.md")
    staging = Staging(
        {PurePosixPath("doc"): [SourceFiles(path=docs, pattern=("*.md",))]}
    )

    with pytest.raises(StageErrors) as exc:
        staging.build(output_root)

    assert len(exc.value) == 1
    assert "Broken symbolic link" in str(exc.value.errors[0])
    assert str(exc.value.errors[0]).startswith("/doc source #1: ")


@needs_symlinks
def test_broken_symlink_raises_without_error_callback(workspace: Path) -> None:
    (workspace / "dangling").symlink_to(workspace / "missing")

    with pytest.raises(HarvestingError, match="Broken symbolic link"):
        list(iter_matching_files(workspace, compile_patterns(["*"])))


@needs_symlinks
def test_symlinked_directories_are_skipped_by_default(workspace: Path) -> None:
    write_source_tree(workspace)
    (workspace / "linked-docs").symlink_to(workspace / "docs", target_is_directory=True)

    found = list(iter_matching_files(workspace, compile_patterns(["README.md"])))

    assert _relative(found, workspace) == ["docs/README.md"]


@needs_symlinks
def test_follow_links_walks_linked_directories(workspace: Path) -> None:
    write_source_tree(workspace)
    (workspace / "linked-docs").symlink_to(workspace / "docs", target_is_directory=True)

    found = list(
        iter_matching_files(
            workspace, compile_patterns(["README.md"]), follow_links=True
        )
    )

    assert _relative(found, workspace) == ["docs/README.md", "linked-docs/README.md"]


@needs_symlinks
def test_follow_links_detects_loops(workspace: Path) -> None:
    """A link back to an ancestor is reported once instead of recursing."""

    write_source_tree(workspace)
    docs = workspace / "docs"
    (docs / "guide" / "loop").symlink_to(docs, target_is_directory=True)
    errors = ErrorCollector()

    found = list(
        iter_matching_files(
            docs, compile_patterns(["*.md"]), follow_links=True, onerror=errors.push
        )
    )

    assert _relative(found, docs) == ["README.md", "drafts/plan.md", "guide/usage.md"]
    assert len(errors) == 1
    assert "Symbolic link loop detected" in str(next(iter(errors)))


def test_pattern_compilation_emits_no_warnings() -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        spec = compile_patterns(["*.md", "!drafts/"])

    assert spec.match_file("guide/usage.md")
    assert not spec.match_file("drafts/plan.md")
