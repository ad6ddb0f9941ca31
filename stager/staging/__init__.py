"""Staging package exposing builders, actions, and the pipeline."""

from .actions import Action, ApplyAccess, CopyFile, CreateDirectory, CreateSymlink
from .builder import (
    AccessSpec,
    ActionBuilder,
    Directory,
    SourceFile,
    SourceFiles,
    Staging,
    Symlink,
)
from .pipeline import (
    StageResult,
    execute_actions,
    plan_stage,
    render_stage,
    stage_tree,
)

__all__ = [
    "AccessSpec",
    "Action",
    "ActionBuilder",
    "ApplyAccess",
    "CopyFile",
    "CreateDirectory",
    "CreateSymlink",
    "Directory",
    "SourceFile",
    "SourceFiles",
    "StageResult",
    "Staging",
    "Symlink",
    "execute_actions",
    "plan_stage",
    "render_stage",
    "stage_tree",
]
