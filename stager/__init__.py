"""Public interface for the staging package."""

import logging

from .config import (
    DirectoryConfig,
    SourceFileConfig,
    SourceFilesConfig,
    StageConfig,
    SymlinkConfig,
    load_config,
)
from .errors import (
    ErrorCollector,
    ErrorKind,
    HarvestingError,
    InvalidConfigurationError,
    StageError,
    StageErrors,
    TemplateRenderError,
)
from .fs_utils import abs_to_rel
from .staging import StageResult, execute_actions, plan_stage, render_stage, stage_tree
from .template_utils import Template, TemplateEngine

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "DirectoryConfig",
    "ErrorCollector",
    "ErrorKind",
    "HarvestingError",
    "InvalidConfigurationError",
    "SourceFileConfig",
    "SourceFilesConfig",
    "StageConfig",
    "StageError",
    "StageErrors",
    "StageResult",
    "SymlinkConfig",
    "Template",
    "TemplateEngine",
    "TemplateRenderError",
    "abs_to_rel",
    "execute_actions",
    "load_config",
    "plan_stage",
    "render_stage",
    "stage_tree",
]
