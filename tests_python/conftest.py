"""Shared fixtures for the staging test suite."""

from __future__ import annotations

import importlib
from pathlib import Path
from types import ModuleType

import pytest

from stager.template_utils import TemplateEngine


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create an isolated source tree to stage files from."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def output_root(tmp_path: Path) -> Path:
    """Return a staging root that does not exist yet."""
    return tmp_path / "stage"


@pytest.fixture
def engine() -> TemplateEngine:
    """Template engine with the variables used across the suite."""
    return TemplateEngine({"name": "tool", "version": "1.2.3", "platform": "linux"})


@pytest.fixture
def stage_cli() -> ModuleType:
    """Import the command-line module."""
    return importlib.import_module("stage")
