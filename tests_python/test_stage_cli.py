"""Behavioural tests for the staging CLI entry point."""

from __future__ import annotations

from pathlib import Path
from types import ModuleType

import pytest

from stager.errors import StageError

from stage_test_helpers import list_tree, write_file, write_source_tree

STAGE_TOML = """\
[variables]
name = "tool"

[[stage."/bin"]]
type = "SourceFile"
path = "{src}/target/release/{name}"
rename = "{name}-{version}"

[[stage."/share/doc/{name}"]]
type = "SourceFile"
path = "{src}/LICENSE"
"""


@pytest.fixture
def stage_file(workspace: Path) -> Path:
    """Write a stage file and the sources it refers to."""

    write_source_tree(workspace)
    return write_file(workspace / "stage.toml", STAGE_TOML)


def test_parse_define_splits_on_first_equals(stage_cli: ModuleType) -> None:
    assert stage_cli.parse_define("version=1.2.3") == ("version", "1.2.3")
    assert stage_cli.parse_define("flags=a=b") == ("flags", "a=b")
    assert stage_cli.parse_define("empty=") == ("empty", "")


@pytest.mark.parametrize("value", ["version", "=1.2.3"])
def test_parse_define_rejects_malformed_values(
    stage_cli: ModuleType, value: str
) -> None:
    with pytest.raises(StageError, match="KEY=VALUE"):
        stage_cli.parse_define(value)


def test_environment_is_exposed_on_request(stage_cli: ModuleType) -> None:
    overrides = stage_cli._template_overrides(
        ["version=2"], with_env=True, environ={"HOME": "/home/user"}
    )

    assert overrides == {"env": {"HOME": "/home/user"}, "version": "2"}
    assert stage_cli._template_overrides([], with_env=False, environ={"A": "1"}) == {}


def test_stage_cli_stages_files(
    stage_cli: ModuleType,
    stage_file: Path,
    workspace: Path,
    output_root: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """The CLI should stage files and print each action it performs."""

    stage_cli.main(
        stage_file, output_root, define=[f"src={workspace}", "version=1.2.3"]
    )

    assert list_tree(output_root) == ["bin/tool-1.2.3", "share/doc/tool/LICENSE"]
    captured = capsys.readouterr()
    assert captured.out.splitlines() == [
        f"cp {workspace}/target/release/tool {output_root}/bin/tool-1.2.3",
        f"cp {workspace}/LICENSE {output_root}/share/doc/tool/LICENSE",
    ]
    assert f"Staged 2 action(s) into '{output_root}'." in captured.err


def test_stage_cli_dry_run_changes_nothing(
    stage_cli: ModuleType,
    stage_file: Path,
    workspace: Path,
    output_root: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    stage_cli.main(
        stage_file,
        output_root,
        dry_run=True,
        define=[f"src={workspace}", "version=1.2.3"],
    )

    assert not output_root.exists()
    captured = capsys.readouterr()
    assert len(captured.out.splitlines()) == 2
    assert "Planned 2 action(s)" in captured.err


def test_stage_cli_reads_environment(
    stage_cli: ModuleType,
    workspace: Path,
    output_root: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    write_file(workspace / "tool")
    stage_file = write_file(
        workspace / "stage.toml",
        '[[stage."/bin"]]\ntype = "SourceFile"\npath = "{env[TOOL_SRC]}/tool"\n',
    )
    monkeypatch.setenv("TOOL_SRC", str(workspace))

    stage_cli.main(stage_file, output_root, dry_run=True, with_env=True)

    assert capsys.readouterr().out.strip() == (
        f"cp {workspace}/tool {output_root}/bin/tool"
    )


def test_stage_cli_reports_configuration_errors(
    stage_cli: ModuleType,
    stage_file: Path,
    output_root: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Unknown template variables exit with the data error status."""

    with pytest.raises(SystemExit) as exc:
        stage_cli.main(stage_file, output_root)

    assert exc.value.code == stage_cli.EXIT_DATAERR
    err = capsys.readouterr().err
    assert "error: 2 staging error(s):" in err
    assert "Invalid template key 'src'" in err
    assert not output_root.exists()


def test_stage_cli_reports_missing_config(
    stage_cli: ModuleType, workspace: Path, output_root: Path
) -> None:
    with pytest.raises(SystemExit) as exc:
        stage_cli.main(workspace / "missing.toml", output_root)

    assert exc.value.code == stage_cli.EXIT_NOINPUT


def test_stage_cli_reports_missing_sources(
    stage_cli: ModuleType, workspace: Path, output_root: Path
) -> None:
    stage_file = write_file(
        workspace / "stage.toml",
        f'[[stage."/doc"]]\ntype = "SourceFiles"\npath = "{workspace}/missing"\n'
        'pattern = "*"\n',
    )

    with pytest.raises(SystemExit) as exc:
        stage_cli.main(stage_file, output_root)

    assert exc.value.code == stage_cli.EXIT_IOERR


def test_stage_cli_reports_execution_failures(
    stage_cli: ModuleType, workspace: Path, output_root: Path
) -> None:
    write_file(workspace / "tool")
    stage_file = write_file(
        workspace / "stage.toml",
        f'[[stage."/bin"]]\ntype = "SourceFile"\npath = "{workspace}/tool"\n'
        'access = "0755"\n',
    )

    with pytest.raises(SystemExit) as exc:
        stage_cli.main(stage_file, output_root)

    assert exc.value.code == stage_cli.EXIT_SOFTWARE
    assert (output_root / "bin" / "tool").is_file(), "Copy runs before the failure"


def test_stage_cli_rejects_bad_define(
    stage_cli: ModuleType, stage_file: Path, output_root: Path
) -> None:
    with pytest.raises(SystemExit) as exc:
        stage_cli.main(stage_file, output_root, define=["version"])

    assert exc.value.code == stage_cli.EXIT_DATAERR


def test_stage_cli_clean_keeps_stage_file(
    stage_cli: ModuleType, workspace: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Cleaning a directory that holds the stage file is refused."""

    write_file(workspace / "tool")
    stage_file = write_file(
        workspace / "out" / "stage.toml",
        f'[[stage."/bin"]]\ntype = "SourceFile"\npath = "{workspace}/tool"\n',
    )

    with pytest.raises(SystemExit) as exc:
        stage_cli.main(stage_file, workspace / "out", clean=True)

    assert exc.value.code == stage_cli.EXIT_SOFTWARE
    assert stage_file.exists()
    assert "contains the input" in capsys.readouterr().err
