"""Command-line entry point for the staging helper.

Examples
--------
Preview the actions for a stage file without touching the output directory::

    stage packaging/stage.toml build/stage --dry-run --define version=1.2.3

Stage into a fresh directory, exposing the environment to templates::

    stage packaging/stage.toml build/stage --clean --with-env
"""

from __future__ import annotations

import logging
import os
import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import Parameter

from stager import (
    ErrorKind,
    InvalidConfigurationError,
    StageError,
    load_config,
    stage_tree,
)

EXIT_DATAERR = 65
EXIT_NOINPUT = 66
EXIT_SOFTWARE = 70
EXIT_IOERR = 74

_EXIT_CODES = {
    ErrorKind.INVALID_CONFIGURATION: EXIT_DATAERR,
    ErrorKind.HARVESTING_FAILED: EXIT_IOERR,
    ErrorKind.STAGING_FAILED: EXIT_SOFTWARE,
}

app = cyclopts.App(help="Stage files into a directory tree from a declarative stage file.")


def parse_define(value: str) -> tuple[str, str]:
    """Split a ``KEY=VALUE`` template variable definition."""
    key, sep, rendered = value.partition("=")
    if not sep or not key:
        message = f"Template variables must be KEY=VALUE, got: {value!r}"
        raise InvalidConfigurationError(message)
    return key, rendered


def _template_overrides(
    define: typ.Sequence[str], *, with_env: bool, environ: typ.Mapping[str, str]
) -> dict[str, typ.Any]:
    overrides: dict[str, typ.Any] = {}
    if with_env:
        overrides["env"] = dict(environ)
    overrides.update(parse_define(item) for item in define)
    return overrides


@app.default
def main(
    config_file: Path,
    output: Path,
    *,
    dry_run: bool = False,
    clean: bool = False,
    define: list[str] | None = None,
    with_env: bool = False,
    verbose: typ.Annotated[bool, Parameter(name=["--verbose", "-v"])] = False,
) -> None:
    """Stage the sources described by ``config_file`` into ``output``.

    Parameters
    ----------
    config_file:
        Path to the TOML, JSON or YAML stage file.
    output:
        Staging root that all targets are confined to.
    dry_run:
        Print the planned actions without changing the filesystem.
    clean:
        Remove ``output`` before staging.
    define:
        Template variables as ``KEY=VALUE``; they override the stage file's
        ``[variables]``.
    with_env:
        Expose the process environment to templates as ``env``.
    verbose:
        Enable debug logging.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    try:
        config = load_config(Path(config_file))
        overrides = _template_overrides(
            define or [], with_env=with_env, environ=os.environ
        )
        result = stage_tree(
            config,
            Path(output),
            context=overrides,
            dry_run=dry_run,
            clean=clean,
            keep=(Path(config_file),),
            report=print,
        )
    except FileNotFoundError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(EXIT_NOINPUT) from exc
    except StageError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(_EXIT_CODES[exc.kind]) from exc

    verb = "Planned" if dry_run else "Staged"
    print(
        f"{verb} {len(result.actions)} action(s) into '{output}'.",
        file=sys.stderr,
    )


if __name__ == "__main__":
    app()
