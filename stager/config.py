"""Declarative stage model and its TOML, JSON and YAML loader.

A stage file maps logical target directories (absolute paths where ``/`` is
the staging root) to ordered lists of sources. Every path-bearing field is a
:class:`~stager.template_utils.Template` rendered just before translation.

Usage
-----
Load a stage file and render it into builders::

    from pathlib import Path
    from stager.config import load_config
    from stager.template_utils import TemplateEngine

    config = load_config(Path("stage.toml"))
    engine = TemplateEngine(config.as_template_context({"version": "1.2.3"}))
    for target, sources in config.targets.items():
        print(target.render(engine), [type(s).__name__ for s in sources])
"""

from __future__ import annotations

import dataclasses
import json
import typing as typ
from pathlib import Path

import tomllib
import yaml

from .errors import ErrorCollector, InvalidConfigurationError
from .staging.builder import (
    AccessSpec,
    Directory,
    SourceFile,
    SourceFiles,
    Symlink,
)
from .template_utils import OneOrMany, Template, TemplateEngine, render_many

__all__ = [
    "DirectoryConfig",
    "SourceConfig",
    "SourceFileConfig",
    "SourceFilesConfig",
    "StageConfig",
    "SymlinkConfig",
    "load_config",
    "parse_config",
]


def _render_optional(template: Template | None, engine: TemplateEngine) -> str | None:
    return template.render(engine) if template is not None else None


@dataclasses.dataclass(frozen=True, slots=True)
class DirectoryConfig:
    """Override the defaults of the target directory itself."""

    access: tuple[AccessSpec, ...] = ()

    def render(self, engine: TemplateEngine) -> Directory:
        return Directory(access=self.access)


@dataclasses.dataclass(frozen=True, slots=True)
class SourceFileConfig:
    """Describe a single file to stage into the target directory.

    Parameters
    ----------
    path : Template
        Absolute path of the file to copy.
    rename : Template | None, optional
        File name inside the target directory; defaults to the source name.
    symlink : OneOrMany | None, optional
        Names of symbolic links, in the same target directory, pointing at the
        staged copy.
    access : tuple[AccessSpec, ...], optional
        Permission operations for the staged copy.

    Examples
    --------
    >>> cfg = SourceFileConfig(  # doctest: +SKIP
    ...     path=Template("{build_dir}/tool"),
    ...     symlink=Template("tool-{version}"),
    ... )
    """

    path: Template
    rename: Template | None = None
    symlink: OneOrMany | None = None
    access: tuple[AccessSpec, ...] = ()

    def render(self, engine: TemplateEngine) -> SourceFile:
        return SourceFile(
            path=Path(self.path.render(engine)),
            rename=_render_optional(self.rename, engine),
            symlink=tuple(render_many(engine, self.symlink)),
            access=self.access,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class SourceFilesConfig:
    """Describe a glob-selected collection of files to stage.

    Parameters
    ----------
    path : Template
        Absolute root the patterns are evaluated against.
    pattern : OneOrMany
        Gitignore-style patterns.
    follow_links : bool, default=False
        Follow symbolic links to directories while walking.
    allow_empty : bool, default=False
        Accept patterns that match nothing.
    access : tuple[AccessSpec, ...], optional
        Permission operations for every staged file.
    """

    path: Template
    pattern: OneOrMany
    follow_links: bool = False
    allow_empty: bool = False
    access: tuple[AccessSpec, ...] = ()

    def render(self, engine: TemplateEngine) -> SourceFiles:
        return SourceFiles(
            path=Path(self.path.render(engine)),
            pattern=tuple(render_many(engine, self.pattern)),
            follow_links=self.follow_links,
            allow_empty=self.allow_empty,
            access=self.access,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class SymlinkConfig:
    """Describe a symbolic link to stage into the target directory."""

    target: Template
    rename: Template | None = None
    access: tuple[AccessSpec, ...] = ()

    def render(self, engine: TemplateEngine) -> Symlink:
        return Symlink(
            target=Path(self.target.render(engine)),
            rename=_render_optional(self.rename, engine),
            access=self.access,
        )


SourceConfig = typ.Union[DirectoryConfig, SourceFileConfig, SourceFilesConfig, SymlinkConfig]


@dataclasses.dataclass(frozen=True, slots=True)
class StageConfig:
    """Concrete configuration produced by :func:`load_config`.

    Parameters
    ----------
    targets : Mapping[Template, Sequence[SourceConfig]]
        Logical target directory templates and the sources populating them,
        in configured order.
    variables : Mapping[str, Any], optional
        Template variables declared by the stage file.
    """

    targets: typ.Mapping[Template, typ.Sequence[SourceConfig]]
    variables: typ.Mapping[str, typ.Any] = dataclasses.field(default_factory=dict)

    def as_template_context(
        self, overrides: typ.Mapping[str, typ.Any] | None = None
    ) -> dict[str, typ.Any]:
        """Return the stage variables updated with ``overrides``."""
        return dict(self.variables) | dict(overrides or {})


def load_config(config_file: Path) -> StageConfig:
    """Load the stage description stored in ``config_file``.

    The format is chosen from the suffix: ``.toml``, ``.json``, ``.yaml`` or
    ``.yml``.

    Parameters
    ----------
    config_file : Path
        Path to the stage file.

    Returns
    -------
    StageConfig
        Parsed, immutable stage description.

    Raises
    ------
    FileNotFoundError
        Raised when ``config_file`` does not exist.
    InvalidConfigurationError
        Raised when the file cannot be read or decoded.
    StageErrors
        Raised with every schema violation found in the file.
    """
    config_file = Path(config_file)
    if not config_file.is_file():
        message = f"Configuration file not found at {config_file}"
        raise FileNotFoundError(message)

    data = _load_document(config_file)
    return parse_config(data, origin=str(config_file))


def _load_document(path: Path) -> typ.Any:
    suffix = path.suffix.lower()
    try:
        if suffix == ".toml":
            with path.open("rb") as handle:
                return tomllib.load(handle)
        if suffix == ".json":
            with path.open(encoding="utf-8") as handle:
                return json.load(handle)
        if suffix in {".yaml", ".yml"}:
            with path.open(encoding="utf-8") as handle:
                return yaml.safe_load(handle)
    except (
        tomllib.TOMLDecodeError,
        json.JSONDecodeError,
        yaml.YAMLError,
        UnicodeDecodeError,
    ) as exc:
        message = f"Cannot parse {path}: {exc}"
        raise InvalidConfigurationError(message) from exc
    except OSError as exc:
        message = f"Cannot read {path}: {exc}"
        raise InvalidConfigurationError(message) from exc
    message = f"Unsupported configuration format '{path.suffix}' for {path}"
    raise InvalidConfigurationError(message)


def parse_config(data: typ.Any, *, origin: str = "<stage>") -> StageConfig:
    """Validate decoded stage data and build a :class:`StageConfig`.

    All entries are checked before failing so a single run reports every
    schema problem.
    """

    if not isinstance(data, dict):
        message = f"Stage configuration must be a table ({origin})"
        raise InvalidConfigurationError(message)

    errors = ErrorCollector()
    with errors.capture(context=origin):
        _reject_unknown_keys(data, {"stage", "variables"}, "top level")
    with errors.capture(context=origin):
        _require_keys(data, {"stage"}, "top level")
    variables = data.get("variables", {})
    if not isinstance(variables, dict):
        errors.push(InvalidConfigurationError("[variables] must be a table"), origin)
        variables = {}
    stage = data.get("stage", {})
    if not isinstance(stage, dict):
        errors.push(InvalidConfigurationError("[stage] must be a table"), origin)
        stage = {}

    targets: dict[Template, tuple[SourceConfig, ...]] = {}
    for target, entries in stage.items():
        label = f"{origin} [stage.{target!r}]"
        if not isinstance(entries, list):
            errors.push(
                InvalidConfigurationError("Sources must be a list of tables"), label
            )
            continue
        sources: list[SourceConfig] = []
        for index, entry in enumerate(entries, start=1):
            with errors.capture(context=f"{label} entry #{index}"):
                sources.append(_parse_source(entry))
        targets[Template(target)] = tuple(sources)

    return errors.ok(StageConfig(targets=targets, variables=dict(variables)))


def _parse_source(entry: typ.Any) -> SourceConfig:
    if not isinstance(entry, dict):
        message = "Source entries must be tables of key/value pairs"
        raise InvalidConfigurationError(message)
    kind = entry.get("type")
    parser = _SOURCE_PARSERS.get(kind) if isinstance(kind, str) else None
    if parser is None:
        known = ", ".join(sorted(_SOURCE_PARSERS))
        message = f"Unknown source type {kind!r} (expected one of: {known})"
        raise InvalidConfigurationError(message)
    fields = {key: value for key, value in entry.items() if key != "type"}
    return parser(fields)


def _parse_directory(fields: dict[str, typ.Any]) -> DirectoryConfig:
    _reject_unknown_keys(fields, {"access"}, "Directory")
    return DirectoryConfig(access=_access(fields.get("access")))


def _parse_source_file(fields: dict[str, typ.Any]) -> SourceFileConfig:
    _reject_unknown_keys(fields, {"path", "rename", "symlink", "access"}, "SourceFile")
    _require_keys(fields, {"path"}, "SourceFile")
    return SourceFileConfig(
        path=_template(fields["path"], "path"),
        rename=_optional_template(fields.get("rename"), "rename"),
        symlink=_templates(fields.get("symlink", []), "symlink"),
        access=_access(fields.get("access")),
    )


def _parse_source_files(fields: dict[str, typ.Any]) -> SourceFilesConfig:
    _reject_unknown_keys(
        fields,
        {"path", "pattern", "follow_links", "allow_empty", "access"},
        "SourceFiles",
    )
    _require_keys(fields, {"path", "pattern"}, "SourceFiles")
    return SourceFilesConfig(
        path=_template(fields["path"], "path"),
        pattern=_templates(fields["pattern"], "pattern"),
        follow_links=_flag(fields.get("follow_links", False), "follow_links"),
        allow_empty=_flag(fields.get("allow_empty", False), "allow_empty"),
        access=_access(fields.get("access")),
    )


def _parse_symlink(fields: dict[str, typ.Any]) -> SymlinkConfig:
    _reject_unknown_keys(fields, {"target", "rename", "access"}, "Symlink")
    _require_keys(fields, {"target"}, "Symlink")
    return SymlinkConfig(
        target=_template(fields["target"], "target"),
        rename=_optional_template(fields.get("rename"), "rename"),
        access=_access(fields.get("access")),
    )


_SOURCE_PARSERS: dict[str, typ.Callable[[dict[str, typ.Any]], SourceConfig]] = {
    "Directory": _parse_directory,
    "SourceFile": _parse_source_file,
    "SourceFiles": _parse_source_files,
    "Symlink": _parse_symlink,
}


def _require_keys(section: dict[str, typ.Any], keys: set[str], label: str) -> None:
    """Ensure ``section`` defines ``keys``.

    Examples
    --------
    >>> _require_keys({"path": "/a"}, {"path"}, "SourceFile")
    """
    if missing := sorted(key for key in keys if key not in section):
        joined = ", ".join(missing)
        message = f"Missing required key(s) {joined} in {label}"
        raise InvalidConfigurationError(message)


def _reject_unknown_keys(
    section: dict[str, typ.Any], allowed: set[str], label: str
) -> None:
    if unknown := sorted(str(key) for key in section if key not in allowed):
        joined = ", ".join(unknown)
        message = f"Unknown key(s) {joined} in {label}"
        raise InvalidConfigurationError(message)


def _template(value: object, field: str) -> Template:
    if not isinstance(value, str):
        message = f"'{field}' must be a string, got {type(value).__name__}"
        raise InvalidConfigurationError(message)
    return Template(value)


def _optional_template(value: object, field: str) -> Template | None:
    return None if value is None else _template(value, field)


def _templates(value: object, field: str) -> tuple[Template, ...]:
    """Return ``value`` (a string or a list of strings) as templates."""

    if isinstance(value, str):
        return (Template(value),)
    if not isinstance(value, list):
        message = f"'{field}' must be a string or a list of strings"
        raise InvalidConfigurationError(message)
    return tuple(_template(item, field) for item in value)


def _flag(value: object, field: str) -> bool:
    if not isinstance(value, bool):
        message = f"'{field}' must be a boolean, got {value!r}"
        raise InvalidConfigurationError(message)
    return value


def _access(value: object) -> tuple[AccessSpec, ...]:
    if value is None:
        return ()
    return tuple(AccessSpec(template.source) for template in _templates(value, "access"))
