"""Core staging pipeline: render, plan, and execute actions."""

from __future__ import annotations

import dataclasses
import logging
import shutil
import typing as typ
from pathlib import Path, PurePosixPath

from ..errors import ErrorCollector, InvalidConfigurationError, StageError
from ..fs_utils import abs_to_rel, logical_path
from ..template_utils import TemplateEngine
from .actions import Action, CopyFile
from .builder import ActionBuilder, Staging

if typ.TYPE_CHECKING:
    from ..config import StageConfig

__all__ = [
    "StageResult",
    "execute_actions",
    "plan_stage",
    "render_stage",
    "stage_tree",
]

logger = logging.getLogger(__name__)


@dataclasses.dataclass(slots=True)
class StageResult:
    """Outcome of :func:`execute_actions` and :func:`stage_tree`."""

    actions: list[Action]
    dry_run: bool
    output_root: Path | None = None

    @property
    def previews(self) -> list[str]:
        """One preview line per action, in execution order."""
        return [str(action) for action in self.actions]


def render_stage(config: StageConfig, engine: TemplateEngine) -> Staging:
    """Render ``config``'s templates into a :class:`Staging` of builders.

    Target templates are rendered and confined to the staging root; every
    source is rendered into its builder. Failures are collected across all
    targets and sources before raising.

    Raises
    ------
    StageErrors
        Raised with every rendering, sandbox, and duplicate-target failure.
    """

    errors = ErrorCollector()
    targets: dict[PurePosixPath, list[ActionBuilder]] = {}
    for template, sources in config.targets.items():
        label = f"target {template.source!r}"
        try:
            target = abs_to_rel(template.render(engine))
        except StageError as exc:
            errors.push(exc, label)
            continue
        if target in targets:
            message = f"Duplicate target {logical_path(target)} after rendering"
            errors.push(InvalidConfigurationError(message), label)
            continue

        builders: list[ActionBuilder] = []
        for index, source in enumerate(sources, start=1):
            with errors.capture(context=f"{label} source #{index}"):
                builders.append(source.render(engine))
        targets[target] = builders
    return errors.ok(Staging(targets))


def plan_stage(
    config: StageConfig, engine: TemplateEngine, output_root: Path
) -> list[Action]:
    """Return the ordered actions that stage ``config`` into ``output_root``."""

    actions = render_stage(config, engine).build(Path(output_root))
    logger.info(f"Planned {len(actions)} action(s) for {output_root}")
    return actions


def execute_actions(
    actions: typ.Sequence[Action],
    *,
    dry_run: bool = False,
    report: typ.Callable[[str], None] | None = None,
) -> StageResult:
    """Run ``actions`` in order, or only preview them when ``dry_run`` is set.

    Parameters
    ----------
    actions : Sequence[Action]
        Actions produced by :func:`plan_stage`.
    dry_run : bool, default=False
        Emit previews without touching the filesystem.
    report : Callable[[str], None] | None, optional
        Receives each action's preview line before it runs. Real runs and dry
        runs report identical lines.

    Returns
    -------
    StageResult
        The actions reported, in order.

    Raises
    ------
    StageError
        Raised on the first failing action; the message names that action and
        the remaining actions are skipped.
    """

    for action in actions:
        preview = str(action)
        logger.debug(preview)
        if report is not None:
            report(preview)
        if dry_run:
            continue
        try:
            action.perform()
        except StageError as exc:
            message = f"Failed staging files: {preview}: {exc}"
            raise StageError(message) from exc
    return StageResult(list(actions), dry_run)


def _refuse_unsafe_clean(
    output_root: Path, actions: typ.Sequence[Action], keep: typ.Iterable[Path]
) -> None:
    """Refuse to clean a filesystem root or a directory holding stage inputs."""

    resolved = output_root.resolve()
    if resolved == Path(resolved.anchor):
        message = f"Refusing to clean filesystem root: {output_root}"
        raise StageError(message)
    inputs = [action.source for action in actions if isinstance(action, CopyFile)]
    for path in (*inputs, *keep):
        if Path(path).resolve().is_relative_to(resolved):
            message = f"Refusing to clean {output_root}: it contains the input {path}"
            raise StageError(message)


def _initialize_output_root(output_root: Path) -> None:
    """Create a clean ``output_root`` ready to receive staged files.

    Examples
    --------
    >>> output_root = Path("/tmp/stage")
    >>> (output_root / "old").mkdir(parents=True, exist_ok=True)
    >>> _initialize_output_root(output_root)
    >>> list(output_root.iterdir())
    []
    """

    try:
        if output_root.is_symlink() or output_root.is_file():
            output_root.unlink()
        elif output_root.exists():
            shutil.rmtree(output_root)
        output_root.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        message = f"Cannot clean output directory {output_root}: {exc}"
        raise StageError(message) from exc


def stage_tree(
    config: StageConfig,
    output_root: Path,
    *,
    context: typ.Mapping[str, typ.Any] | None = None,
    dry_run: bool = False,
    clean: bool = False,
    keep: typ.Iterable[Path] = (),
    report: typ.Callable[[str], None] | None = None,
) -> StageResult:
    """Stage ``config`` into ``output_root``.

    Parameters
    ----------
    config : StageConfig
        Parsed stage description.
    output_root : Path
        Staging root that every target is confined to.
    context : Mapping[str, Any] | None, optional
        Template variables layered over ``config.variables``.
    dry_run : bool, default=False
        Report the planned actions without performing them.
    clean : bool, default=False
        Remove ``output_root`` before staging. The removal itself is skipped on
        dry runs, but an unsafe ``output_root`` is refused either way.
    keep : Iterable[Path], optional
        Further inputs, such as the stage file, that cleaning must not delete.
    report : Callable[[str], None] | None, optional
        Receives each action's preview line.

    Returns
    -------
    StageResult
        Summary of the actions reported for ``output_root``.

    Raises
    ------
    StageErrors
        Raised with every translation failure before anything is touched.
    StageError
        Raised when cleaning ``output_root`` is unsafe or an action fails.
    """

    output_root = Path(output_root)
    engine = TemplateEngine(config.as_template_context(context))
    actions = plan_stage(config, engine, output_root)

    if clean:
        _refuse_unsafe_clean(output_root, actions, keep)
        if dry_run:
            logger.info(f"Would clean {output_root}")
        else:
            _initialize_output_root(output_root)

    result = execute_actions(actions, dry_run=dry_run, report=report)
    result.output_root = output_root
    return result
