"""Template helpers used to render path-bearing stage fields."""

from __future__ import annotations

import dataclasses
import string
import typing as typ
from collections.abc import Mapping, Sequence
from types import MappingProxyType

from .errors import TemplateRenderError

__all__ = [
    "OneOrMany",
    "Template",
    "TemplateEngine",
    "render_many",
]


class _StrictFormatter(string.Formatter):
    """``str.format`` semantics without access to private attributes."""

    def get_field(
        self, field_name: str, args: Sequence[typ.Any], kwargs: Mapping[str, typ.Any]
    ) -> tuple[typ.Any, str]:
        if "._" in field_name:
            message = f"Access to private attributes is not allowed: '{field_name}'"
            raise AttributeError(message)
        return super().get_field(field_name, args, kwargs)


class TemplateEngine:
    """Render template strings against a fixed set of variables.

    Parameters
    ----------
    context : Mapping[str, Any]
        Variables available to every template. The engine keeps a read-only
        copy so later changes to ``context`` have no effect.

    Examples
    --------
    >>> engine = TemplateEngine({"version": "1.2.3"})
    >>> engine.render("tool-{version}")
    'tool-1.2.3'
    """

    def __init__(self, context: Mapping[str, typ.Any] | None = None) -> None:
        self._context: Mapping[str, typ.Any] = MappingProxyType(dict(context or {}))
        self._formatter = _StrictFormatter()

    @property
    def context(self) -> Mapping[str, typ.Any]:
        """Read-only view of the template variables."""
        return self._context

    def render(self, template: str) -> str:
        """Return ``template`` formatted with the engine's variables.

        Raises
        ------
        TemplateRenderError
            Raised when ``template`` is malformed or references an unknown
            variable.
        """

        try:
            return self._formatter.vformat(template, (), self._context)
        except KeyError as exc:
            message = f"Invalid template key {exc} in '{template}'"
            raise TemplateRenderError(message) from exc
        except (AttributeError, IndexError, TypeError, ValueError) as exc:
            message = f"Cannot render template '{template}': {exc}"
            raise TemplateRenderError(message) from exc

    def __repr__(self) -> str:
        return f"TemplateEngine(context={dict(self._context)!r})"


@dataclasses.dataclass(frozen=True, slots=True)
class Template:
    """Stage field holding a template string rather than a literal value."""

    source: str

    def render(self, engine: TemplateEngine) -> str:
        return engine.render(self.source)

    def __str__(self) -> str:
        return self.source


OneOrMany = typ.Union[Template, Sequence[Template]]


def render_many(engine: TemplateEngine, value: OneOrMany | None) -> list[str]:
    """Render a one-or-many template field into a list of strings.

    Examples
    --------
    >>> engine = TemplateEngine({"name": "tool"})
    >>> render_many(engine, Template("{name}"))
    ['tool']
    >>> render_many(engine, [Template("a"), Template("{name}.1")])
    ['a', 'tool.1']
    """

    if value is None:
        return []
    if isinstance(value, Template):
        return [value.render(engine)]
    return [item.render(engine) for item in value]
