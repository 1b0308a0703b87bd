from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Iterable

from jinja2 import ChainableUndefined, Environment, Template

from .types import LineResult

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{([^}]+?)\}")

# Compiled once per process; undefined names, and attributes of them, render as empty strings
JINJA_ENV: Environment = Environment(undefined=ChainableUndefined, autoescape=False, keep_trailing_newline=False)


class FieldView:
    """Read-only view of a LineResult for templates.

    Both f.name and f["name"] return the field, so field names never
    collide with methods; missing fields are empty strings.
    """
    __slots__ = ("__result",)

    def __init__(self, result: LineResult) -> None:
        self.__result = result

    def __getattr__(self, name: str) -> str:
        if name.startswith("_"):
            raise AttributeError(name)
        return self.__result.get(name)

    def __getitem__(self, key: object) -> str:
        return self.__result.get(str(key))


@dataclass
class Formatter:
    """Render LineResults through a template with {key} placeholders.

    Each placeholder is replaced by the field with that key, or by an empty
    string when the line has no such field. Rendered lines are joined with
    newlines; no trailing newline is added.
    """
    template: str

    @cached_property
    def targets(self) -> tuple[str, ...]:
        """Distinct placeholder keys in order of first appearance."""
        keys = dict.fromkeys(m.group(1) for m in PLACEHOLDER_RE.finditer(self.template))
        logger.debug("Template %r has %d placeholder key(s)", self.template, len(keys))
        return tuple(keys)

    def render(self, result: LineResult) -> str:
        if not self.targets:
            return self.template
        # One lookup per key, shared by all of its occurrences
        values = {key: result.get(key) for key in self.targets}
        return PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], self.template)

    def format(self, results: Iterable[LineResult]) -> str:
        return "\n".join(self.render(result) for result in results)


@dataclass
class JinjaFormatter(Formatter):
    """Render each line with a Jinja2 template.

    The line is available as `f` (e.g. {{ f["1"] }}), and every field whose
    key is a valid identifier is also bound by name.
    """
    _compiled_template: Template = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._compiled_template = JINJA_ENV.from_string(self.template)

    def render(self, result: LineResult) -> str:
        values: dict[str, object] = {k: v for k, v in result.values.items() if k.isidentifier()}
        values["f"] = FieldView(result)
        return self._compiled_template.render(**values)
