"""Jinja2 environment for page templates.

Templates never see a plain dict: every name is looked up lazily through the
page's :class:`~plfa_site.core.context.Context`. ``{% if subtitle %}`` is false
when the field cannot be resolved, while printing a missing field raises the
resolver's :class:`MissingFieldError` and fails the page.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from jinja2 import (
    Environment,
    FunctionLoader,
    Template,
    TemplateError,
    TemplateSyntaxError,
    Undefined,
    UndefinedError,
)
from jinja2.runtime import Context as JinjaContext
from jinja2.utils import missing

from plfa_site.core.context import Context, ListValue, ObjectValue
from plfa_site.core.exceptions import MissingFieldError, ParseError
from plfa_site.core.ports import BuildAccess
from plfa_site.core.types import Item
from plfa_site.engine import filters

FIELDS_KEY = "__plfa_fields__"


class MissingField(Undefined):
    """Undefined value that remembers why the field was missing."""

    __slots__ = ("_field_error",)

    def __init__(self, *args: Any, field_error: MissingFieldError | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._field_error = field_error

    def _fail(self, *args: Any, **kwargs: Any) -> Any:
        if self._field_error is not None:
            raise self._field_error
        name = self._undefined_name or "<unknown>"
        raise MissingFieldError(name, reason=self._undefined_message)

    __str__ = __iter__ = __len__ = _fail  # type: ignore[assignment]


def expose(value: Any, build: BuildAccess) -> Any:
    """Turn resolver results into values templates can iterate and index."""
    if isinstance(value, ListValue):
        return [FieldView(value.context, item, build) for item in value.items]
    if isinstance(value, ObjectValue):
        return ObjectView(value, build)
    if isinstance(value, list):
        return [expose(element, build) for element in value]
    return value


class _LazyFields:
    def _lookup(self, key: str) -> Any:
        raise NotImplementedError

    def lookup(self, key: str) -> Any:
        try:
            return self._lookup(key)
        except MissingFieldError as exc:
            return MissingField(name=key, field_error=exc)

    def __getattr__(self, key: str) -> Any:
        if key.startswith("__"):
            raise AttributeError(key)
        return self.lookup(key)

    def __getitem__(self, key: str) -> Any:
        return self.lookup(key)


class FieldView(_LazyFields):
    """A context bound to one item."""

    def __init__(self, context: Context, item: Item, build: BuildAccess) -> None:
        self._context = context
        self._item = item
        self._build = build

    def _lookup(self, key: str) -> Any:
        return expose(self._context.resolve(key, self._item, self._build), self._build)

    def __repr__(self) -> str:
        return f"FieldView({self._item.identifier!r})"


class ObjectView(_LazyFields):
    def __init__(self, value: ObjectValue, build: BuildAccess) -> None:
        self._value = value
        self._build = build

    def _lookup(self, key: str) -> Any:
        return expose(self._value.resolve(key, self._build), self._build)

    def __repr__(self) -> str:
        return f"ObjectView({dict(self._value.data)!r})"


class FieldContext(JinjaContext):
    """Jinja context that falls back to the page's field resolvers."""

    def resolve_or_missing(self, key: str) -> Any:
        value = super().resolve_or_missing(key)
        if value is missing:
            fields = self.parent.get(FIELDS_KEY)
            if isinstance(fields, _LazyFields):
                return fields.lookup(key)
        return value


class TemplateLoader:
    """Compiles and renders page templates.

    Supports:
    - Templates stored as build items (``templates/page.html``)
    - Item bodies used as templates themselves (``apply_as_template``)
    - Custom filters (date formatting, pretty URLs)
    """

    def __init__(self, source: Callable[[str], str]) -> None:
        """Initialize TemplateLoader.

        Args:
            source: Returns the template text for an identifier; normally the
                body of the compiled template item.

        """
        self.env = Environment(
            loader=FunctionLoader(source),
            autoescape=False,
            keep_trailing_newline=True,
            undefined=MissingField,
        )
        self.env.context_class = FieldContext
        self._register_filters()

    def _register_filters(self) -> None:
        """Register custom Jinja2 filters."""
        self.env.filters["format_datetime"] = filters.format_datetime
        self.env.filters["pretty_url"] = filters.pretty_url

    def load_template(self, template_name: str) -> Template:
        try:
            return self.env.get_template(template_name)
        except TemplateSyntaxError as exc:
            raise ParseError(template_name, f"line {exc.lineno}: {exc.message}") from exc

    def from_string(self, text: str, *, name: str) -> Template:
        try:
            return self.env.from_string(text)
        except TemplateSyntaxError as exc:
            raise ParseError(name, f"line {exc.lineno}: {exc.message}") from exc

    def render(self, template: Template, context: Context, item: Item, build: BuildAccess) -> str:
        try:
            return template.render({FIELDS_KEY: FieldView(context, item, build)})
        except UndefinedError as exc:
            raise MissingFieldError("<template>", item.identifier, reason=exc.message or str(exc)) from exc
        except TemplateError as exc:
            raise ParseError(item.identifier, exc.message or str(exc)) from exc
