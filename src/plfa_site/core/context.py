"""Composable template contexts.

A :class:`Context` is an ordered tuple of field resolvers. Resolving a key tries
each layer from left to right and returns the first result; a layer that does
not handle the key raises :class:`MissingFieldError`. Composition is therefore
associative and left-biased: ``(a + b).resolve(k)`` equals ``a.resolve(k)``
whenever ``a`` can resolve ``k``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any

from plfa_site.core.exceptions import MissingFieldError
from plfa_site.core.ports import BuildAccess
from plfa_site.core.routes import route_to_url
from plfa_site.core.types import Item

Resolver = Callable[[str, Item, BuildAccess], Any]


@dataclass(frozen=True)
class ListValue:
    """A list field: items exposed through their own context, order kept as given."""

    items: tuple[Item, ...]
    context: Context


@dataclass(frozen=True)
class ObjectValue:
    """A nested metadata object (e.g. a table-of-contents entry).

    Keys of ``data`` resolve directly. When the object names an ``include``
    identifier, any other key resolves through ``context`` against that item.
    """

    data: Mapping[str, Any]
    context: Context

    @property
    def include(self) -> str | None:
        value = self.data.get("include")
        return value if isinstance(value, str) else None

    def resolve(self, key: str, build: BuildAccess) -> Any:
        if key in self.data:
            return wrap_metadata(self.data[key], self.context)
        if self.include is not None:
            return self.context.resolve(key, Item(self.include), build)
        raise MissingFieldError(key, self.include)


def wrap_metadata(value: Any, context: Context) -> Any:
    if isinstance(value, Mapping):
        return ObjectValue(value, context)
    if isinstance(value, list):
        return [wrap_metadata(element, context) for element in value]
    return value


def unhandled(key: str, item: Item) -> MissingFieldError:
    return MissingFieldError(key, item.identifier)


class Context:
    """Ordered, composable set of field resolvers."""

    __slots__ = ("_layers",)

    def __init__(self, layers: Iterable[Resolver] = ()) -> None:
        flat: list[Resolver] = []
        for layer in layers:
            if isinstance(layer, Context):
                flat.extend(layer._layers)
            else:
                flat.append(layer)
        self._layers: tuple[Resolver, ...] = tuple(flat)

    @classmethod
    def compose(cls, *contexts: Context | Resolver) -> Context:
        return cls(contexts)

    def __add__(self, other: Context) -> Context:
        return Context((self, other))

    def __len__(self) -> int:
        return len(self._layers)

    def resolve(self, key: str, item: Item, build: BuildAccess) -> Any:
        # Layers that fail for a stated reason (no title, no separator) are
        # reported in preference to a bare "missing".
        explained: MissingFieldError | None = None
        for layer in self._layers:
            try:
                return layer(key, item, build)
            except MissingFieldError as exc:
                if explained is None and exc.reason is not None:
                    explained = exc
        if explained is not None:
            raise explained
        raise unhandled(key, item)

    def __call__(self, key: str, item: Item, build: BuildAccess) -> Any:
        return self.resolve(key, item, build)


# --- Field constructors -----------------------------------------------------


def field(key: str, fn: Callable[[Item, BuildAccess], Any]) -> Context:
    def resolve(requested: str, item: Item, build: BuildAccess) -> Any:
        if requested != key:
            raise unhandled(requested, item)
        return fn(item, build)

    return Context((resolve,))


def const_field(key: str, value: Any) -> Context:
    return field(key, lambda item, build: value)


def list_field(
    key: str,
    item_context: Context,
    fn: Callable[[Item, BuildAccess], Sequence[Item]],
) -> Context:
    return field(key, lambda item, build: ListValue(tuple(fn(item, build)), item_context))


def body_field(key: str = "body") -> Context:
    def body(item: Item, build: BuildAccess) -> Any:
        if item.body is None:
            raise MissingFieldError(key, item.identifier, reason="item has no body")
        return item.body

    return field(key, body)


def metadata_field() -> Context:
    """Every scalar metadata key of the item."""

    def resolve(key: str, item: Item, build: BuildAccess) -> Any:
        value = build.get_field_or_none(item.identifier, key)
        if value is None:
            raise unhandled(key, item)
        return value

    return Context((resolve,))


def url_field(key: str = "url") -> Context:
    def url(item: Item, build: BuildAccess) -> str:
        route = build.route_of(item.identifier)
        if route is None:
            raise MissingFieldError(key, item.identifier, reason="item has no route")
        return route_to_url(route)

    return field(key, url)


def path_field(key: str = "path") -> Context:
    return field(key, lambda item, build: item.identifier)


def title_field(key: str = "title") -> Context:
    """The ``title`` metadata, falling back to the file name without extensions."""

    def title(item: Item, build: BuildAccess) -> str:
        value = build.get_field_or_none(item.identifier, key)
        if value is not None:
            return value
        name = PurePosixPath(item.identifier).name
        return name.split(".", 1)[0]

    return field(key, title)


def missing_field() -> Context:
    def resolve(key: str, item: Item, build: BuildAccess) -> Any:
        raise unhandled(key, item)

    return Context((resolve,))


def default_context() -> Context:
    return Context.compose(
        body_field(),
        metadata_field(),
        url_field(),
        path_field(),
        title_field(),
        missing_field(),
    )


def toc_context(context: Context, toc_identifier: str) -> Context:
    """Fields of the table-of-contents metadata file, then ``context``.

    Entries with an ``include`` key resolve the fields they lack (``url``,
    ``titlerunning``, ``content`` ...) through ``context`` against the
    included document.
    """

    def resolve(key: str, item: Item, build: BuildAccess) -> Any:
        toc = build.get_metadata(toc_identifier)
        if key not in toc:
            raise unhandled(key, item)
        return wrap_metadata(toc[key], context)

    return Context((resolve, context))
