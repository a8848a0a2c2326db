"""
Identifier Adapters

Call-site sugar for registry operations without patching built-in types:

    identifier_of = registry.register_native_extensions()
    identifier_of("app.util").include()
    identifier_of(["app.util.slugify", "app.ui.*"]).use()

IdentifierRef is a str and IdentifierList is a list, so both can be
passed anywhere a plain identifier (or list of them) is accepted.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional, Union

if TYPE_CHECKING:
    from .registry import NamespaceRegistry, ScopedImporter


class IdentifierRef(str):
    """A single identifier bound to a registry."""

    def __new__(cls, value: str, registry: 'NamespaceRegistry'):
        ref = super().__new__(cls, value)
        ref._registry = registry
        return ref

    def namespace(self, attachment: Optional[Any] = None) -> Any:
        return self._registry.namespace(str(self), attachment)

    def include(self, callback: Optional[Callable[[], Any]] = None):
        return self._registry.include(str(self), callback)

    def use(self, callback: Optional[Callable[[], Any]] = None):
        return self._registry.use(str(self), callback)

    def from_(self) -> 'ScopedImporter':
        return self._registry.from_(str(self))

    def provide(self) -> None:
        self._registry.provide(str(self))


class IdentifierList(list):
    """Several identifiers bound to a registry."""

    def __init__(self, values: Iterable[str], registry: 'NamespaceRegistry'):
        super().__init__(str(value) for value in values)
        self._registry = registry

    def use(self, callback: Optional[Callable[[], Any]] = None):
        return self._registry.use(list(self), callback)

    def provide(self) -> None:
        self._registry.provide(list(self))


def identifier_of(
    value: Union[str, Iterable[str]],
    registry: 'NamespaceRegistry'
) -> Union[IdentifierRef, IdentifierList]:
    """Wrap a string or an iterable of strings for `registry`."""
    if isinstance(value, str):
        return IdentifierRef(value, registry)
    return IdentifierList(value, registry)
