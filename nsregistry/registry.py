"""
Namespace Registry

The single entry point: namespace creation, existence checks, lazy
inclusion of remote code units, imports into the scope, provide, and
lifecycle listeners.

FLOW:
=====
use/include -> InclusionRegistry checked -> on a miss the ScriptLoader
maps the identifier to a URI and drives the transport -> the unit is
executed in the scope and the identifier marked included -> listeners
notified at each phase -> caller resumes (return value when blocking,
continuation or awaited coroutine when asynchronous)

ISOLATION:
==========
Every NamespaceRegistry owns its scope, listeners and inclusion set.
There is no module-level singleton; create one registry per application
(or per test).
"""

from __future__ import annotations
from dataclasses import dataclass
from functools import partial
from types import ModuleType
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, Union
import logging

from .config import RegistryConfig
from .contracts.base import Error, ErrorCode, MissingBindingError
from .contracts.events import LifecycleEvent, Listener, identifier_payload
from .events import EventBus
from .extensions import identifier_of
from .inclusion import InclusionRegistry
from .loader import Continuation, ScriptLoader, scope_globals
from .paths import PathResolver, WILDCARD, has_child, own_members, set_child, split_target
from .transport import Transport, TransportChain, TransportFactory

logger = logging.getLogger(__name__)

DEFAULT_SCOPE_NAME = "nsregistry.scope"
REGISTRY_GLOBAL = "__registry__"

IdentifierArg = Union[str, Sequence[str]]


def _to_list(identifier: IdentifierArg) -> List[str]:
    if isinstance(identifier, str):
        return [identifier]
    return list(identifier)


class NamespaceRegistry:
    """
    Namespace/module registry over one scope object.

    Code executed by the registry sees it as `__registry__` in its
    globals, so a fetched unit can register itself with
    `__registry__.namespace("app.util", {...})`.
    """

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        transport: Optional[Transport] = None,
        transport_strategies: Optional[Iterable[TransportFactory]] = None,
        scope: Optional[Any] = None
    ):
        self._config = config or RegistryConfig()
        self._scope = scope if scope is not None else ModuleType(DEFAULT_SCOPE_NAME)
        self._bus = EventBus()
        self._included = InclusionRegistry()
        self._paths = PathResolver(self._scope, self._config, self._bus)

        if transport is not None:
            self._transports = TransportChain.fixed(transport)
        else:
            self._transports = TransportChain(self._config, transport_strategies)

        globals_ = scope_globals(self._scope)
        globals_.setdefault(REGISTRY_GLOBAL, self)
        self._loader = ScriptLoader(
            uri_for=self.map_identifier_to_uri,
            transports=self._transports,
            bus=self._bus,
            globals_=globals_
        )

    @property
    def config(self) -> RegistryConfig:
        return self._config

    @property
    def scope(self) -> Any:
        """Root of the namespace graph and the global scope of loaded code."""
        return self._scope

    @property
    def transports(self) -> TransportChain:
        return self._transports

    @property
    def included(self) -> InclusionRegistry:
        return self._included

    @property
    def pending_tasks(self) -> int:
        return len(self._loader.tasks)

    # =========================================================================
    # NAMESPACES
    # =========================================================================

    def namespace(self, identifier: str, attachment: Optional[Any] = None) -> Any:
        """Create (or return the existing) node at `identifier`."""
        return self._paths.create_or_get(identifier, attachment)

    def __call__(self, identifier: str, attachment: Optional[Any] = None) -> Any:
        return self.namespace(identifier, attachment)

    def exist(self, identifier: str) -> bool:
        return self._paths.exist(identifier)

    def get(self, identifier: str) -> Any:
        """Node at `identifier`; KeyError if it does not exist."""
        return self._paths.get(identifier)

    def map_identifier_to_uri(self, identifier: str) -> str:
        """URI policy. Override here or set `config.uri_mapper`."""
        return self._paths.map_identifier_to_uri(identifier)

    def is_included(self, identifier: str) -> bool:
        return self._included.is_included(identifier)

    # =========================================================================
    # INCLUSION
    # =========================================================================

    def include(
        self,
        identifier: str,
        on_success: Optional[Continuation] = None,
        on_error: Optional[Continuation] = None
    ):
        """
        Load the unit for `identifier` at most once.

        Already included: `on_success` runs immediately and True is
        returned. Otherwise, with `on_success` the load is scheduled on the
        running loop and its task returned; without it the call blocks
        and returns True/False.
        """
        if self._included.is_included(identifier):
            if on_success is not None:
                on_success()
            return True

        if on_success is not None:
            def mark_then_continue():
                self._included.mark(identifier)
                on_success()

            return self._loader.load(identifier, mark_then_continue, on_error)

        if self._loader.load(identifier):
            self._included.mark(identifier)
            return True
        return False

    async def include_async(self, identifier: str) -> bool:
        """Coroutine form of `include`."""
        if self._included.is_included(identifier):
            return True
        if await self._loader.load_async(identifier):
            self._included.mark(identifier)
            return True
        return False

    def provide(self, identifier: IdentifierArg) -> None:
        """
        Declare identifiers as defined by the caller so they are never
        fetched. Identifiers already in the graph or already included are
        left alone.
        """
        for current in _to_list(identifier):
            if self._paths.exist(current) or self._included.is_included(current):
                continue
            self._bus.dispatch(LifecycleEvent.PROVIDE, identifier_payload(current))
            self._included.mark(current)

    # =========================================================================
    # IMPORTS
    # =========================================================================

    def use(
        self,
        identifier: IdentifierArg,
        callback: Optional[Continuation] = None,
        auto_include: Optional[bool] = None,
        *,
        on_error: Optional[Continuation] = None
    ):
        """
        Import targets into the scope, in list order.

        "a.b.*" imports every public member of a.b; "a.b.c" imports c,
        including the unit "a.b.c" first when c is missing and auto-include
        is on. With a callback, the first load switches the remainder of
        the list to a sequential task chain on the running loop and the
        task is returned; a failed load stops the chain and calls
        `on_error` instead of `callback`. Without a callback, `on_error`
        runs once for every include that fails.
        """
        identifiers = _to_list(identifier)
        if auto_include is None:
            auto_include = self._config.auto_include

        for index, current in enumerate(identifiers):
            pending = self._import_present(current, auto_include)
            if pending is None:
                continue
            if callback is not None:
                # Fatal transport errors reach the caller, not the task.
                self._transports.acquire()
                return self._loader.tasks.schedule(self._use_chain(
                    identifier, identifiers[index:], auto_include, pending, callback, on_error
                ))
            if not self.include(current) and on_error is not None:
                on_error()
            self._bind_loaded(current, pending)

        self._finish_use(identifier, callback)
        return None

    async def use_async(
        self,
        identifier: IdentifierArg,
        auto_include: Optional[bool] = None
    ) -> bool:
        """Coroutine form of `use`. False if a required load failed."""
        if auto_include is None:
            auto_include = self._config.auto_include
        if not await self._import_sequentially(_to_list(identifier), auto_include):
            return False
        self._finish_use(identifier, None)
        return True

    def from_(self, identifier: str) -> ScopedImporter:
        """Bind include/use to one identifier."""
        return ScopedImporter(registry=self, identifier=identifier)

    def _import_present(
        self,
        identifier: str,
        auto_include: bool
    ) -> Optional[Tuple[str, str]]:
        """
        Import whatever is already in the graph.

        Returns (container path, target) when a load is still needed.
        """
        container_path, target = split_target(identifier, self._config.separator)
        container = self._paths.create_or_get(container_path)

        if target == WILDCARD:
            for name, value in own_members(container):
                set_child(self._scope, name, value)
            return None

        if has_child(container, target):
            self._bind(target, identifier)
            return None

        if auto_include:
            return container_path, target

        self._missing(identifier, "not present and auto-include is off")
        return None

    async def _import_sequentially(
        self,
        identifiers: List[str],
        auto_include: bool,
        first_pending: Optional[Tuple[str, str]] = None
    ) -> bool:
        for index, current in enumerate(identifiers):
            if index == 0 and first_pending is not None:
                pending = first_pending
            else:
                pending = self._import_present(current, auto_include)
            if pending is None:
                continue
            if not await self.include_async(current):
                logger.warning("Import of %s stopped: include failed", current)
                return False
            self._bind_loaded(current, pending)
        return True

    async def _use_chain(
        self,
        original: IdentifierArg,
        identifiers: List[str],
        auto_include: bool,
        first_pending: Tuple[str, str],
        callback: Continuation,
        on_error: Optional[Continuation]
    ) -> bool:
        try:
            loaded = await self._import_sequentially(identifiers, auto_include, first_pending)
        except MissingBindingError:
            if on_error is not None:
                on_error()
            raise
        if not loaded:
            if on_error is not None:
                on_error()
            return False
        self._finish_use(original, callback)
        return True

    def _bind(self, name: str, identifier: str) -> None:
        set_child(self._scope, name, self._paths.get(identifier))

    def _bind_loaded(self, identifier: str, pending: Tuple[str, str]) -> None:
        _, target = pending
        if self._paths.exist(identifier):
            self._bind(target, identifier)
        else:
            self._missing(identifier, "not defined after include")

    def _missing(self, identifier: str, reason: str) -> None:
        if self._config.strict:
            raise MissingBindingError(Error(
                code=ErrorCode.MISSING_BINDING,
                message=f"Cannot import {identifier!r}: {reason}"
            ).with_context('identifier', identifier))
        logger.debug("Skipping import of %s: %s", identifier, reason)

    def _finish_use(self, original: IdentifierArg, callback: Optional[Continuation]) -> None:
        self._bus.dispatch(LifecycleEvent.USE, identifier_payload(original))
        if callback is not None:
            callback()

    # =========================================================================
    # LISTENERS AND EXTENSIONS
    # =========================================================================

    def add_event_listener(self, event: Union[LifecycleEvent, str], callback: Listener) -> None:
        self._bus.add_event_listener(event, callback)

    def remove_event_listener(self, event: Union[LifecycleEvent, str], callback: Listener) -> bool:
        return self._bus.remove_event_listener(event, callback)

    def register_native_extensions(self) -> Callable[[IdentifierArg], Any]:
        """
        Return the `identifier_of` adapter bound to this registry.

        Built-in str/list are never patched; wrap values instead:
        `identifier_of("app.util").include()`. Safe to call repeatedly.
        """
        return partial(identifier_of, registry=self)


@dataclass(frozen=True)
class ScopedImporter:
    """include/use bound to one identifier; see NamespaceRegistry.from_."""
    registry: NamespaceRegistry
    identifier: str

    def resolve(self, identifier: str) -> str:
        """A leading separator makes `identifier` relative to the bound one."""
        if identifier.startswith(self.registry.config.separator):
            return self.identifier + identifier
        return identifier

    def include(self, callback: Optional[Continuation] = None):
        return self.registry.include(self.identifier, callback)

    def use(self, identifier: str, callback: Optional[Continuation] = None):
        target = self.resolve(identifier)
        if callback is not None:
            return self.registry.include(
                self.identifier,
                lambda: self.registry.use(target, callback, False)
            )
        self.registry.include(self.identifier)
        return self.registry.use(target, None, False)

    async def include_async(self) -> bool:
        return await self.registry.include_async(self.identifier)

    async def use_async(self, identifier: str) -> bool:
        await self.registry.include_async(self.identifier)
        return await self.registry.use_async(self.resolve(identifier), auto_include=False)
