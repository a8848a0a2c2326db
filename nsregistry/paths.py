"""
Path Resolver

Translates separator-delimited identifiers into locations inside the
namespace graph rooted at the registry scope.

GRAPH RULES:
============
1. Intermediate segments are plain containers (SimpleNamespace)
2. A node is any dict or any object with a __dict__; membership is
   "own member" (dict key / vars() entry), never truthiness
3. Containers are never destroyed and live data is never overwritten:
   creating an existing path returns it untouched
4. Every create_or_get call emits a `create` event, hit or miss
"""

from __future__ import annotations
from types import SimpleNamespace
from typing import Any, Callable, List, Mapping, Optional, Tuple
import logging
import threading

from .config import RegistryConfig
from .contracts.base import (
    Error, ErrorCode, NamespaceError, InvalidIdentifierError, InvalidAttachmentError
)
from .contracts.events import LifecycleEvent, identifier_payload
from .events import EventBus

logger = logging.getLogger(__name__)

WILDCARD = "*"

Container = SimpleNamespace


# =============================================================================
# IDENTIFIER GRAMMAR
# =============================================================================

def split_identifier(identifier: str, separator: str) -> List[str]:
    """
    Split an identifier into segments.

    "" is the root and yields no segments. Empty segments are rejected,
    and the wildcard may only appear as the last segment.
    """
    if len(separator) != 1 or separator == WILDCARD:
        raise InvalidIdentifierError(Error(
            code=ErrorCode.INVALID_IDENTIFIER,
            message=f"Unusable separator {separator!r} for identifier {identifier!r}"
        ).with_context('separator', separator))
    if identifier == "":
        return []
    segments = identifier.split(separator)
    last = len(segments) - 1
    for index, segment in enumerate(segments):
        if not segment:
            raise InvalidIdentifierError(Error(
                code=ErrorCode.INVALID_IDENTIFIER,
                message=f"Empty segment in identifier {identifier!r}"
            ).with_context('identifier', identifier))
        if segment == WILDCARD and index != last:
            raise InvalidIdentifierError(Error(
                code=ErrorCode.INVALID_IDENTIFIER,
                message=f"Wildcard must be the last segment: {identifier!r}"
            ).with_context('identifier', identifier))
    return segments


def split_target(identifier: str, separator: str) -> Tuple[str, str]:
    """Split into (container path, target segment)."""
    segments = split_identifier(identifier, separator)
    if not segments:
        raise InvalidIdentifierError(Error(
            code=ErrorCode.INVALID_IDENTIFIER,
            message="The root identifier has no target segment"
        ))
    return separator.join(segments[:-1]), segments[-1]


# =============================================================================
# GRAPH PRIMITIVES
# =============================================================================

def can_hold_children(node: Any) -> bool:
    return isinstance(node, dict) or hasattr(node, '__dict__')


def has_child(node: Any, name: str) -> bool:
    if isinstance(node, dict):
        return name in node
    try:
        return name in vars(node)
    except TypeError:
        return hasattr(node, name)


def get_child(node: Any, name: str) -> Any:
    if isinstance(node, dict):
        return node[name]
    return getattr(node, name)


def set_child(node: Any, name: str, value: Any) -> None:
    if isinstance(node, dict):
        node[name] = value
    else:
        setattr(node, name, value)


def _is_dunder(name: str) -> bool:
    return name.startswith('__') and name.endswith('__')


def own_members(node: Any) -> List[Tuple[str, Any]]:
    """Own public members of a node, in insertion order (dunders skipped)."""
    if isinstance(node, dict):
        items = node.items()
    else:
        try:
            items = vars(node).items()
        except TypeError:
            return []
    return [(name, value) for name, value in items if not _is_dunder(name)]


# =============================================================================
# RESOLVER
# =============================================================================

class PathResolver:
    """
    Creates and resolves identifiers inside the namespace graph.

    Check-then-create runs under a re-entrant lock so concurrent callers
    cannot both materialize the same path.
    """

    def __init__(self, scope: Any, config: RegistryConfig, bus: EventBus):
        self._scope = scope
        self._config = config
        self._bus = bus
        self._lock = threading.RLock()

    @property
    def scope(self) -> Any:
        return self._scope

    def split(self, identifier: str) -> List[str]:
        return split_identifier(identifier, self._config.separator)

    def _walk(self, segments: List[str]) -> Tuple[bool, Any]:
        node = self._scope
        for segment in segments:
            if not has_child(node, segment):
                return False, None
            node = get_child(node, segment)
        return True, node

    def exist(self, identifier: str) -> bool:
        """True for the root and for every fully materialized path."""
        found, _ = self._walk(self.split(identifier))
        return found

    def get(self, identifier: str) -> Any:
        """Return the node at `identifier`, raising KeyError if absent."""
        found, node = self._walk(self.split(identifier))
        if not found:
            raise KeyError(identifier)
        return node

    def create_or_get(
        self,
        identifier: str,
        attachment: Optional[Any] = None
    ) -> Any:
        """
        Return the node at `identifier`, creating the path if absent.

        A callable attachment becomes the leaf itself; a mapping is merged
        into the leaf container member by member. Attachments are ignored
        when the path already exists.
        """
        _check_attachment(identifier, attachment)
        segments = self.split(identifier)

        with self._lock:
            if not segments:
                node = self._scope
                if isinstance(attachment, Mapping):
                    for name, value in attachment.items():
                        set_child(node, name, value)
                elif attachment is not None:
                    raise InvalidAttachmentError(Error(
                        code=ErrorCode.INVALID_ATTACHMENT,
                        message="Only a mapping can be attached to the root scope"
                    ))
            else:
                found, node = self._walk(segments)
                if found:
                    logger.debug("Namespace %s already exists", identifier)
                else:
                    node = self._materialize(identifier, segments, attachment)

        self._bus.dispatch(LifecycleEvent.CREATE, identifier_payload(identifier))
        return node

    def _materialize(
        self,
        identifier: str,
        segments: List[str],
        attachment: Optional[Any]
    ) -> Any:
        parent = self._scope
        for depth, segment in enumerate(segments[:-1]):
            if has_child(parent, segment):
                child = get_child(parent, segment)
                if not can_hold_children(child):
                    path = self._config.separator.join(segments[:depth + 1])
                    raise NamespaceError(Error(
                        code=ErrorCode.PATH_CONFLICT,
                        message=f"{path!r} holds a {type(child).__name__} and cannot contain {identifier!r}"
                    ).with_context('identifier', identifier))
            else:
                child = Container()
                set_child(parent, segment, child)
            parent = child

        if attachment is not None and callable(attachment):
            leaf = attachment
        else:
            leaf = Container()
            if attachment is not None:
                for name, value in attachment.items():
                    set_child(leaf, name, value)

        set_child(parent, segments[-1], leaf)
        logger.debug("Created namespace %s", identifier)
        return leaf

    def map_identifier_to_uri(self, identifier: str) -> str:
        """
        Default URI policy: base_uri + path segments + script suffix.
        `config.uri_mapper` replaces it when set.
        """
        mapper: Optional[Callable[[str], str]] = self._config.uri_mapper
        if mapper is not None:
            return mapper(identifier)
        path = identifier.replace(self._config.separator, '/')
        return f"{self._config.base_uri}{path}{self._config.script_suffix}"


def _check_attachment(identifier: str, attachment: Optional[Any]) -> None:
    if attachment is None or callable(attachment) or isinstance(attachment, Mapping):
        return
    raise InvalidAttachmentError(Error(
        code=ErrorCode.INVALID_ATTACHMENT,
        message=f"Attachment for {identifier!r} must be callable or a mapping, "
                f"got {type(attachment).__name__}"
    ).with_context('identifier', identifier))
