"""
nsregistry

Namespace/module registry: creates and resolves dot-delimited paths in a
scope object, lazily fetches and executes remote Python units keyed by
those paths (at most once each), and dispatches lifecycle events.

COMPONENTS (leaves first):
==========================
1. paths.PathResolver        identifier -> node, container creation, URI policy
2. transport.TransportChain  httpx / requests selection, local file reads
3. loader.ScriptLoader       fetch + execute, include/includeError events
4. inclusion.InclusionRegistry  at-most-once bookkeeping
5. events.EventBus           ordered synchronous listeners
6. registry.NamespaceRegistry  the public entry point
"""

from .config import RegistryConfig
from .contracts import (
    ErrorCode,
    Error,
    Result,
    NamespaceError,
    TransportUnavailable,
    MissingBindingError,
    InvalidIdentifierError,
    InvalidAttachmentError,
    LifecycleEvent,
)
from .events import EventBus
from .extensions import IdentifierRef, IdentifierList, identifier_of
from .inclusion import InclusionRegistry
from .loader import ScriptLoader, execute_script
from .paths import PathResolver, split_identifier
from .registry import NamespaceRegistry, ScopedImporter
from .transport import (
    Transport,
    TransportResponse,
    TransportChain,
    HttpxTransport,
    RequestsTransport,
    is_http_request_successful,
)

__version__ = "1.3.0"

__all__ = [
    'RegistryConfig',
    'ErrorCode',
    'Error',
    'Result',
    'NamespaceError',
    'TransportUnavailable',
    'MissingBindingError',
    'InvalidIdentifierError',
    'InvalidAttachmentError',
    'LifecycleEvent',
    'EventBus',
    'IdentifierRef',
    'IdentifierList',
    'identifier_of',
    'InclusionRegistry',
    'ScriptLoader',
    'execute_script',
    'PathResolver',
    'split_identifier',
    'NamespaceRegistry',
    'ScopedImporter',
    'Transport',
    'TransportResponse',
    'TransportChain',
    'HttpxTransport',
    'RequestsTransport',
    'is_http_request_successful',
]
