"""
Registry Contracts

Shared types consumed by every registry component. Components import
from here, never from each other's internals.
"""

from .base import (
    ErrorCode,
    Error,
    Result,
    NamespaceError,
    TransportUnavailable,
    MissingBindingError,
    InvalidIdentifierError,
    InvalidAttachmentError,
)
from .events import (
    EventProperties,
    Listener,
    LifecycleEvent,
    channel_name,
)

__all__ = [
    'ErrorCode',
    'Error',
    'Result',
    'NamespaceError',
    'TransportUnavailable',
    'MissingBindingError',
    'InvalidIdentifierError',
    'InvalidAttachmentError',
    'EventProperties',
    'Listener',
    'LifecycleEvent',
    'channel_name',
]
