"""
Lifecycle Event Contracts

Names and payload shapes of the events the registry dispatches.

PAYLOADS:
=========
Payloads are plain mutable dicts. The bus stamps the "event" key on
dispatch and every listener of a channel receives the SAME dict, so a
listener may annotate it for the listeners registered after it.

    create        {identifier}
    include       {identifier, uri, async, callback}
    includeError  {identifier, uri, async, callback, status, error}
    provide       {identifier}
    use           {identifier}      identifier is the caller's original argument
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

from .base import Error


EventProperties = Dict[str, Any]
Listener = Callable[[EventProperties], Any]


class LifecycleEvent(str, Enum):
    """Event channels known to the registry."""
    CREATE = "create"
    INCLUDE = "include"
    INCLUDE_ERROR = "includeError"
    PROVIDE = "provide"
    USE = "use"


def channel_name(event: Union[LifecycleEvent, str]) -> str:
    """Normalize an event given as enum member or plain string."""
    if isinstance(event, LifecycleEvent):
        return event.value
    return str(event)


# =============================================================================
# PAYLOAD BUILDERS
# =============================================================================

def identifier_payload(identifier: Any) -> EventProperties:
    """Payload for create/provide/use events."""
    return {'identifier': identifier}


def load_payload(
    identifier: str,
    uri: str,
    is_async: bool,
    callback: Optional[Callable[[], Any]] = None
) -> EventProperties:
    """Payload shared by include and includeError events."""
    return {
        'identifier': identifier,
        'uri': uri,
        'async': is_async,
        'callback': callback,
    }


def with_failure(
    payload: EventProperties,
    status: Optional[int],
    error: Error
) -> EventProperties:
    """Attach the HTTP status and error record to a load payload."""
    payload['status'] = status
    payload['error'] = error
    return payload
