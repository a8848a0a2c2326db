"""
Event Bus

Named channels of ordered listener lists.

GUARANTEES:
===========
1. Dispatch is synchronous and in registration order (no queuing)
2. Removal clears a single slot and never renumbers the others, so a
   listener may unregister itself (or a later one) mid-dispatch
3. Listeners added during a dispatch are reached by that same dispatch
4. All listeners of one dispatch share the same properties dict
"""

from __future__ import annotations
from typing import Dict, List, Optional, Union
import logging

from .contracts.events import EventProperties, Listener, LifecycleEvent, channel_name

logger = logging.getLogger(__name__)


class EventBus:
    """Synchronous listener registry keyed by event name."""

    def __init__(self):
        self._listeners: Dict[str, List[Optional[Listener]]] = {}

    def add_event_listener(
        self,
        event: Union[LifecycleEvent, str],
        callback: Listener
    ) -> None:
        """Append a listener to a channel, creating the channel on first use."""
        name = channel_name(event)
        self._listeners.setdefault(name, []).append(callback)

    def remove_event_listener(
        self,
        event: Union[LifecycleEvent, str],
        callback: Listener
    ) -> bool:
        """
        Clear the first slot holding `callback`.

        Returns True if a listener was removed.
        """
        slots = self._listeners.get(channel_name(event))
        if not slots:
            return False
        for index, listener in enumerate(slots):
            if listener is callback:
                slots[index] = None
                return True
        return False

    def dispatch(
        self,
        event: Union[LifecycleEvent, str],
        properties: EventProperties
    ) -> None:
        """Invoke every live listener of a channel with `properties`."""
        name = channel_name(event)
        slots = self._listeners.get(name)
        if not slots:
            return
        properties['event'] = name
        logger.debug("Dispatching %s to %d slot(s)", name, len(slots))
        index = 0
        # Length re-read each step: listeners may register more listeners.
        while index < len(slots):
            listener = slots[index]
            if listener is not None:
                listener(properties)
            index += 1

    def listeners(self, event: Union[LifecycleEvent, str]) -> List[Listener]:
        """Live listeners of a channel, in dispatch order."""
        slots = self._listeners.get(channel_name(event), [])
        return [listener for listener in slots if listener is not None]

    def has_listeners(self, event: Union[LifecycleEvent, str]) -> bool:
        return bool(self.listeners(event))
