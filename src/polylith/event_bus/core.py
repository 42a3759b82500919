"""Core Event Bus Components.

This module contains the fundamental records and errors of the event bus.
They have no dependency on the registry or on services and can be used by
any in-process publisher.

## Key Components

- **Listener**: A registered callback together with its opaque removal token
- **EventBusError**: Base exception for all event bus related errors
- **EventFireError**: Raised when an event cannot be fired
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

ListenerCallback = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class Listener:
    """A callback registered on an event.

    Attributes:
        callback: The callable invoked with the fired arguments
        listener_id: Process-unique token returned by ``listen`` and used only
            for removal
    """

    callback: ListenerCallback
    listener_id: str


class EventBusError(Exception):
    """Base exception for all event bus related errors.

    Use this for catching any event bus related error:
        ```python
        try:
            bus.fire("start")
        except EventBusError as e:
            logger.error(f"Event bus error: {e}")
        ```
    """


class EventFireError(EventBusError):
    """Raised when an event cannot be fired.

    This occurs when:
    - Listeners returned awaitables but no event loop is running to
      aggregate them
    """
