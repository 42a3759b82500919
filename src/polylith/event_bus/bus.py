"""Event Bus Implementation.

This module provides the EventBus class that handles listener registration
and event firing. A bus is a plain in-process object: it has no thread, no
queue and no scheduler of its own.

## Firing semantics

``fire`` calls every listener synchronously, in registration order. Its
return value depends on what the listeners returned:

- only plain values: the first value that is not ``None`` is returned as is
- at least one awaitable: a future is returned that settles once every
  awaitable has settled (failures are logged, never propagated) and resolves
  to the first plain value, or else the first awaited value that is not
  ``None``

Callers that cannot know whether a listener is asynchronous should use
``async_fire``, which always awaits.

```python
bus = EventBus("app:")

def on_save(doc):
    return "saved"

async def on_save_remote(doc):
    await upload(doc)
    return "uploaded"

bus.listen("save", on_save)
bus.listen("save", on_save_remote)

result = await bus.async_fire("save", doc)  # "saved"
```

"""

import asyncio
import inspect
import uuid
from typing import Any

from loguru import logger

from .core import EventFireError, Listener, ListenerCallback


class EventBus:
    """Namespaced publish/subscribe primitive.

    Every event name is prepended with ``prefix`` so that unrelated buses can
    share infrastructure without colliding.
    """

    def __init__(self, prefix: str = "") -> None:
        """Initialize a new EventBus instance.

        Args:
            prefix: Namespace prepended to every event name
        """
        self._prefix = prefix
        self._listeners: dict[str, list[Listener]] = {}

    @property
    def prefix(self) -> str:
        """The namespace of this bus."""
        return self._prefix

    def listen(self, event_name: str, callback: ListenerCallback) -> str:
        """Register a callback for an event.

        Args:
            event_name: Name of the event, without namespace
            callback: Called with the fired arguments

        Returns:
            Token to pass to ``unlisten``
        """
        listener_id = str(uuid.uuid4())
        name = self._prefix + event_name

        self._listeners.setdefault(name, []).append(Listener(callback, listener_id))
        logger.trace(f"Registered listener {listener_id} for {name}")

        return listener_id

    def unlisten(self, event_name: str, listener_id: str) -> None:
        """Remove the listener registered under ``listener_id``, if present."""
        name = self._prefix + event_name
        listeners = self._listeners.get(name, [])

        index = next((i for i, listener in enumerate(listeners) if listener.listener_id == listener_id), None)
        if index is not None:
            del listeners[index]
            logger.trace(f"Removed listener {listener_id} for {name}")

    def has_listeners(self, event_name: str) -> bool:
        """Check whether at least one listener is registered for an event."""
        return bool(self._listeners.get(self._prefix + event_name))

    def get_listener_count(self, event_name: str) -> int:
        """Get the number of listeners registered for an event."""
        return len(self._listeners.get(self._prefix + event_name, []))

    def get_registered_events(self) -> list[str]:
        """Get the names (without namespace) of all events with listeners."""
        offset = len(self._prefix)
        return [name[offset:] for name, listeners in self._listeners.items() if listeners]

    def clear_listeners(self, event_name: str | None = None) -> None:
        """Clear listeners for a specific event or for all events."""
        if event_name is None:
            self._listeners.clear()
        else:
            self._listeners.pop(self._prefix + event_name, None)

    def fire(self, event_name: str, *args: Any) -> Any:
        """Call every listener of an event.

        Args:
            event_name: Name of the event, without namespace
            *args: Arguments passed to every listener

        Returns:
            ``None`` if there are no listeners. The first plain result that is
            not ``None`` if no listener returned an awaitable. Otherwise a
            future resolving to the aggregated result.

        Raises:
            EventFireError: If a listener returned an awaitable while no event
                loop is running
        """
        return self._fire(event_name, args, strict=False)

    def fire_strict(self, event_name: str, *args: Any) -> Any:
        """Call every listener of an event, surfacing asynchronous failures.

        Same as ``fire``, except that the returned future fails with the
        first failure (in registration order) once every pending listener has
        settled. Used where the caller has to observe a failure, e.g. a
        service's ``start``.
        """
        return self._fire(event_name, args, strict=True)

    async def async_fire(self, event_name: str, *args: Any) -> Any:
        """Fire an event and await the result if it is pending."""
        result = self.fire(event_name, *args)
        if inspect.isawaitable(result):
            return await result
        return result

    def implement_on(self, obj: Any, method_name: str) -> None:
        """Expose one of this bus's methods on another object.

        Args:
            obj: The object receiving the method
            method_name: Name of the bus method, e.g. ``"fire"``
        """
        setattr(obj, method_name, getattr(self, method_name))

    def _fire(self, event_name: str, args: tuple, strict: bool) -> Any:
        name = self._prefix + event_name
        listeners = self._listeners.get(name)

        if not listeners:
            return None

        first_result = None
        pending = []

        for listener in list(listeners):
            try:
                result = listener.callback(*args)
            except Exception:
                self._discard(pending)
                raise

            if inspect.isawaitable(result):
                pending.append(result)
            elif first_result is None:
                first_result = result

        if not pending:
            return first_result

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            self._discard(pending)
            raise EventFireError(f"Listeners of {name} returned awaitables but no event loop is running") from e

        logger.trace(f"Fired {name}, waiting for {len(pending)} pending listeners")
        return asyncio.ensure_future(self._settle(name, pending, first_result, strict), loop=loop)

    async def _settle(self, name: str, pending: list[Any], first_result: Any, strict: bool) -> Any:
        results = await asyncio.gather(*pending, return_exceptions=True)
        failures = [result for result in results if isinstance(result, BaseException)]

        for failure in failures:
            logger.warning(f"Listener for {name} failed: {failure!r}")

        if strict and failures:
            raise failures[0]

        if first_result is not None:
            return first_result

        return next((r for r in results if r is not None and not isinstance(r, BaseException)), None)

    @staticmethod
    def _discard(pending: list[Any]) -> None:
        """Close coroutines that will never be awaited."""
        for awaitable in pending:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
