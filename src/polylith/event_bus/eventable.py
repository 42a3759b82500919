"""Give arbitrary objects their own event bus."""

from typing import Any

from polylith.settings import get_settings

from .bus import EventBus

EVENTABLE_METHODS = ("fire", "listen", "unlisten")


def make_eventable(obj: Any) -> EventBus:
    """Attach a private EventBus to ``obj`` and expose its methods on it.

    After the call ``obj.fire``, ``obj.listen`` and ``obj.unlisten`` operate
    on ``obj.event_bus``.

    Returns:
        The attached bus
    """
    obj.event_bus = EventBus(get_settings().eventable_prefix)

    for method_name in EVENTABLE_METHODS:
        obj.event_bus.implement_on(obj, method_name)

    return obj.event_bus
