"""Event Bus System for loosely coupled in-process communication.

This module provides the namespaced publish/subscribe primitive the service
runtime is built on. It supports:

- **Ordered Listeners**: Listeners are called in registration order
- **Mixed Sync/Async Results**: ``fire`` returns a plain value when every
  listener is synchronous and a future as soon as one of them is not
- **Error Isolation**: A failing asynchronous listener never aborts the others
- **Deferreds**: Futures that one party creates and another settles

## Quick Start

```python
from polylith.event_bus import EventBus

bus = EventBus("app:")
listener_id = bus.listen("saved", lambda doc: print(f"saved {doc}"))
bus.fire("saved", "readme")
bus.unlisten("saved", listener_id)
```

"""

from .bus import EventBus
from .core import EventBusError, EventFireError, Listener
from .deferred import Deferred
from .eventable import make_eventable

__all__ = [
    "Deferred",
    "EventBus",
    "EventBusError",
    "EventFireError",
    "Listener",
    "make_eventable",
]
