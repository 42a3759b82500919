"""Base class for service implementations."""

from collections.abc import Iterable

from polylith.event_bus.eventable import EVENTABLE_METHODS

from .registry import Registry, get_registry
from .service_object import ServiceObject, collect_methods


class Service:
    """Convenience base class wiring an object to its service object.

    Subclasses pass their name, implement lifecycle and other methods, and
    call ``implement`` with the names to expose:

        ```python
        class Storage(Service):
            def __init__(self):
                super().__init__("storage")
                self.require(["config"])
                self.implement(["start", "ready", "save"])

            async def start(self):
                await self.connect()
        ```

    ``fire``, ``listen`` and ``unlisten`` operate on the service object.
    """

    def __init__(self, name: str | None = None, registry: Registry | None = None) -> None:
        """Create and register the service object.

        Args:
            name: Name to register under. Anonymous services are not registered.
            registry: Registry to register with, defaults to ``get_registry()``
        """
        self.service_object = ServiceObject(name)
        self.registry = registry or get_registry()
        self.service_name = name

        for method_name in EVENTABLE_METHODS:
            self.service_object.implement_on(self, method_name)

        if name:
            self.registry.register(name, self.service_object)

    def implement(self, names: Iterable[str]) -> None:
        """Implement the named methods of this object on the service object."""
        self.service_object.implement(collect_methods(self, names, self.service_name))

    def require(self, names: Iterable[str]) -> None:
        """Declare the services this service depends on."""
        self.service_object.require(names)
