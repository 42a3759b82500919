"""Service objects: the registry-facing side of a service.

A service object is an event bus that additionally exposes the methods of
its service as attributes. While a method has a single implementation the
attribute is the implementation itself, so a call costs nothing more than a
plain function call. Once the service object is unbound every method is
routed through ``invoke`` instead, so that all listeners of the method are
reached.

```python
service_object = ServiceObject("storage")
service_object.implement({"save": storage.save})

service_object.save(doc)              # direct call
service_object.listen("save", audit)  # second implementation
service_object.unbind()
service_object.save(doc)              # fans out to storage.save and audit
```
"""

import functools
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

from polylith.event_bus import Deferred, EventBus
from polylith.exceptions import ServiceNotStartedError
from polylith.settings import get_settings


@dataclass(frozen=True, slots=True)
class DirectBinding:
    """Method attribute resolving to the implementation itself."""

    method: Callable[..., Any]


@dataclass(frozen=True, slots=True)
class BusBinding:
    """Method attribute resolving to a thunk that fires the method as an event."""


MethodBinding = DirectBinding | BusBinding


class ServiceObject(EventBus):
    """Event bus carrying the methods and requirements of one service.

    Attributes:
        name: Registry key of the service, ``None`` for anonymous services
        methods: Every method name ever assigned, in assignment order
        required: Names of the services this one depends on
    """

    def __init__(self, name: str | None = None, prefix: str | None = None) -> None:
        """Initialize the service object.

        Args:
            name: The name the service is registered under
            prefix: Event namespace, defaults to ``Settings.service_prefix``
        """
        super().__init__(get_settings().service_prefix if prefix is None else prefix)

        self.name = name
        self.methods: list[str] = []
        self.required: list[str] = []
        self._bound = True
        self._bindings: dict[str, MethodBinding] = {}
        self._startup: Deferred | None = None

    def __getattr__(self, name: str) -> Any:
        # Only reached for names that are not regular attributes
        bindings = self.__dict__.get("_bindings")
        if bindings is None or name not in bindings:
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

        binding = bindings[name]
        if isinstance(binding, DirectBinding):
            return binding.method
        return functools.partial(self.invoke, name)

    def __repr__(self) -> str:
        return f"ServiceObject(name={self.name!r}, bound={self._bound}, methods={sorted(self._bindings)})"

    @property
    def bound(self) -> bool:
        """Whether single implementations are still called directly."""
        return self._bound

    def get_binding(self, name: str) -> MethodBinding | None:
        """Get how the method ``name`` is currently dispatched."""
        return self._bindings.get(name)

    def assign_method(self, name: str, method: Callable[..., Any]) -> None:
        """Expose ``method`` as the attribute ``name``.

        The method is bound directly while the service object is bound or as
        long as nothing listens to ``name`` yet. Otherwise calls are routed
        through ``invoke`` so an existing implementation is not replaced.
        """
        if name in self.__dict__ or hasattr(type(self), name):
            logger.warning(f"Method {name} of service {self._display_name} is shadowed; use invoke('{name}')")

        if self._bound or not self.has_listeners(name):
            self._bindings[name] = DirectBinding(method)
        else:
            self._bindings[name] = BusBinding()

        self.methods.append(name)

    def unbind_method(self, name: str) -> None:
        """Route calls of the method ``name`` through ``invoke``."""
        self._bindings[name] = BusBinding()

    def unbind(self) -> None:
        """Route all methods through ``invoke``, now and for every later assignment."""
        self._bound = False
        for name in self.methods:
            self.unbind_method(name)
        logger.debug(f"Unbound service {self._display_name}")

    def implement(self, methods: Mapping[str, Callable[..., Any] | None]) -> None:
        """Add implementations for a number of methods.

        Every implementation is both assigned as a method and registered as a
        listener, so it is still reached after the service object is unbound.

        Args:
            methods: Map of method name to implementation. ``None`` entries
                are ignored.
        """
        for name, method in methods.items():
            if method is None:
                continue

            self.assign_method(name, method)
            self.listen(name, method)

    def invoke(self, name: str, *args: Any) -> Any:
        """Call a method by name. Same semantics as ``fire``."""
        return self.fire(name, *args)

    def invoke_strict(self, name: str, *args: Any) -> Any:
        """Call a method by name. Same semantics as ``fire_strict``."""
        return self.fire_strict(name, *args)

    async def async_invoke(self, name: str, *args: Any) -> Any:
        """Call a method by name and await its result. Same semantics as ``async_fire``."""
        return await self.async_fire(name, *args)

    def require(self, services: Iterable[str]) -> None:
        """Declare services this one depends on.

        Args:
            services: Service names. Names already required are ignored.
        """
        if isinstance(services, str):
            services = [services]

        for service_name in services:
            if service_name not in self.required:
                self.required.append(service_name)

    def attach_startup(self, deferred: Deferred) -> None:
        """Attach the deferred of the current start cycle."""
        self._startup = deferred

    def wait_started(self):
        """Get the future settled with the outcome of this service's ``start``.

        Returns:
            The future of the most recent start cycle that included this service

        Raises:
            ServiceNotStartedError: If no start cycle included this service yet
        """
        if self._startup is None:
            raise ServiceNotStartedError(self.name)
        return self._startup.future

    @property
    def _display_name(self) -> str:
        return self.name or "<unnamed service>"


def collect_methods(obj: Any, names: Iterable[str], service_name: str | None) -> dict[str, Callable[..., Any]]:
    """Look up the named methods of an implementation object.

    Names that ``obj`` does not implement are reported and skipped.

    Args:
        obj: The object implementing the methods
        names: Names of the methods to collect
        service_name: Used in the warning for missing methods

    Returns:
        Map of method name to bound method
    """
    methods = {}

    for name in names:
        method = getattr(obj, name, None)
        if callable(method):
            methods[name] = method
        else:
            logger.warning(f"Method {name} not implemented on service {service_name or '<unnamed service>'}")

    return methods
