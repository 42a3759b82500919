"""Service registry and two-phase startup.

The registry is the single source of truth for service discovery: services
are registered under a name and other services look them up by that name.
It also drives startup:

1. services whose requirements are not registered are removed, repeatedly,
   until no further service has to be removed
2. ``start`` is invoked on every selected service
3. once every ``start`` has settled, successfully or not, ``ready`` is invoked
   on the same services
4. the registry fires its own ``ready`` event

A failing service never fails the cycle. Its failure is logged and can be
observed through the future returned by its ``wait_started()``.
"""

import asyncio
import inspect
from collections.abc import Callable, Iterable
from functools import lru_cache
from typing import Any

import arrow
from loguru import logger

from polylith.event_bus import Deferred, make_eventable
from polylith.event_bus.eventable import EVENTABLE_METHODS

from .enums import StartStatus, StartupState
from .models import ServiceStartResult, StartupReport
from .service_object import ServiceObject, collect_methods


class Registry:
    """Registry of named service objects.

    The registry is eventable: ``fire``, ``listen`` and ``unlisten`` operate on
    its own bus, which fires ``ready`` with the prefix at the end of every
    start cycle.

    Example:
        ```python
        registry = Registry()
        registry.listen("ready", lambda prefix: print(f"{prefix or 'all'} ready"))
        registry.register("storage", storage_object)
        report = await registry.start()
        ```
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self.services: dict[str, ServiceObject] = {}
        self.deferreds: dict[str, Deferred] = {}
        self.state = StartupState.IDLE
        self.last_report: StartupReport | None = None

        make_eventable(self)

    def create_service_object(self, name: str | None = None) -> ServiceObject:
        """Construct a new, unregistered service object.

        Args:
            name: Name of the service, service objects may be anonymous
        """
        return ServiceObject(name)

    def register(self, name: str, service_object: ServiceObject) -> None:
        """Register a service object under ``name``.

        A service object already registered under the same name is replaced;
        the name keeps its position in the startup order.
        """
        if name in self.services and self.services[name] is not service_object:
            logger.debug(f"Replacing service {name}")

        self.services[name] = service_object
        logger.debug(f"Registered service {name}")

    def unregister(self, name: str) -> None:
        """Remove a service object from the registry.

        References other services already hold are not affected.
        """
        if self.services.pop(name, None) is not None:
            logger.debug(f"Unregistered service {name}")

    def subscribe(self, name: str) -> ServiceObject | None:
        """Get the service object registered under ``name``."""
        return self.services.get(name)

    def make_service(self, service_name: str | None, obj: Any, method_list: Iterable[str] | None = None) -> ServiceObject:
        """Create a service object for ``obj``, register it and implement methods on it.

        The service object is stored as ``obj.service_object`` and ``fire``,
        ``listen`` and ``unlisten`` are added to ``obj``, operating on the
        service object.

        Args:
            service_name: Name to register under. Anonymous services are not
                registered.
            obj: The implementation object
            method_list: Names of the methods of ``obj`` to implement

        Returns:
            The new service object
        """
        obj.service_object = ServiceObject(service_name)
        self._expose(obj)

        if service_name:
            self.register(service_name, obj.service_object)

        if method_list:
            obj.service_object.implement(collect_methods(obj, method_list, service_name))

        return obj.service_object

    def extend_service(self, service_name: str, obj: Any, method_list: Iterable[str] | None = None) -> ServiceObject:
        """Implement further methods of a service on another object.

        The registered service object is reused. If there is none a new one is
        created, but it is not registered.

        Args:
            service_name: Name of the service being extended
            obj: The object implementing the methods
            method_list: Names of the methods of ``obj`` to implement

        Returns:
            The extended service object
        """
        service_object = self.subscribe(service_name)
        if service_object is None:
            service_object = ServiceObject(service_name)

        obj.service_object = service_object
        self._expose(obj)

        if method_list:
            service_object.implement(collect_methods(obj, method_list, service_name))

        return service_object

    def call_all(
        self,
        service_names: Iterable[str],
        which: str,
        *args: Any,
        process_result: Callable[[ServiceObject, Any], None] | None = None,
    ) -> list[Any]:
        """Invoke a method on a number of services.

        Names that are not registered are skipped.

        Args:
            service_names: Names of the services, in invocation order
            which: Name of the method to invoke
            *args: Arguments passed to the method
            process_result: Called with every service object and its result

        Returns:
            The awaitable results
        """
        pending = []

        for name in service_names:
            service_object = self.services.get(name)
            if service_object is None:
                continue

            result = service_object.invoke(which, *args)

            if process_result is not None:
                process_result(service_object, result)

            if inspect.isawaitable(result):
                pending.append(result)

        return pending

    def check_requirements(self) -> list[str]:
        """Remove every service whose required services are not all registered.

        Removing a service can leave another service without its requirement,
        so the check repeats until a pass removes nothing.

        Returns:
            Names of the removed services, in removal order
        """
        removed: list[str] = []

        while True:
            to_remove = []

            for name, service_object in self.services.items():
                missing = [requirement for requirement in service_object.required if requirement not in self.services]
                if missing:
                    logger.error(f"Requirement {', '.join(missing)} for service {name} missing. Service removed")
                    to_remove.append(name)

            if not to_remove:
                return removed

            for name in to_remove:
                del self.services[name]
            removed.extend(to_remove)

    async def start(self, prefix: str = "", *args: Any) -> StartupReport:
        """Run the startup sequence.

        ``start`` is invoked on every selected service. After all of them have
        settled ``ready`` is invoked, which is assumed to be synchronous, and
        the registry fires ``ready`` with ``prefix``.

        Overlapping cycles for the same services are not supported: the
        futures returned by ``wait_started()`` are replaced by every cycle.

        Args:
            prefix: Only services whose name starts with the prefix are started
            *args: Arguments passed to every ``start``

        Returns:
            The report of the cycle. Failures of services are reported there,
            this method does not raise because of them.
        """
        if self.state in (StartupState.STARTING, StartupState.SETTLING):
            logger.warning(f"Start cycle '{prefix}' requested while another cycle is in flight")

        start_time = arrow.utcnow().float_timestamp
        report = StartupReport(prefix=prefix, state=self.state)

        report.removed_services = self.check_requirements()
        self._set_state(StartupState.REQUIREMENTS_CHECKED)

        names = [name for name in self.services if name.startswith(prefix)]
        logger.info(f"Starting {len(names)} services with prefix '{prefix}'")

        self._set_state(StartupState.STARTING)
        loop = asyncio.get_running_loop()
        settling = []

        for name in names:
            service_object = self.services[name]
            deferred = Deferred()
            self.deferreds[name] = deferred
            service_object.attach_startup(deferred)

            invoked_at = arrow.utcnow()
            outcome = self._invoke_start(loop, name, service_object, args)
            settling.append(self._settle_start(name, deferred, outcome, invoked_at))

        self._set_state(StartupState.SETTLING)
        results = await asyncio.gather(*settling, return_exceptions=True)

        for name in names:
            service_object = self.services.get(name)
            if service_object is None:
                continue
            try:
                service_object.invoke("ready")
            except Exception as e:
                logger.warning(f"Service {name} failed to get ready: {e!r}")

        await self.event_bus.async_fire("ready", prefix)
        self._set_state(StartupState.READY)

        report.state = self.state
        report.service_results = [result for result in results if isinstance(result, ServiceStartResult)]
        report.total_services = len(names)
        report.successful_services = sum(1 for r in report.service_results if r.status == StartStatus.SUCCESS)
        report.failed_services = report.total_services - report.successful_services
        report.execution_time_ms = (arrow.utcnow().float_timestamp - start_time) * 1000
        self.last_report = report

        logger.info(
            f"Start cycle '{prefix}' complete: {report.successful_services} successful, {report.failed_services} failed"
        )
        return report

    def _invoke_start(self, loop: asyncio.AbstractEventLoop, name: str, service_object: ServiceObject, args: tuple) -> Any:
        """Invoke ``start`` and normalize whatever happens into an awaitable."""
        try:
            result = service_object.invoke_strict("start", *args)
        except asyncio.CancelledError:
            future = loop.create_future()
            future.cancel()
            return future
        except Exception as e:
            future = loop.create_future()
            future.set_exception(e)
            return future

        if inspect.isawaitable(result):
            return result

        future = loop.create_future()
        future.set_result(result)
        return future

    async def _settle_start(self, name: str, deferred: Deferred, outcome: Any, invoked_at: arrow.Arrow) -> ServiceStartResult:
        try:
            value = await outcome
        except asyncio.CancelledError:
            # Cancellation of the cycle itself is not a service outcome
            if asyncio.current_task().cancelling():
                raise
            logger.warning(f"Service {name} start was cancelled")
            deferred.cancel()
            return self._failed_start(name, "Start cancelled", invoked_at)
        except Exception as e:
            logger.warning(f"Service {name} failed to start: {e!r}")
            deferred.reject(e)
            return self._failed_start(name, str(e) or type(e).__name__, invoked_at)

        deferred.resolve(value)
        logger.debug(f"Service {name} started")
        return ServiceStartResult(
            service_name=name,
            status=StartStatus.SUCCESS,
            message="Service started",
            executed_at=invoked_at.isoformat(),
            execution_time_ms=(arrow.utcnow().float_timestamp - invoked_at.float_timestamp) * 1000,
        )

    @staticmethod
    def _failed_start(name: str, message: str, invoked_at: arrow.Arrow) -> ServiceStartResult:
        return ServiceStartResult(
            service_name=name,
            status=StartStatus.FAILED,
            message=message,
            executed_at=invoked_at.isoformat(),
            execution_time_ms=(arrow.utcnow().float_timestamp - invoked_at.float_timestamp) * 1000,
        )

    def _set_state(self, state: StartupState) -> None:
        logger.trace(f"Registry state {self.state} -> {state}")
        self.state = state

    @staticmethod
    def _expose(obj: Any) -> None:
        for method_name in EVENTABLE_METHODS:
            obj.service_object.implement_on(obj, method_name)


@lru_cache
def get_registry() -> Registry:
    """Get the default registry instance.

    Returns:
        The registry shared by every ``Service`` not given one explicitly
    """
    return Registry()
