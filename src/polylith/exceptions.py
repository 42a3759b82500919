"""Common exceptions for the service layer.

Failures of individual services are contained by the registry and never
surface as exceptions from ``Registry.start``. The classes here cover misuse
of the API itself.
"""


class PolylithError(Exception):
    """Base exception for all service layer errors."""


class ServiceNotStartedError(PolylithError):
    """Raised when awaiting the startup of a service that never took part in a start cycle."""

    def __init__(self, service_name: str | None):
        self.service_name = service_name
        super().__init__(f"Service {service_name or '<unnamed service>'} has not been included in a start cycle")
