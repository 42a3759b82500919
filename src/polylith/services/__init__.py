"""Service objects, the registry and the startup protocol."""

from .enums import StartStatus, StartupState
from .models import ServiceStartResult, StartupReport
from .registry import Registry, get_registry
from .service import Service
from .service_object import BusBinding, DirectBinding, MethodBinding, ServiceObject, collect_methods

__all__ = [
    "BusBinding",
    "DirectBinding",
    "MethodBinding",
    "Registry",
    "Service",
    "ServiceObject",
    "ServiceStartResult",
    "StartStatus",
    "StartupReport",
    "StartupState",
    "collect_methods",
    "get_registry",
]
