"""Lightweight runtime coordinating the lifecycle of in-process services."""

from .settings import Settings, get_settings  # noqa: F401

from .config_store import ConfigStore, get_config_store
from .event_bus import Deferred, EventBus, make_eventable
from .services import Registry, Service, ServiceObject, get_registry

__all__ = [
    "ConfigStore",
    "Deferred",
    "EventBus",
    "Registry",
    "Service",
    "ServiceObject",
    "Settings",
    "get_config_store",
    "get_registry",
    "get_settings",
    "make_eventable",
]
