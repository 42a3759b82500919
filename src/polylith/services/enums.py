"""Enums for the startup protocol.

This module contains basic enums to avoid circular dependencies.
"""

from enum import StrEnum


class StartupState(StrEnum):
    """Phase of the registry's current (or last) start cycle."""

    IDLE = "idle"
    REQUIREMENTS_CHECKED = "requirements_checked"
    STARTING = "starting"
    SETTLING = "settling"
    READY = "ready"


class StartStatus(StrEnum):
    """Outcome of a single service's ``start``."""

    SUCCESS = "success"
    FAILED = "failed"
