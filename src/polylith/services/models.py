"""Data models for the startup protocol.

This module contains the Pydantic models reported by ``Registry.start``.
"""

import arrow
from pydantic import BaseModel, Field

from .enums import StartStatus, StartupState


class ServiceStartResult(BaseModel):
    """Outcome of one service's ``start`` within a cycle."""

    model_config = {"use_enum_values": True}

    service_name: str
    status: StartStatus
    message: str
    executed_at: str | None = None  # ISO 8601 UTC timestamp
    execution_time_ms: float | None = None


class StartupReport(BaseModel):
    """Complete result of a start cycle."""

    model_config = {"use_enum_values": True}

    prefix: str
    state: StartupState
    removed_services: list[str] = Field(default_factory=list)
    service_results: list[ServiceStartResult] = Field(default_factory=list)
    executed_at: str = Field(default_factory=lambda: arrow.utcnow().isoformat())
    execution_time_ms: float | None = None
    total_services: int = 0
    successful_services: int = 0
    failed_services: int = 0

    def get_result(self, service_name: str) -> ServiceStartResult | None:
        """Get the outcome of a service by name."""
        return next((result for result in self.service_results if result.service_name == service_name), None)
