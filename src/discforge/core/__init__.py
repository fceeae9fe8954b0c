"""
DiscForge Core - Shared infrastructure.

Configuration, logging, data models, burn projects and event sinks used
by the xorriso layer and the services.
"""

from discforge.core.config import DiscForgeConfig
from discforge.core.events import CallbackEventSink, EventName, NullEventSink, QueueEventSink
from discforge.core.logging import get_logger, setup_logging
from discforge.core.models import BurnJob, BurnProgress, BurnState
from discforge.core.project import BurnOptions, ISOOptions, Project

__all__ = [
    "BurnJob",
    "BurnOptions",
    "BurnProgress",
    "BurnState",
    "CallbackEventSink",
    "DiscForgeConfig",
    "EventName",
    "ISOOptions",
    "NullEventSink",
    "Project",
    "QueueEventSink",
    "get_logger",
    "setup_logging",
]
