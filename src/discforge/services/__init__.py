"""
DiscForge services.

Burn job control and drive queries on top of a shared xorriso executor.
"""

from discforge.services.burn import BurnBusyError, BurnService, UnknownJobError
from discforge.services.devices import DeviceMonitor, DeviceQueryError, DeviceService

__all__ = [
    "BurnBusyError",
    "BurnService",
    "DeviceMonitor",
    "DeviceQueryError",
    "DeviceService",
    "UnknownJobError",
]
