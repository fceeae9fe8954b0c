"""
DiscForge - Disc authoring front end for xorriso.

Turns long-running xorriso invocations into observable, cancellable
burn, blank, format and verify operations.
"""

__version__ = "1.0.0"
__author__ = "DiscForge Team"

from discforge.core.config import DiscForgeConfig
from discforge.core.session import Session

__all__ = ["DiscForgeConfig", "Session", "__version__"]
