"""
DiscForge UI integration.

Qt adapters for the GUI front end. Requires PySide6.
"""

from discforge.ui.bridge import QtEventSink

__all__ = ["QtEventSink"]
