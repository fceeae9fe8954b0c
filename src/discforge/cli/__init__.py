"""
DiscForge Command Line Interface.
"""

from discforge.cli.main import cli, main

__all__ = ["cli", "main"]
