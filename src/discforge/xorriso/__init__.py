"""
DiscForge xorriso layer.

Command construction, pkt_output decoding, pacifier progress extraction
and process execution for the xorriso disc-authoring tool.
"""

from discforge.xorriso.commands import CommandBuilder
from discforge.xorriso.executor import (
    CancellationToken,
    XorrisoError,
    XorrisoExecutor,
    XorrisoPipeError,
    XorrisoStartError,
)
from discforge.xorriso.parser import Channel, PktLine, ProcessOutcome, parse_pkt_line, parse_pkt_output
from discforge.xorriso.progress import ProgressExtractor, ProgressUpdate, parse_pacifier_line

__all__ = [
    "CancellationToken",
    "Channel",
    "CommandBuilder",
    "PktLine",
    "ProcessOutcome",
    "ProgressExtractor",
    "ProgressUpdate",
    "XorrisoError",
    "XorrisoExecutor",
    "XorrisoPipeError",
    "XorrisoStartError",
    "parse_pacifier_line",
    "parse_pkt_line",
    "parse_pkt_output",
]
