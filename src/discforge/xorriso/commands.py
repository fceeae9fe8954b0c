"""
xorriso command construction.

Arguments are collected as discrete tokens and handed to the executor as a
list, so no value ever passes through a shell.
"""

from __future__ import annotations

from collections.abc import Mapping

PKT_OUTPUT = ("-pkt_output", "on")

# Speed value that means "let the drive choose"; no -speed token is emitted
AUTO_SPEED = "auto"


class CommandBuilder:
    """Chainable builder for one xorriso invocation.

    Boolean settings are always emitted as ``flag on|off`` so the command
    does not depend on xorriso's defaults. Variadic lists are closed with
    ``--``.
    """

    def __init__(self) -> None:
        self._args: list[str] = []

    def _add(self, *args: str) -> CommandBuilder:
        self._args.extend(str(a) for a in args)
        return self

    def _toggle(self, flag: str, on: bool) -> CommandBuilder:
        return self._add(flag, "on" if on else "off")

    # ==================== Basic Settings ====================

    def pkt_output(self) -> CommandBuilder:
        return self._add(*PKT_OUTPUT)

    def device(self, dev: str) -> CommandBuilder:
        return self._add("-dev", dev)

    def in_device(self, dev: str) -> CommandBuilder:
        return self._add("-indev", dev)

    def out_device(self, dev: str) -> CommandBuilder:
        return self._add("-outdev", dev)

    # ==================== Queries ====================

    def device_links(self) -> CommandBuilder:
        return self._add("-device_links")

    def toc(self) -> CommandBuilder:
        return self._add("-toc")

    def list_formats(self) -> CommandBuilder:
        return self._add("-list_formats")

    def list_speeds(self) -> CommandBuilder:
        return self._add("-list_speeds")

    def list_profiles(self, which: str = "all") -> CommandBuilder:
        return self._add("-list_profiles", which)

    def tell_media_space(self) -> CommandBuilder:
        return self._add("-tell_media_space")

    def check_drive(self) -> CommandBuilder:
        return self._add("-checkdrive")

    def print_size(self) -> CommandBuilder:
        return self._add("-print_size")

    def pvd_info(self) -> CommandBuilder:
        return self._add("-pvd_info")

    # ==================== ISO Options ====================

    def volume_id(self, volid: str) -> CommandBuilder:
        return self._add("-volid", volid)

    def rock_ridge(self, on: bool) -> CommandBuilder:
        return self._toggle("-rockridge", on)

    def joliet(self, on: bool) -> CommandBuilder:
        return self._toggle("-joliet", on)

    def hfs_plus(self, on: bool) -> CommandBuilder:
        return self._toggle("-hfsplus", on)

    def md5(self, mode: str) -> CommandBuilder:
        return self._add("-md5", mode)

    def for_backup(self) -> CommandBuilder:
        return self._add("-for_backup")

    # ==================== File Operations ====================

    def map(self, source: str, dest: str) -> CommandBuilder:
        return self._add("-map", source, dest)

    def add(self, *paths: str) -> CommandBuilder:
        return self._add("-add", *paths, "--")

    # ==================== Write Session ====================

    def write_speed(self, speed: str) -> CommandBuilder:
        if not speed or speed == AUTO_SPEED:
            return self
        return self._add("-speed", speed)

    def dummy(self, on: bool) -> CommandBuilder:
        return self._toggle("-dummy", on)

    def close(self, on: bool) -> CommandBuilder:
        return self._toggle("-close", on)

    def stream_recording(self, on: bool) -> CommandBuilder:
        return self._toggle("-stream_recording", on)

    def write_type(self, mode: str) -> CommandBuilder:
        return self._add("-write_type", mode)

    def padding(self, size_kb: int) -> CommandBuilder:
        return self._add("-padding", f"{size_kb}k")

    def pacifier(self, style: str) -> CommandBuilder:
        return self._add("-pacifier", style)

    def commit(self) -> CommandBuilder:
        return self._add("-commit")

    def eject(self, which: str = "all") -> CommandBuilder:
        return self._add("-eject", which)

    # ==================== Blank / Format ====================

    def blank(self, mode: str) -> CommandBuilder:
        return self._add("-blank", mode)

    def format(self, mode: str) -> CommandBuilder:
        return self._add("-format", mode)

    # ==================== Verification ====================

    def check_media(self, options: Mapping[str, str] | None = None) -> CommandBuilder:
        opts = [f"{key}={value}" for key, value in (options or {}).items()]
        return self._add("-check_media", *opts, "--")

    def compare(self, disk_path: str, iso_path: str) -> CommandBuilder:
        return self._add("-compare", disk_path, iso_path)

    # ==================== Extraction ====================

    def osirrox(self, mode: str) -> CommandBuilder:
        return self._add("-osirrox", mode)

    def extract(self, iso_path: str, disk_path: str) -> CommandBuilder:
        return self._add("-extract", iso_path, disk_path)

    # ==================== Message Control ====================

    def abort_on(self, severity: str) -> CommandBuilder:
        return self._add("-abort_on", severity)

    def report_about(self, severity: str) -> CommandBuilder:
        return self._add("-report_about", severity)

    def build(self) -> tuple[str, ...]:
        """Return the finished argument tokens."""
        return tuple(self._args)

    def __repr__(self) -> str:
        return f"CommandBuilder({' '.join(self._args)!r})"
