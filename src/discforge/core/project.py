"""
DiscForge burn projects.

A project is the user-editable description of a disc: which files go
where on the image, which ISO extensions to record, and how to burn it.
Projects are stored as JSON and validated with Pydantic.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class FileEntry(BaseModel):
    """A single source path mapped into the ISO tree."""

    source_path: str
    dest_path: str

    @field_validator("dest_path")
    @classmethod
    def absolute_dest(cls, v: str) -> str:
        if not v.startswith("/"):
            return "/" + v
        return v

    @classmethod
    def from_source(cls, source: str | Path, dest_dir: str = "/") -> FileEntry:
        """Map a source file or directory under ``dest_dir`` by its base name."""
        name = Path(source).name
        dest = dest_dir.rstrip("/") + "/" + name
        return cls(source_path=str(source), dest_path=dest)


class ISOOptions(BaseModel):
    """ISO 9660 extensions and checksum settings."""

    rock_ridge: bool = True
    joliet: bool = True
    hfs_plus: bool = False
    md5: bool = False
    backup_mode: bool = False


class BurnOptions(BaseModel):
    """Drive-level options for a write session."""

    speed: str = "auto"
    dummy_mode: bool = False
    verify: bool = False
    close_disc: bool = False
    stream_recording: bool = False
    eject: bool = False
    write_type: Literal["auto", "tao", "sao"] = "auto"
    padding_kb: int | None = Field(default=None, ge=0)


class Project(BaseModel):
    """A disc project: volume id, file mappings and options."""

    name: str = "Untitled"
    volume_id: str = ""
    entries: list[FileEntry] = Field(default_factory=list)
    iso_options: ISOOptions = Field(default_factory=ISOOptions)
    burn_options: BurnOptions = Field(default_factory=BurnOptions)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("volume_id")
    @classmethod
    def volume_id_length(cls, v: str) -> str:
        # ISO 9660 volume identifiers are limited to 32 characters
        if len(v) > 32:
            raise ValueError("volume id must be at most 32 characters")
        return v

    def add_sources(self, sources: list[str | Path], dest_dir: str = "/") -> None:
        """Append entries for each source, skipping destinations already mapped."""
        existing = {entry.dest_path for entry in self.entries}
        for source in sources:
            entry = FileEntry.from_source(source, dest_dir)
            if entry.dest_path in existing:
                continue
            self.entries.append(entry)
            existing.add(entry.dest_path)
        self.updated_at = datetime.now()

    def remove_entry(self, dest_path: str) -> bool:
        """Remove the entry mapped at ``dest_path``. Returns True if one was removed."""
        before = len(self.entries)
        self.entries = [e for e in self.entries if e.dest_path != dest_path]
        if len(self.entries) != before:
            self.updated_at = datetime.now()
            return True
        return False

    @classmethod
    def load(cls, path: Path) -> Project:
        """Load a project from a JSON file."""
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return cls.model_validate(data)

    def save(self, path: Path) -> None:
        """Save the project as JSON."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)
