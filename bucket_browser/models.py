from __future__ import annotations
"""Data models representing bucket listings."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class EntryKind(str, Enum):
    FILE = "file"
    FOLDER = "folder"

    @classmethod
    def for_key(cls, key: str) -> "EntryKind":
        return cls.FOLDER if key.endswith("/") else cls.FILE


@dataclass(frozen=True)
class Entry:
    """A single file or folder inside a bucket listing."""

    key: str
    last_modified: str = ""
    size: int = 0
    etag: str = ""
    storage_class: str = "STANDARD"
    url: str = ""

    @property
    def kind(self) -> EntryKind:
        return EntryKind.for_key(self.key)

    @property
    def is_folder(self) -> bool:
        return self.kind is EntryKind.FOLDER

    @property
    def name(self) -> str:
        parts = [part for part in self.key.split("/") if part]
        if not parts:
            return self.key
        return parts[-1] + "/" if self.is_folder else parts[-1]


@dataclass
class ListingResult:
    """Represents one listing call for a prefix."""

    entries: list[Entry] = field(default_factory=list)
    has_more: bool = False
    next_token: Optional[str] = None

    @property
    def total_count(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class Breadcrumb:
    name: str
    path: str
