"""
Data models (plain dataclasses) for ChannelDigest.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Mapping, Optional

from channeldigest.core.constants import ItemStatus


@dataclass(frozen=True)
class Item:
    id: str                          # YouTube video id
    title: str
    source_ref: str                  # channel handle
    url: str = ""
    duration_sec: Optional[int] = None
    upload_date: Optional[date] = None
    view_count: Optional[int] = None
    description: str = ""


@dataclass
class ExtendedMetadata:
    description: str = ""
    tags: list[str] = field(default_factory=list)
    thumbnail_url: Optional[str] = None
    channel_name: Optional[str] = None


@dataclass(frozen=True)
class AudioAsset:
    path: Path
    size_bytes: int
    duration_sec: Optional[float] = None

    @classmethod
    def from_path(cls, path: Path) -> "AudioAsset":
        return cls(path=path, size_bytes=path.stat().st_size)


@dataclass(frozen=True)
class ChunkRange:
    index: int
    start_sec: float
    end_sec: float

    @property
    def duration_sec(self) -> float:
        return self.end_sec - self.start_sec


@dataclass(frozen=True)
class Chunk:
    index: int
    start_sec: float
    end_sec: float
    local_path: Path


@dataclass
class AnalysisResult:
    text: str
    success: bool = True


@dataclass
class ErrorRecord:
    code: str
    message: str


@dataclass
class ItemResult:
    item: Item
    is_new: bool
    status: str = ItemStatus.COMPLETED
    metadata: Optional[ExtendedMetadata] = None
    transcript: Optional[str] = None
    thumbnail_analysis: Optional[AnalysisResult] = None
    analysis: Optional[AnalysisResult] = None
    error: Optional[ErrorRecord] = None


@dataclass(frozen=True)
class ProcessingState:
    last_run: Optional[datetime] = None
    processed_items: Mapping[str, datetime] = field(default_factory=dict)


@dataclass(frozen=True)
class RunOptions:
    source_override: Optional[str] = None
    item_limit: Optional[int] = None
    test_mode: bool = False
    reprocess: bool = False


@dataclass
class RunSummary:
    sources: list[str]
    results: list[ItemResult]
    new_count: int = 0
    skipped_duplicate: int = 0
    skipped_too_long: int = 0
    failed_sources: list[str] = field(default_factory=list)
    report_path: Optional[Path] = None
    digest: str = ""
