# models.py

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class CreatorRef:
    """Creator aus dem Verzeichnis, nach dem Start unveränderlich"""
    id: int
    name: str

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "CreatorRef":
        return cls(id=int(data["id"]), name=str(data.get("name") or ""))


@dataclass
class FileRef:
    """Datei-Referenz aus der JSON-API (Attachment oder Post-File)"""
    file_name: str = ''
    file_url: str = ''

    @classmethod
    def from_json(cls, data: Optional[Dict[str, Any]]) -> Optional["FileRef"]:
        if not data:
            return None
        return cls(
            file_name=data.get("file_name") or '',
            file_url=data.get("file_url") or '',
        )


@dataclass
class PostRecord:
    """Post-Modell aus den JSON-Metadaten"""
    id: int
    title: str = ''
    created: int = 0  # UNIX-Timestamp in Sekunden
    body: Optional[str] = None
    attachments: List[FileRef] = field(default_factory=list)
    post_file: Optional[FileRef] = None

    @property
    def created_date(self) -> str:
        return datetime.fromtimestamp(self.created, tz=timezone.utc).strftime("%Y-%m-%d")

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "PostRecord":
        attachments = [
            ref for ref in (FileRef.from_json(item) for item in data.get("attachments") or [])
            if ref is not None
        ]
        return cls(
            id=int(data["id"]),
            title=data.get("title") or '',
            created=int(data.get("created") or 0),
            body=data.get("body"),
            attachments=attachments,
            post_file=FileRef.from_json(data.get("post_file")),
        )


@dataclass
class SharedFileRecord:
    """Eintrag aus der Shared-Files-Sammlung eines Creators"""
    id: int
    file_name: str
    file_url: str
    title: str = ''
    description: Optional[str] = None

    @property
    def download_name(self) -> str:
        return f"{self.id}_{self.file_name}"

    @property
    def meta_text(self) -> str:
        description = '<None>' if self.description is None else self.description
        return f"Title: {self.title}\nDescription: {description}"

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "SharedFileRecord":
        return cls(
            id=int(data["id"]),
            file_name=data.get("file_name") or '',
            file_url=data.get("file_url") or '',
            title=data.get("title") or '',
            description=data.get("description"),
        )


@dataclass(frozen=True)
class DownloadTask:
    url: str
    directory: Path
    filename: str


@dataclass(frozen=True)
class AuxFile:
    """Textartefakt, das neben den Downloads eines Posts gespeichert wird"""
    name: str
    content: str


class FetchStatus(Enum):
    SAVED = "saved"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class FetchOutcome:
    status: FetchStatus
    url: str
    path: Path
    reason: str = ''

    @classmethod
    def saved(cls, url: str, path: Path) -> "FetchOutcome":
        return cls(FetchStatus.SAVED, url, path)

    @classmethod
    def skipped(cls, url: str, path: Path) -> "FetchOutcome":
        return cls(FetchStatus.SKIPPED, url, path)

    @classmethod
    def failed(cls, url: str, path: Path, reason: str) -> "FetchOutcome":
        return cls(FetchStatus.FAILED, url, path, reason)

    @property
    def ok(self) -> bool:
        return self.status is not FetchStatus.FAILED


@dataclass
class RunSummary:
    """Zusammenfassung eines Laufs, wird am Ende ausgegeben"""
    creator: Optional[CreatorRef] = None
    posts_total: int = 0
    posts_archived: int = 0
    posts_without_fragment: List[int] = field(default_factory=list)
    posts_skipped: List[int] = field(default_factory=list)
    pages_total: int = 0
    failed_pages: List[int] = field(default_factory=list)
    collisions: List[int] = field(default_factory=list)
    shared_files_total: int = 0
    saved: int = 0
    skipped: int = 0
    failures: List[FetchOutcome] = field(default_factory=list)

    def record(self, outcome: FetchOutcome) -> None:
        if outcome.status is FetchStatus.SAVED:
            self.saved += 1
        elif outcome.status is FetchStatus.SKIPPED:
            self.skipped += 1
        else:
            self.failures.append(outcome)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def crawl_complete(self) -> bool:
        return not self.failed_pages
