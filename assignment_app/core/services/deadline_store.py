"""Key-value persistence for timed-attempt deadlines."""

from __future__ import annotations

from datetime import datetime
import json
from pathlib import Path
from threading import Lock
from typing import Protocol


class DeadlineStoreError(OSError):
    """Raised when the deadline store cannot be read or written."""


class DeadlineStore(Protocol):
    def read_deadline(self, key: str) -> datetime | None: ...

    def write_deadline(self, key: str, deadline: datetime) -> None: ...

    def clear_deadline(self, key: str) -> None: ...


def deadline_key(assignment_id: str, student_id: str) -> str:
    return f"timer_{assignment_id}_{student_id}"


class InMemoryDeadlineStore:
    """Deadlines that live as long as the process does."""

    def __init__(self) -> None:
        self._deadlines: dict[str, datetime] = {}

    def read_deadline(self, key: str) -> datetime | None:
        return self._deadlines.get(key)

    def write_deadline(self, key: str, deadline: datetime) -> None:
        self._deadlines[key] = deadline

    def clear_deadline(self, key: str) -> None:
        self._deadlines.pop(key, None)


class JsonFileDeadlineStore:
    """Deadlines kept in a small JSON document so a restarted process can resume them."""

    def __init__(self, file_path: Path) -> None:
        self._file_path = Path(file_path)
        self._lock = Lock()

    def read_deadline(self, key: str) -> datetime | None:
        with self._lock:
            raw = self._load().get(key)
        if raw is None:
            return None
        try:
            return datetime.fromisoformat(raw)
        except (TypeError, ValueError) as exc:
            raise DeadlineStoreError(f"Stored deadline for {key!r} is not a timestamp.") from exc

    def write_deadline(self, key: str, deadline: datetime) -> None:
        with self._lock:
            document = self._load()
            document[key] = deadline.isoformat()
            self._save(document)

    def clear_deadline(self, key: str) -> None:
        with self._lock:
            document = self._load()
            if document.pop(key, None) is not None:
                self._save(document)

    def _load(self) -> dict[str, str]:
        if not self._file_path.exists():
            return {}
        try:
            document = json.loads(self._file_path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            raise DeadlineStoreError(f"Unable to read deadlines from {self._file_path}") from exc
        if not isinstance(document, dict):
            raise DeadlineStoreError(f"Deadline file {self._file_path} is malformed.")
        return document

    def _save(self, document: dict[str, str]) -> None:
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        except OSError as exc:
            raise DeadlineStoreError(f"Unable to write deadlines to {self._file_path}") from exc
