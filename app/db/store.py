"""JSON document store for submissions.

The document on disk has the shape ``{"submissions": [...]}``. Records are
validated one by one; a record that does not fit is kept verbatim and hidden
from reads, so one legacy entry never costs the rest of the history. The loaded copy
is authoritative for the life of the process: every mutation is applied under a
single writer lock and flushed immediately (temp file + ``os.replace``), so
concurrent requests cannot lose each other's updates.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
import uuid
from pathlib import Path
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from app.db.models.submission import Choice, Submission, SubmissionInput
from app.utils.stats import aggregate

logger = logging.getLogger("crop_advisory.store")

# A stored record: validated, or raw when it does not fit the current model.
Entry = Union[Submission, Any]


class StoreError(Exception):
    """Backing file could not be written."""


class SubmissionNotFound(LookupError):
    def __init__(self, submission_id: str):
        super().__init__(submission_id)
        self.submission_id = submission_id


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


class SubmissionStore:
    def __init__(self, path: str | os.PathLike, clock: Callable[[], int] = _now_ms):
        self.path = Path(path)
        self._clock = clock
        self._lock = threading.Lock()
        # Valid records as Submission, records that fail validation kept raw.
        self._entries: Optional[list[Entry]] = None
        self._extra: dict[str, Any] = {}
        self._listeners: list[Callable[[], None]] = []

    def add_listener(self, fn: Callable[[], None]) -> None:
        """Call `fn` after every committed mutation (cache invalidation)."""
        self._listeners.append(fn)

    # ---------------------------------------------------------------- reads

    def list(self) -> list[Submission]:
        with self._lock:
            return [s.model_copy(deep=True) for s in _valid(self._load())]

    def get(self, submission_id: str) -> Submission:
        with self._lock:
            for s in _valid(self._load()):
                if s.id == submission_id:
                    return s.model_copy(deep=True)
        raise SubmissionNotFound(submission_id)

    def aggregate(self) -> dict:
        with self._lock:
            subs = _valid(self._load())
        return aggregate(subs)

    # ------------------------------------------------------------ mutations

    def append(self, payload: SubmissionInput) -> Submission:
        with self._lock:
            entries = self._load()
            existing = {_entry_id(e) for e in entries}
            sid = _new_id()
            while sid in existing:
                sid = _new_id()

            # Keep history ordered even if the wall clock steps back.
            ts = max(self._clock(), _last_timestamp(entries))

            sub = Submission(**payload.model_dump(), id=sid, timestamp=ts, choice=None)
            self._commit([*entries, sub])
            logger.info("Saved submission %s (total=%d)", sid, len(entries) + 1)
            return sub.model_copy(deep=True)

    def update_choice(self, submission_id: str, choice: Optional[Choice]) -> Submission:
        with self._lock:
            entries = self._load()
            for idx, e in enumerate(entries):
                if isinstance(e, Submission) and e.id == submission_id:
                    break
            else:
                raise SubmissionNotFound(submission_id)

            updated = e.model_copy(update={"choice": choice})
            new_entries = list(entries)
            new_entries[idx] = updated
            self._commit(new_entries)
            return updated.model_copy(deep=True)

    def clear(self) -> None:
        with self._lock:
            self._load()
            self._commit([])
        logger.info("Cleared all submissions")

    def reload(self) -> None:
        """Drop the in-memory copy; next access re-reads the file."""
        with self._lock:
            self._entries = None

    # ------------------------------------------------------------ internals

    def _load(self) -> list[Entry]:
        # Caller holds the lock.
        if self._entries is not None:
            return self._entries

        self._extra = {}
        if not self.path.exists():
            self._entries = []
            try:
                self._flush([])
            except StoreError as exc:
                logger.warning("Could not materialize %s: %s", self.path, exc)
            return self._entries

        try:
            raw = self.path.read_text(encoding="utf-8")
            doc = json.loads(raw) if raw.strip() else {}
            if not isinstance(doc, dict) or not isinstance(doc.get("submissions", []), list):
                raise ValueError("top level must be an object with a 'submissions' array")
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable store %s, starting empty: %s", self.path, exc)
            self._quarantine()
            self._entries = []
            return self._entries

        self._extra = {k: v for k, v in doc.items() if k != "submissions"}
        self._entries = [self._parse_record(i, r) for i, r in enumerate(doc.get("submissions", []))]
        return self._entries

    def _parse_record(self, index: int, record: Any) -> Entry:
        try:
            return Submission.model_validate(record)
        except ValidationError as exc:
            rid = record.get("id") if isinstance(record, dict) else None
            logger.warning(
                "Skipping invalid submission #%d (id=%s) in %s: %s",
                index, rid, self.path, exc.errors()[:3],
            )
            # Kept verbatim so the next write does not drop it.
            return record

    def _quarantine(self) -> None:
        bad = self.path.with_name(f"{self.path.name}.corrupt-{int(time.time())}")
        try:
            os.replace(self.path, bad)
            logger.warning("Moved unreadable store to %s", bad)
        except OSError as exc:
            logger.warning("Could not move unreadable store aside: %s", exc)

    def _commit(self, entries: list[Entry]) -> None:
        # Flush first; the in-memory copy only changes if the disk write worked.
        self._flush(entries)
        self._entries = entries
        for fn in self._listeners:
            try:
                fn()
            except Exception:
                logger.exception("Store listener failed")

    def _flush(self, entries: list[Entry]) -> None:
        doc = {
            **self._extra,
            "submissions": [e.model_dump(mode="json") if isinstance(e, Submission) else e for e in entries],
        }
        data = json.dumps(doc, ensure_ascii=False, indent=2)
        tmp = self.path.with_name(f".{self.path.name}.{uuid.uuid4().hex}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, self.path)
        except OSError as exc:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                pass
            raise StoreError(f"Failed to write {self.path}: {exc}") from exc


def _valid(entries: list[Entry]) -> list[Submission]:
    return [e for e in entries if isinstance(e, Submission)]


def _entry_id(entry: Entry) -> str:
    if isinstance(entry, Submission):
        return entry.id
    return str(entry.get("id", "")) if isinstance(entry, dict) else ""


def _last_timestamp(entries: list[Entry]) -> int:
    for e in reversed(entries):
        if isinstance(e, Submission):
            return e.timestamp
        ts = e.get("timestamp") if isinstance(e, dict) else None
        if isinstance(ts, int) and not isinstance(ts, bool):
            return ts
    return 0
