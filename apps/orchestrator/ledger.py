"""Per-topic append-only generation log with derived tallies."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Tuple

LOGGER = logging.getLogger(__name__)


class LogKind(str, Enum):
    INFO = "info"
    OK = "ok"
    SKIP = "skip"
    ERROR = "error"
    DONE = "done"


@dataclass(frozen=True)
class LogEntry:
    kind: LogKind
    message: str
    subtopic_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, str | None]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "subtopic_id": self.subtopic_id,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class TopicProgress:
    """Immutable view of one topic's log."""

    entries: Tuple[LogEntry, ...] = ()
    ok_count: int = 0
    skip_count: int = 0
    fail_count: int = 0

    def kinds(self) -> List[LogKind]:
        return [entry.kind for entry in self.entries]

    def to_dict(self) -> Dict[str, object]:
        return {
            "entries": [entry.to_dict() for entry in self.entries],
            "ok_count": self.ok_count,
            "skip_count": self.skip_count,
            "fail_count": self.fail_count,
        }


LedgerListener = Callable[[str, LogEntry], None]


class ProgressLedger:
    """Holds each topic's log; tallies are recomputed from the entries themselves."""

    def __init__(self, listener: LedgerListener | None = None) -> None:
        self._logs: Dict[str, List[LogEntry]] = {}
        self._listener = listener

    def start_topic(self, topic_id: str) -> None:
        """Clear a topic's history before a new run over it."""
        self._logs[topic_id] = []

    def append(self, topic_id: str, entry: LogEntry) -> LogEntry:
        self._logs.setdefault(topic_id, []).append(entry)
        if self._listener is not None:
            try:
                self._listener(topic_id, entry)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Ledger listener failed for topic %s", topic_id)
        return entry

    def record(self, topic_id: str, kind: LogKind, message: str, *, subtopic_id: str | None = None) -> LogEntry:
        return self.append(topic_id, LogEntry(kind=kind, message=message, subtopic_id=subtopic_id))

    def snapshot(self, topic_id: str) -> TopicProgress:
        entries = tuple(self._logs.get(topic_id, ()))
        return TopicProgress(
            entries=entries,
            ok_count=sum(1 for entry in entries if entry.kind is LogKind.OK),
            skip_count=sum(1 for entry in entries if entry.kind is LogKind.SKIP),
            fail_count=sum(1 for entry in entries if entry.kind is LogKind.ERROR),
        )

    def snapshot_all(self) -> Dict[str, TopicProgress]:
        return {topic_id: self.snapshot(topic_id) for topic_id in self._logs}

    def reset(self) -> None:
        self._logs.clear()

    @property
    def topic_ids(self) -> List[str]:
        return list(self._logs)


__all__ = ["LedgerListener", "LogEntry", "LogKind", "ProgressLedger", "TopicProgress"]
