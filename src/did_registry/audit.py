"""AuditLog — JSONL audit trail for DID and credential events.

Every committed registry transition and every credential issuance or
verification is appended as one JSON line. With a file path configured
the lines go to that file; otherwise they are buffered in memory and can
be drained via :meth:`AuditLog.drain_buffer`.
"""
from __future__ import annotations

import datetime
import json
import threading
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class AuditEvent:
    """A single auditable event.

    Parameters
    ----------
    event_type:
        Short snake_case name, e.g. ``"did_registered"``.
    subject:
        The DID or credential id the event is about.
    actor:
        Address or DID that triggered the event. Defaults to ``"system"``.
    details:
        Arbitrary JSON-compatible metadata.
    timestamp:
        UTC time of the event. Defaults to now.
    """

    event_type: str
    subject: str
    actor: str = "system"
    details: dict[str, object] = field(default_factory=dict)
    timestamp: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary suitable for JSON encoding."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type,
            "subject": self.subject,
            "actor": self.actor,
            "details": self.details,
        }


class AuditLog:
    """Append-only, thread-safe JSONL audit log.

    Parameters
    ----------
    log_path:
        Path to the JSONL file. Parent directories are created. If
        ``None``, events are kept in an in-memory buffer.
    """

    def __init__(self, log_path: Path | None = None) -> None:
        self._log_path = log_path
        self._buffer: list[str] = []
        self._lock = threading.Lock()

        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, event: AuditEvent) -> None:
        """Append *event* to the log."""
        line = json.dumps(event.to_dict(), separators=(",", ":"), default=str)
        with self._lock:
            if self._log_path is not None:
                with self._log_path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
            else:
                self._buffer.append(line)

    def log_event(
        self,
        event_type: str,
        subject: str,
        actor: str = "system",
        **details: object,
    ) -> None:
        """Log an event without constructing :class:`AuditEvent` by hand."""
        self.log(
            AuditEvent(event_type=event_type, subject=subject, actor=actor, details=details)
        )

    def drain_buffer(self) -> list[dict[str, object]]:
        """Return and clear all buffered events (in-memory mode only)."""
        with self._lock:
            lines, self._buffer = self._buffer, []
        return [json.loads(line) for line in lines]

    def read_log(self) -> list[dict[str, object]]:
        """Return every event written to the log file.

        Returns an empty list in in-memory mode or if the file does not
        exist yet.
        """
        if self._log_path is None or not self._log_path.exists():
            return []
        with self._lock:
            content = self._log_path.read_text(encoding="utf-8")
        return [json.loads(line) for line in content.splitlines() if line.strip()]

    @property
    def log_path(self) -> Path | None:
        """The configured log file, or ``None`` in in-memory mode."""
        return self._log_path


__all__ = ["AuditEvent", "AuditLog"]
