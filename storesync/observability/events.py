"""
Hierarchical job event logging.

Every job transition is written as one structured log record whose message
is a ``:``-joined key built from the job kind taxonomy, the store domain and
the event name, e.g. ``update_store:shop1.example.com:started``.
"""

import re
from datetime import UTC, datetime
from typing import Any, Protocol

from storesync.constants import (
    EVENT_KEY_DELIMITER,
    JOB_KIND_TAXONOMY,
    TAXONOMY_PREFIX_DEPTH,
    JobKind,
    LogLevel,
)
from storesync.observability.logging import get_logger
from storesync.types.events import JobEvent

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_SEPARATORS = re.compile(r"[\s\-]+")

# Keys structlog fills itself; payload values under them are renamed
RESERVED_LOG_KEYS = frozenset({"event", "level", "logger", "timestamp"})


class EventSubject(Protocol):
    """Anything events can be logged about, in practice a Store."""

    myshopify_domain: str | None

    def compact(self) -> dict[str, Any]: ...


class LogSink(Protocol):
    """Destination for job events."""

    def log(self, channel: str, level: LogLevel, message: str, data: dict[str, Any]) -> None: ...


class StructlogSink:
    """
    Writes job events to a structlog logger named after the channel.

    Payload keys that collide with structlog's own fields are logged with a
    ``payload_`` prefix.
    """

    def log(self, channel: str, level: LogLevel, message: str, data: dict[str, Any]) -> None:
        fields = {
            (f"payload_{key}" if key in RESERVED_LOG_KEYS else key): value
            for key, value in data.items()
        }
        getattr(get_logger(channel), level.value)(message, **fields)


def snake_case(value: str) -> str:
    """Convert ``UpdateStore`` or ``update-store`` to ``update_store``."""
    value = _SEPARATORS.sub("_", value.strip())
    return _CAMEL_BOUNDARY.sub("_", value).lower()


def event_key(kind: JobKind, domain: str | None, event: str) -> str:
    """Build the hierarchical message key for an event."""
    path = JOB_KIND_TAXONOMY.get(kind, (kind.value,))
    parts = [snake_case(part) for part in path[TAXONOMY_PREFIX_DEPTH:]]
    parts.append(domain or "")
    parts.append(event)
    return EVENT_KEY_DELIMITER.join(part for part in parts if part)


def coerce_level(level: LogLevel | str) -> LogLevel:
    try:
        return LogLevel(str(level).lower())
    except ValueError:
        return LogLevel.INFO


class EventLogger:
    """
    Formats and emits job events to a configured log channel.

    Args:
        channel: Log channel name (``Settings.sync_log_channel``).
        sink: Event destination. Defaults to structlog.
    """

    def __init__(self, channel: str, sink: LogSink | None = None):
        self.channel = channel
        self._sink = sink or StructlogSink()

    def emit(
        self,
        kind: JobKind,
        subject: EventSubject,
        event: str,
        data: dict[str, Any] | None = None,
        level: LogLevel | str = LogLevel.ERROR,
        **context: Any,
    ) -> JobEvent:
        """
        Emit one job event.

        Args:
            kind: Job kind the event belongs to.
            subject: The store the event is about.
            event: Event name such as ``started``.
            data: Extra payload; its keys win over the base store fields.
            level: Severity; unknown values are logged at info.
            **context: Additional payload such as ``job_id`` (may be None).

        Returns:
            The emitted event record.
        """
        domain = getattr(subject, "myshopify_domain", None)
        payload = {**subject.compact(), **context, **(data or {})}
        job_event = JobEvent(
            message=event_key(kind, domain, event),
            job_kind=kind,
            myshopify_domain=domain,
            event=event,
            level=coerce_level(level),
            data=payload,
            timestamp=datetime.now(UTC),
        )
        self._sink.log(self.channel, job_event.level, job_event.message, job_event.data)
        return job_event
