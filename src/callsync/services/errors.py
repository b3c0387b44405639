from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from callsync.services.utils import utc_now_iso

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorLogEntry:
    timestamp: str
    method: str
    error: str
    context: dict[str, Any] = field(default_factory=dict)
    response: Any | None = None


class ErrorLog:
    """Diagnostic record of every upstream failure seen by one client stack.

    Entries live until :meth:`clear` is called; they are independent of the
    per-run :class:`~callsync.domain.models.SyncStats`.
    """

    def __init__(self) -> None:
        self._entries: list[ErrorLogEntry] = []

    def record(self, method: str, error: BaseException, context: dict[str, Any] | None = None) -> ErrorLogEntry:
        entry = ErrorLogEntry(
            timestamp=utc_now_iso(),
            method=method,
            error=str(error) or error.__class__.__name__,
            context=dict(context or {}),
            response=getattr(error, "body", None),
        )
        self._entries.append(entry)
        LOGGER.error("%s failed: %s (context=%s)", method, entry.error, entry.context)
        return entry

    @property
    def entries(self) -> list[ErrorLogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
