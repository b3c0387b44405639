"""Batch synchronization of Santral CDRs into HubSpot."""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from callsync.adapters.santral.client import CallFilter, FetchResult
from callsync.adapters.santral.recording import RecordingResult, public_recording_url
from callsync.domain.models import CallRecord, EngagementParams, SyncFailure, SyncStats
from callsync.services.contacts import ContactResolver
from callsync.services.duplicates import DuplicateGuard
from callsync.services.engagements import EngagementWriter
from callsync.services.events import EventLogger
from callsync.services.utils import utc_now

LOGGER = logging.getLogger(__name__)

DEFAULT_WINDOW_HOURS = 24
DEFAULT_PAGE_LIMIT = 100


class SyncError(RuntimeError):
    pass


class CallFetcher(Protocol):
    def fetch_calls(self, call_filter: CallFilter) -> FetchResult: ...


class RecordingLocator(Protocol):
    def get_recording_url(self, call_uuid: str) -> RecordingResult: ...


@dataclass(frozen=True)
class SyncSummary:
    total: int
    processed: int
    success: int
    skipped: int
    failed: int
    contact_matched: int
    company_matched: int
    success_rate: float
    match_rate: float


def build_summary(stats: SyncStats) -> SyncSummary:
    return SyncSummary(
        total=stats.total,
        processed=stats.processed,
        success=stats.success,
        skipped=stats.skipped,
        failed=stats.failed,
        contact_matched=stats.contact_matched,
        company_matched=stats.company_matched,
        success_rate=stats.success_rate,
        match_rate=stats.match_rate,
    )


def format_summary(stats: SyncStats) -> list[str]:
    summary = build_summary(stats)
    lines = [
        "summary"
        f" total={summary.total}"
        f" processed={summary.processed}"
        f" success={summary.success}"
        f" skipped={summary.skipped}"
        f" failed={summary.failed}"
        f" contact_matched={summary.contact_matched}"
        f" company_matched={summary.company_matched}"
        f" success_rate={summary.success_rate:.1f}%"
        f" match_rate={summary.match_rate:.1f}%"
    ]
    for failure in stats.errors:
        lines.append(f"failed {failure.uuid} {failure.number} at={failure.timestamp} error={failure.error}")
    return lines


def build_call_note(record: CallRecord) -> str:
    recording = "• Ses Kaydı Mevcut" if record.has_recording else "• Ses Kaydı Yok"
    return "\n".join(
        [
            "Santral Çağrı Kaydı",
            "",
            "DETAYLAR",
            "--------",
            f"• UUID: {record.uuid}",
            f"• Başlangıç: {record.start_stamp}",
            f"• Süre: {record.duration}",
            f"• Durum: {record.result}",
            f"• Kuyruk: {record.queue or 'Yok'}",
            f"• Bekleme Süresi: {record.queue_wait_seconds or '0'} saniye",
            recording,
        ]
    )


class SyncOrchestrator:
    def __init__(
        self,
        fetcher: CallFetcher,
        resolver: ContactResolver,
        guard: DuplicateGuard,
        writer: EngagementWriter,
        recordings: RecordingLocator | None = None,
        page_limit: int = DEFAULT_PAGE_LIMIT,
        window_hours: int = DEFAULT_WINDOW_HOURS,
        logger: EventLogger | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.fetcher = fetcher
        self.resolver = resolver
        self.guard = guard
        self.writer = writer
        self.recordings = recordings
        self.page_limit = page_limit
        self.window_hours = window_hours
        self.logger = logger
        self.clock = clock

    def default_window(self) -> tuple[datetime, datetime]:
        now = self.clock()
        return now - timedelta(hours=self.window_hours), now

    def run_sync(
        self, window_start: datetime | None = None, window_end: datetime | None = None
    ) -> SyncStats:
        default_start, default_end = self.default_window()
        call_filter = CallFilter(
            start_from=window_start or default_start,
            start_to=window_end or default_end,
            limit=self.page_limit,
        )
        result = self.fetcher.fetch_calls(call_filter)
        if not result.success:
            raise SyncError(f"Santral API error: {result.error}")

        stats = SyncStats(total=len(result.records))
        LOGGER.info("Found %d calls between %s and %s", stats.total, call_filter.start_from, call_filter.start_to)
        for record in result.records:
            stats.processed += 1
            number = record.dialable_destination
            LOGGER.info("Processing %s [%d/%d]", number, stats.processed, stats.total)
            try:
                self._process_record(record, stats)
            except Exception as exc:
                LOGGER.exception("Call %s to %s failed", record.uuid, number)
                self._record_failure(record, exc, stats)

        for line in format_summary(stats):
            LOGGER.info(line)
        return stats

    def _process_record(self, record: CallRecord, stats: SyncStats) -> None:
        number = record.dialable_destination
        contact = self.resolver.find_contact_by_phone(number)
        if contact is None:
            self._skip(record, stats, "no_contact")
            return
        if self.guard.has_existing_engagement(record.uuid):
            self._skip(record, stats, "duplicate")
            return

        result = self.writer.create_engagement(self._engagement_params(record, contact.id))
        if not result.success:
            self._skip(record, stats, result.reason or "not_created")
            return

        stats.success += 1
        if result.contact_id:
            stats.contact_matched += 1
        if result.company_id:
            stats.company_matched += 1
        self._event(
            "engagement_created",
            record,
            {"call_id": result.call_id, "contact_id": result.contact_id, "company_id": result.company_id},
        )

    def _engagement_params(self, record: CallRecord, contact_id: str) -> EngagementParams:
        return EngagementParams(
            call_uuid=record.uuid,
            from_number=record.dialable_caller,
            to_number=record.dialable_destination,
            duration_seconds=record.duration_seconds,
            recording_url=self._recording_url(record),
            status_text=record.result,
            timestamp_ms=record.timestamp_ms,
            contact_id=contact_id,
            notes=build_call_note(record),
        )

    def _recording_url(self, record: CallRecord) -> str:
        if not record.has_recording:
            return ""
        if self.recordings is not None:
            located = self.recordings.get_recording_url(record.uuid)
            if located.success and located.url:
                return located.url
            LOGGER.warning("Recording URL for %s unavailable: %s", record.uuid, located.error)
        return public_recording_url(record.uuid)

    def _skip(self, record: CallRecord, stats: SyncStats, reason: str) -> None:
        stats.skipped += 1
        LOGGER.info("Skipped %s (%s)", record.uuid, reason)
        self._event("call_skipped", record, {"reason": reason})

    def _record_failure(self, record: CallRecord, exc: Exception, stats: SyncStats) -> None:
        stats.failed += 1
        stats.errors.append(
            SyncFailure(
                uuid=record.uuid,
                number=record.destination_number,
                error=str(exc) or exc.__class__.__name__,
                timestamp=self.clock().replace(microsecond=0).isoformat(),
            )
        )
        self._event("call_failed", record, {"error": str(exc)})

    def _event(self, event_type: str, record: CallRecord, details: dict[str, object]) -> None:
        if self.logger is not None:
            self.logger.log(
                event_type=event_type,
                call_uuid=record.uuid,
                number=record.dialable_destination,
                details=details,
            )
