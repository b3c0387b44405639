from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime

from callsync.adapters.hubspot.associations import AssociationPipeline
from callsync.adapters.hubspot.client import HubspotClient
from callsync.adapters.santral.client import SantralClient
from callsync.adapters.santral.rate_limit import RateLimiter
from callsync.adapters.santral.recording import RecordingClient
from callsync.config import WorkspaceConfig
from callsync.domain.models import SyncStats
from callsync.services.contacts import ContactResolver
from callsync.services.duplicates import DuplicateGuard
from callsync.services.engagements import EngagementWriter
from callsync.services.errors import ErrorLog
from callsync.services.events import EventLogger
from callsync.services.sync import SyncError, SyncOrchestrator
from callsync.services.sync_state import SyncState, save_sync_state
from callsync.services.utils import utc_now_iso


@dataclass
class HubspotStack:
    client: HubspotClient
    resolver: ContactResolver
    guard: DuplicateGuard
    writer: EngagementWriter
    error_log: ErrorLog


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise SyncError(f"{name} is not set.")
    return value


def build_hubspot_stack(ws: WorkspaceConfig, client: HubspotClient | None = None) -> HubspotStack:
    if client is None:
        client = HubspotClient(_require_env("HUBSPOT_ACCESS_TOKEN"), base_url=ws.hubspot.base_url)
    error_log = ErrorLog()
    resolver = ContactResolver(client, error_log, lookup_delay=ws.hubspot.lookup_delay_seconds)
    guard = DuplicateGuard(client, error_log)
    pipeline = AssociationPipeline(client, batch_size=ws.hubspot.association_batch_size)
    writer = EngagementWriter(client, resolver, guard, pipeline, error_log)
    return HubspotStack(client=client, resolver=resolver, guard=guard, writer=writer, error_log=error_log)


def build_orchestrator(
    ws: WorkspaceConfig,
    logger: EventLogger | None = None,
    page_limit: int | None = None,
) -> tuple[SyncOrchestrator, ErrorLog]:
    stack = build_hubspot_stack(ws)
    api_key = _require_env("SANTRAL_API_KEY")
    # Fetcher and recording locator share one ceiling.
    limiter = RateLimiter(ws.santral.max_requests_per_minute)
    fetcher = SantralClient(api_key, base_url=ws.santral.base_url, rate_limiter=limiter)
    recordings = None
    if ws.sync.fetch_recording_urls:
        recordings = RecordingClient(api_key, base_url=ws.santral.base_url, rate_limiter=limiter)
    orchestrator = SyncOrchestrator(
        fetcher,
        stack.resolver,
        stack.guard,
        stack.writer,
        recordings=recordings,
        page_limit=page_limit or ws.sync.page_limit,
        window_hours=ws.sync.window_hours,
        logger=logger,
    )
    return orchestrator, stack.error_log


def run(
    ws: WorkspaceConfig,
    window_start: datetime | None = None,
    window_end: datetime | None = None,
    page_limit: int | None = None,
    logger: EventLogger | None = None,
) -> tuple[SyncStats, ErrorLog]:
    orchestrator, error_log = build_orchestrator(ws, logger=logger, page_limit=page_limit)
    default_start, default_end = orchestrator.default_window()
    start = window_start or default_start
    end = window_end or default_end
    stats = orchestrator.run_sync(start, end)
    save_sync_state(
        ws.path,
        SyncState(
            last_run_at=utc_now_iso(),
            last_window={"start": start.isoformat(), "end": end.isoformat()},
            last_stats=stats,
        ),
    )
    return stats, error_log
