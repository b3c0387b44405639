import json
from datetime import UTC, datetime, timedelta

import pytest

from callsync.adapters.hubspot.associations import AssociationPipeline
from callsync.adapters.santral.client import CallFilter, FetchResult
from callsync.adapters.santral.recording import RecordingResult
from callsync.domain.models import CallRecord
from callsync.services.contacts import ContactResolver
from callsync.services.duplicates import DuplicateGuard
from callsync.services.engagements import EngagementWriter
from callsync.services.errors import ErrorLog
from callsync.services.events import EventLogger
from callsync.services.sync import SyncError, SyncOrchestrator, format_summary
from fakes import FakeHubspot, FakeSleep

NOW = datetime(2024, 11, 5, 12, 0, tzinfo=UTC)


def _cdr(uuid: str, destination: str = "05382752273", **extra) -> CallRecord:
    payload = {
        "call_uuid": uuid,
        "caller_id_number": "1002 (905318865036)",
        "destination_number": destination,
        "start_stamp": "2024-11-05 11:34:51 +0300",
        "duration": "00:02:02",
        "result": "Başarılı",
        "recording_present": "false",
    }
    payload.update(extra)
    return CallRecord.from_payload(payload)


class FakeFetcher:
    def __init__(self, records: list[CallRecord], success: bool = True) -> None:
        self.records = records
        self.success = success
        self.filters: list[CallFilter] = []

    def fetch_calls(self, call_filter: CallFilter) -> FetchResult:
        self.filters.append(call_filter)
        if not self.success:
            return FetchResult(success=False, error="Santral error 500: down")
        return FetchResult(success=True, records=list(self.records))


class FakeRecordings:
    def __init__(self, url: str | None) -> None:
        self.url = url
        self.requested: list[str] = []

    def get_recording_url(self, call_uuid: str) -> RecordingResult:
        self.requested.append(call_uuid)
        if self.url is None:
            return RecordingResult(success=False, error="missing")
        return RecordingResult(success=True, url=self.url)


def _orchestrator(client: FakeHubspot, fetcher: FakeFetcher, **kwargs) -> SyncOrchestrator:
    error_log = ErrorLog()
    resolver = ContactResolver(client, error_log, sleep=FakeSleep())
    guard = DuplicateGuard(client, error_log)
    writer = EngagementWriter(client, resolver, guard, AssociationPipeline(client), error_log)
    return SyncOrchestrator(fetcher, resolver, guard, writer, clock=lambda: NOW, **kwargs)


@pytest.fixture()
def client() -> FakeHubspot:
    fake = FakeHubspot()
    fake.add_contact("101", phone="+905382752273", company_id="501")
    fake.add_company("501", "Acme Lojistik")
    return fake


def test_single_call_end_to_end(client: FakeHubspot) -> None:
    stats = _orchestrator(client, FakeFetcher([_cdr("abc-1")])).run_sync()
    assert (stats.total, stats.processed, stats.success, stats.failed) == (1, 1, 1, 0)
    assert stats.contact_matched == 1
    assert stats.company_matched == 1
    assert stats.success_rate == 100.0

    (properties,) = client.calls.values()
    assert "abc-1" in properties["hs_call_body"]
    assert properties["hs_call_duration"] == 122
    assert properties["hs_call_status"] == "COMPLETED"
    assert properties["hs_call_from_number"] == "1002"


def test_rerun_skips_recorded_calls(client: FakeHubspot) -> None:
    fetcher = FakeFetcher([_cdr("abc-1")])
    _orchestrator(client, fetcher).run_sync()
    stats = _orchestrator(client, fetcher).run_sync()
    assert stats.success == 0
    assert stats.skipped == 1
    assert len(client.calls) == 1


def test_one_failing_call_does_not_stop_the_run(client: FakeHubspot) -> None:
    client.fail_create_for.add("uuid-3")
    records = [_cdr(f"uuid-{i}") for i in range(1, 6)]
    stats = _orchestrator(client, FakeFetcher(records)).run_sync()
    assert stats.processed == 5
    assert stats.success == 4
    assert stats.failed == 1
    assert stats.success + stats.skipped + stats.failed == stats.processed
    (failure,) = stats.errors
    assert failure.uuid == "uuid-3"
    assert failure.number == "05382752273"
    assert "500" in failure.error
    assert failure.timestamp == "2024-11-05T12:00:00+00:00"
    assert any(line.startswith("failed uuid-3") for line in format_summary(stats))


def test_unmatched_number_is_skipped(client: FakeHubspot) -> None:
    stats = _orchestrator(client, FakeFetcher([_cdr("abc-2", destination="05551112233")])).run_sync()
    assert stats.skipped == 1
    assert stats.success == 0
    assert stats.match_rate == 0.0
    assert client.calls == {}


def test_extension_annotation_is_ignored_for_lookup(client: FakeHubspot) -> None:
    stats = _orchestrator(client, FakeFetcher([_cdr("abc-3", destination="05382752273 (Ayşe)")])).run_sync()
    assert stats.success == 1


def test_lookup_failure_counts_as_failed(client: FakeHubspot) -> None:
    client.fail_methods.add("search_objects")
    stats = _orchestrator(client, FakeFetcher([_cdr("abc-1")])).run_sync()
    assert stats.failed == 1
    assert client.calls == {}


def test_fetch_failure_raises(client: FakeHubspot) -> None:
    with pytest.raises(SyncError, match="down"):
        _orchestrator(client, FakeFetcher([], success=False)).run_sync()


def test_default_window_uses_clock(client: FakeHubspot) -> None:
    fetcher = FakeFetcher([])
    stats = _orchestrator(client, fetcher, page_limit=50, window_hours=6).run_sync()
    assert stats.total == 0
    assert stats.success_rate == 0.0
    (call_filter,) = fetcher.filters
    assert call_filter.start_from == NOW - timedelta(hours=6)
    assert call_filter.start_to == NOW
    assert call_filter.limit == 50


def test_explicit_window_is_passed_through(client: FakeHubspot) -> None:
    fetcher = FakeFetcher([])
    start = datetime(2024, 11, 1, tzinfo=UTC)
    end = datetime(2024, 11, 2, tzinfo=UTC)
    _orchestrator(client, fetcher).run_sync(start, end)
    assert (fetcher.filters[0].start_from, fetcher.filters[0].start_to) == (start, end)


def test_recording_url_from_locator(client: FakeHubspot) -> None:
    recordings = FakeRecordings("https://records.example/abc-1.mp3")
    _orchestrator(client, FakeFetcher([_cdr("abc-1", recording_present="true")]), recordings=recordings).run_sync()
    (properties,) = client.calls.values()
    assert properties["hs_call_recording_url"] == "https://records.example/abc-1.mp3"
    assert recordings.requested == ["abc-1"]


def test_recording_url_falls_back_to_public_link(client: FakeHubspot) -> None:
    recordings = FakeRecordings(None)
    _orchestrator(client, FakeFetcher([_cdr("abc-1", recording_present="true")]), recordings=recordings).run_sync()
    (properties,) = client.calls.values()
    assert properties["hs_call_recording_url"] == "https://api.bulutsantralim.com/recording/abc-1"


def test_events_are_written(client: FakeHubspot, tmp_path) -> None:
    events_path = tmp_path / "events.ndjson"
    logger = EventLogger(path=events_path, workspace="demo")
    records = [_cdr("abc-1"), _cdr("abc-2", destination="05551112233")]
    _orchestrator(client, FakeFetcher(records), logger=logger).run_sync()
    events = [json.loads(line) for line in events_path.read_text(encoding="utf-8").splitlines()]
    assert [event["event_type"] for event in events] == ["engagement_created", "call_skipped"]
    assert events[0]["workspace"] == "demo"
    assert events[1]["details"] == {"reason": "no_contact"}


def test_answered_call_with_recording(client: FakeHubspot) -> None:
    record = CallRecord.from_payload(
        {
            "call_uuid": "abc-1",
            "caller_id_number": "1002 (905318865036)",
            "destination_number": "05382752273",
            "start_stamp": "2024-11-05 11:34:51 +0300",
            "duration": "00:02:02",
            "result": "Cevaplandı",
            "recording_present": "true",
        }
    )
    stats = _orchestrator(client, FakeFetcher([record])).run_sync()
    assert stats.success == 1
    (properties,) = client.calls.values()
    assert "abc-1" in properties["hs_call_body"]
    assert properties["hs_call_duration"] == 122
    assert properties["hs_call_status"] == "COMPLETED"
    assert properties["hs_call_recording_url"] == "https://api.bulutsantralim.com/recording/abc-1"
    assert properties["hs_timestamp"] == 1730795691000
    assert "• Ses Kaydı Mevcut" in properties["hs_call_body"]
