from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from callsync.domain import rules
from callsync.domain.stages import AssociationStatus


@dataclass(frozen=True)
class CallRecord:
    uuid: str
    caller_number: str
    destination_number: str
    start_stamp: str
    duration: str
    result: str
    recording_present: str
    queue: str | None = None
    queue_wait_seconds: str | None = None
    direction: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> CallRecord:
        rules.require(payload.get("call_uuid"), "call_uuid")
        return cls(
            uuid=str(payload["call_uuid"]),
            caller_number=str(payload.get("caller_id_number") or ""),
            destination_number=str(payload.get("destination_number") or ""),
            start_stamp=str(payload.get("start_stamp") or ""),
            duration=str(payload.get("duration") or "00:00:00"),
            result=str(payload.get("result") or ""),
            recording_present=str(payload.get("recording_present") or "false"),
            queue=payload.get("queue") or None,
            queue_wait_seconds=_optional_str(payload.get("queue_wait_seconds")),
            direction=payload.get("direction") or None,
        )

    @property
    def dialable_destination(self) -> str:
        return rules.dialable_part(self.destination_number)

    @property
    def dialable_caller(self) -> str:
        return rules.dialable_part(self.caller_number)

    @property
    def duration_seconds(self) -> int:
        return rules.parse_duration(self.duration)

    @property
    def has_recording(self) -> bool:
        return rules.parse_bool_text(self.recording_present)

    @property
    def started_at(self) -> datetime | None:
        return rules.parse_start_stamp(self.start_stamp)

    @property
    def timestamp_ms(self) -> int | None:
        started_at = self.started_at
        if started_at is None:
            return None
        return int(started_at.timestamp() * 1000)


@dataclass(frozen=True)
class Company:
    id: str
    name: str | None


@dataclass(frozen=True)
class Contact:
    id: str
    firstname: str | None = None
    lastname: str | None = None
    phone: str | None = None
    mobilephone: str | None = None
    company_ids: tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return f"{self.firstname or ''} {self.lastname or ''}".strip()

    @property
    def primary_company_id(self) -> str | None:
        return self.company_ids[0] if self.company_ids else None

    @classmethod
    def from_hubspot(cls, payload: dict[str, Any]) -> Contact:
        properties = payload.get("properties") or {}
        associations = payload.get("associations") or {}
        companies = (associations.get("companies") or {}).get("results") or []
        return cls(
            id=str(payload["id"]),
            firstname=properties.get("firstname"),
            lastname=properties.get("lastname"),
            phone=properties.get("phone"),
            mobilephone=properties.get("mobilephone"),
            company_ids=tuple(str(item["id"]) for item in companies if item.get("id")),
        )


@dataclass(frozen=True)
class EngagementParams:
    call_uuid: str
    from_number: str
    to_number: str
    duration_seconds: int
    recording_url: str
    status_text: str
    timestamp_ms: int | None
    contact_id: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class AssociationPair:
    from_id: str
    to_id: str
    association_type_id: int


@dataclass(frozen=True)
class AssociationOutcome:
    status: AssociationStatus
    from_id: str
    to_id: str

    @property
    def succeeded(self) -> bool:
        return self.status == AssociationStatus.SUCCESS


@dataclass(frozen=True)
class CallAssociations:
    contact: AssociationOutcome | None = None
    company: AssociationOutcome | None = None


@dataclass(frozen=True)
class EngagementResult:
    success: bool
    call_id: str | None = None
    reason: str | None = None
    contact_id: str | None = None
    company_id: str | None = None
    contact_name: str | None = None
    company_name: str | None = None
    associations: CallAssociations = field(default_factory=CallAssociations)

    @classmethod
    def duplicate(cls) -> EngagementResult:
        return cls(success=False, reason="duplicate")


@dataclass(frozen=True)
class SyncFailure:
    uuid: str
    number: str
    error: str
    timestamp: str


@dataclass
class SyncStats:
    total: int = 0
    processed: int = 0
    success: int = 0
    skipped: int = 0
    failed: int = 0
    contact_matched: int = 0
    company_matched: int = 0
    errors: list[SyncFailure] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        return _percent(self.success, self.total)

    @property
    def match_rate(self) -> float:
        return _percent(self.contact_matched, self.total)


def _percent(part: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(part * 100.0 / total, 1)


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
