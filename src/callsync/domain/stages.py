from __future__ import annotations

from enum import Enum, IntEnum


class ProviderStatus(str, Enum):
    """Call outcomes as reported by the Santral CDR feed."""

    CANCELED = "Vazgeçildi"
    SUCCESSFUL = "Başarılı"
    BUSY = "Meşgul"
    MISSED = "Cevapsız"
    REJECTED = "Reddedildi"
    FAILED = "Başarısız"
    QUEUED = "Kuyrukta"
    RINGING = "Çalıyor"
    ON_HOLD = "Beklemede"


class CallStatus(str, Enum):
    """HubSpot ``hs_call_status`` values."""

    COMPLETED = "COMPLETED"
    BUSY = "BUSY"
    NO_ANSWER = "NO_ANSWER"
    FAILED = "FAILED"
    QUEUED = "QUEUED"
    RINGING = "RINGING"
    HOLD = "HOLD"
    CANCELED = "CANCELED"


class CallDirection(str, Enum):
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"


class AssociationTypeId(IntEnum):
    CALL_TO_CONTACT = 219
    CALL_TO_COMPANY = 220


class AssociationStatus(str, Enum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


STATUS_MAP: dict[ProviderStatus, CallStatus] = {
    ProviderStatus.CANCELED: CallStatus.CANCELED,
    ProviderStatus.SUCCESSFUL: CallStatus.COMPLETED,
    ProviderStatus.BUSY: CallStatus.BUSY,
    ProviderStatus.MISSED: CallStatus.NO_ANSWER,
    ProviderStatus.REJECTED: CallStatus.FAILED,
    ProviderStatus.FAILED: CallStatus.FAILED,
    ProviderStatus.QUEUED: CallStatus.QUEUED,
    ProviderStatus.RINGING: CallStatus.RINGING,
    ProviderStatus.ON_HOLD: CallStatus.HOLD,
}

# Provider wording outside the table ("Cevaplandı", "Ulaşılamıyor", ...) is logged as COMPLETED.
DEFAULT_CALL_STATUS = CallStatus.COMPLETED


def map_call_status(status_text: str | None) -> CallStatus:
    if not status_text:
        return DEFAULT_CALL_STATUS
    try:
        provider_status = ProviderStatus(status_text.strip())
    except ValueError:
        return DEFAULT_CALL_STATUS
    return STATUS_MAP[provider_status]
