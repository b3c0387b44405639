from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any

from callsync.adapters.hubspot.associations import AssociationPipeline
from callsync.adapters.hubspot.client import HubspotClient, HubspotError
from callsync.domain import phone
from callsync.domain.models import (
    CallAssociations,
    Company,
    Contact,
    EngagementParams,
    EngagementResult,
)
from callsync.domain.stages import CallDirection, map_call_status
from callsync.services.contacts import ContactResolver
from callsync.services.duplicates import DuplicateGuard
from callsync.services.errors import ErrorLog
from callsync.services.utils import utc_now

LOGGER = logging.getLogger(__name__)

SOURCE_LABEL = "Santral"
NOTE_TIMEZONE = timezone(timedelta(hours=3), "TRT")


def call_title(contact: Contact | None, to_number: str) -> str:
    name = contact.display_name if contact and contact.display_name else to_number
    return f"Call with {name} - {SOURCE_LABEL}"


def format_start(timestamp_ms: int | None) -> str:
    if timestamp_ms is None:
        return "-"
    started = datetime.fromtimestamp(timestamp_ms / 1000, tz=NOTE_TIMEZONE)
    return started.strftime("%d.%m.%Y %H:%M:%S")


def build_call_note(
    params: EngagementParams,
    contact_name: str,
    company_name: str | None = None,
) -> str:
    minutes, seconds = divmod(params.duration_seconds, 60)
    counterpart = f"{contact_name} ({company_name})" if company_name else contact_name
    recording = f"• Ses Kaydı: {params.recording_url}" if params.recording_url else "• Ses Kaydı Yok"
    lines = [
        f"{SOURCE_LABEL} Çağrı Detayları",
        "",
        "DETAYLAR",
        "--------",
        f"• UUID: {params.call_uuid}",
        f"• Arayan: {phone.to_display_form(params.from_number)}",
        f"• Aranan: {counterpart}",
        f"• Alıcı No: {phone.to_display_form(params.to_number)}",
        f"• Başlangıç: {format_start(params.timestamp_ms)}",
        f"• Süre: {minutes} dakika {seconds} saniye",
        f"• Durum: {params.status_text}",
        recording,
    ]
    return "\n".join(lines)


def ensure_uuid_token(notes: str, call_uuid: str) -> str:
    """The UUID in the body is the only link the duplicate search can find later."""
    if call_uuid in notes:
        return notes
    return f"{notes.rstrip()}\n• UUID: {call_uuid}"


class EngagementWriter:
    def __init__(
        self,
        client: HubspotClient,
        resolver: ContactResolver,
        guard: DuplicateGuard,
        associations: AssociationPipeline,
        error_log: ErrorLog | None = None,
    ) -> None:
        self.client = client
        self.resolver = resolver
        self.guard = guard
        self.associations = associations
        self.error_log = error_log if error_log is not None else ErrorLog()

    def create_engagement(self, params: EngagementParams) -> EngagementResult:
        try:
            return self._create(params)
        except HubspotError as exc:
            self.error_log.record(
                "create_engagement",
                exc,
                {"contact_id": params.contact_id, "call_uuid": params.call_uuid},
            )
            raise

    def _create(self, params: EngagementParams) -> EngagementResult:
        if self.guard.has_existing_engagement(params.call_uuid):
            LOGGER.info("Call %s already recorded", params.call_uuid)
            return EngagementResult.duplicate()

        contact = self._resolve_contact(params)
        if contact is not None and params.contact_id != contact.id:
            params = replace(params, contact_id=contact.id)
        company = self._resolve_company(contact)

        contact_name = contact.display_name if contact and contact.display_name else params.to_number
        company_name = company.name if company else None
        properties = self._call_properties(params, contact, contact_name, company_name)

        created = self.client.create_object("calls", properties)
        call_id = str(created["id"])
        LOGGER.info("Created call engagement %s for %s", call_id, params.call_uuid)

        associations = self._associate(call_id, contact, company)
        return EngagementResult(
            success=True,
            call_id=call_id,
            contact_id=contact.id if contact else None,
            company_id=company.id if company else None,
            contact_name=contact.display_name if contact else None,
            company_name=company_name,
            associations=associations,
        )

    def _resolve_contact(self, params: EngagementParams) -> Contact | None:
        if params.contact_id:
            contact = self.resolver.get_contact_with_company(params.contact_id)
            if contact is None:
                # Keep the caller's id so the call is still linked.
                return Contact(id=params.contact_id)
            return contact
        found = self.resolver.find_contact_by_phone(params.to_number)
        if found is None:
            return None
        if found.company_ids:
            return found
        return self.resolver.get_contact_with_company(found.id) or found

    def _resolve_company(self, contact: Contact | None) -> Company | None:
        if contact is None or contact.primary_company_id is None:
            return None
        return self.resolver.get_company(contact.primary_company_id)

    def _call_properties(
        self,
        params: EngagementParams,
        contact: Contact | None,
        contact_name: str,
        company_name: str | None,
    ) -> dict[str, Any]:
        if params.notes:
            body = ensure_uuid_token(params.notes, params.call_uuid)
        else:
            body = build_call_note(params, contact_name, company_name)
        timestamp = params.timestamp_ms
        if timestamp is None:
            timestamp = int(utc_now().timestamp() * 1000)
        return {
            "hs_call_direction": CallDirection.INBOUND.value,
            "hs_call_duration": params.duration_seconds,
            "hs_call_from_number": phone.normalize(params.from_number) or params.from_number,
            "hs_call_to_number": phone.normalize(params.to_number) or params.to_number,
            "hs_call_recording_url": params.recording_url,
            "hs_call_status": map_call_status(params.status_text).value,
            "hs_call_title": call_title(contact, params.to_number),
            "hs_timestamp": timestamp,
            "hs_call_body": body,
        }

    def _associate(
        self, call_id: str, contact: Contact | None, company: Company | None
    ) -> CallAssociations:
        if contact is None and company is None:
            return CallAssociations()
        try:
            associations = self.associations.link_call(
                call_id,
                contact_id=contact.id if contact else None,
                company_id=company.id if company else None,
            )
        except HubspotError as exc:
            self.error_log.record(
                "link_call",
                exc,
                {
                    "call_id": call_id,
                    "contact_id": contact.id if contact else None,
                    "company_id": company.id if company else None,
                },
            )
            LOGGER.warning("Call %s created but could not be associated: %s", call_id, exc)
            return CallAssociations()
        if associations.contact and associations.contact.succeeded and contact:
            LOGGER.info("Call %s associated with contact %s", call_id, contact.display_name or contact.id)
        if associations.company and associations.company.succeeded and company:
            LOGGER.info("Call %s associated with company %s", call_id, company.name or company.id)
        return associations
