from __future__ import annotations

import logging

from callsync.adapters.hubspot.client import HubspotClient, HubspotError
from callsync.domain.rules import ValidationError
from callsync.services.errors import ErrorLog

LOGGER = logging.getLogger(__name__)

BODY_PROPERTY = "hs_call_body"


class DuplicateGuard:
    """Finds call engagements by the provider UUID embedded in their body text.

    Search failures are treated as "not recorded yet" so a CRM hiccup never
    stalls the sync; a transient failure can therefore let a duplicate through.
    """

    def __init__(self, client: HubspotClient, error_log: ErrorLog | None = None) -> None:
        self.client = client
        self.error_log = error_log if error_log is not None else ErrorLog()

    def has_existing_engagement(self, call_uuid: str) -> bool:
        try:
            return self._search(call_uuid) is not None
        except HubspotError as exc:
            self.error_log.record("has_existing_engagement", exc, {"call_uuid": call_uuid})
            LOGGER.warning("Duplicate check for %s failed; assuming not recorded", call_uuid)
            return False

    def find_engagement_id(self, call_uuid: str) -> str | None:
        try:
            return self._search(call_uuid)
        except HubspotError as exc:
            self.error_log.record("find_engagement_id", exc, {"call_uuid": call_uuid})
            return None

    def update_notes(self, call_uuid: str, notes: str) -> bool:
        if call_uuid not in notes:
            raise ValidationError("notes must contain the call UUID.")
        call_id = self.find_engagement_id(call_uuid)
        if not call_id:
            return False
        try:
            self.client.update_object("calls", call_id, {BODY_PROPERTY: notes})
        except HubspotError as exc:
            self.error_log.record("update_notes", exc, {"call_uuid": call_uuid, "call_id": call_id})
            return False
        return True

    def _search(self, call_uuid: str) -> str | None:
        data = self.client.search_objects(
            "calls",
            [{"filters": [{"propertyName": BODY_PROPERTY, "operator": "CONTAINS_TOKEN", "value": call_uuid}]}],
            properties=[BODY_PROPERTY],
            limit=1,
        )
        results = data.get("results") or []
        if int(data.get("total") or 0) <= 0:
            return None
        return str(results[0]["id"]) if results else ""
