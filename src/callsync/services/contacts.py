from __future__ import annotations

import logging
import time
from collections.abc import Callable

from callsync.adapters.hubspot.client import HubspotClient, HubspotError
from callsync.domain import phone
from callsync.domain.models import Company, Contact
from callsync.services.errors import ErrorLog
from callsync.services.utils import first_match

LOGGER = logging.getLogger(__name__)

CONTACT_PROPERTIES = ["phone", "mobilephone", "firstname", "lastname", "company"]
PHONE_FIELDS = ("phone", "mobilephone")
DEFAULT_LOOKUP_DELAY = 0.3


def phone_filter_groups(value: str) -> list[dict[str, object]]:
    # Separate filter groups are OR-ed by HubSpot search.
    return [
        {"filters": [{"propertyName": field, "operator": "CONTAINS_TOKEN", "value": value}]}
        for field in PHONE_FIELDS
    ]


class ContactResolver:
    def __init__(
        self,
        client: HubspotClient,
        error_log: ErrorLog | None = None,
        lookup_delay: float = DEFAULT_LOOKUP_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.error_log = error_log if error_log is not None else ErrorLog()
        self.lookup_delay = lookup_delay
        self.sleep = sleep

    def find_contact_by_phone(self, raw_number: str) -> Contact | None:
        normalized = phone.normalize(raw_number)
        if not normalized:
            LOGGER.warning("Cannot look up contact, invalid phone number: %r", raw_number)
            return None

        variants = phone.lookup_variants(normalized)
        LOGGER.debug("Trying phone formats %s", variants)
        try:
            contact = first_match(variants, self._search_variant)
        except HubspotError as exc:
            self.error_log.record("find_contact_by_phone", exc, {"phone_number": raw_number})
            raise
        if contact is None:
            LOGGER.info("No contact found for %s", normalized)
        return contact

    def get_contact_with_company(self, contact_id: str) -> Contact | None:
        try:
            payload = self.client.get_object(
                "contacts", contact_id, associations=["companies"], properties=CONTACT_PROPERTIES
            )
        except HubspotError as exc:
            self.error_log.record("get_contact_with_company", exc, {"contact_id": contact_id})
            return None
        return Contact.from_hubspot(payload)

    def get_company(self, company_id: str) -> Company:
        try:
            payload = self.client.get_object("companies", company_id, properties=["name"])
        except HubspotError as exc:
            self.error_log.record("get_company", exc, {"company_id": company_id})
            raise
        properties = payload.get("properties") or {}
        return Company(id=str(payload.get("id") or company_id), name=properties.get("name"))

    def _search_variant(self, variant: str) -> Contact | None:
        if self.lookup_delay > 0:
            self.sleep(self.lookup_delay)
        data = self.client.search_objects(
            "contacts",
            phone_filter_groups(variant),
            properties=CONTACT_PROPERTIES,
            limit=1,
        )
        results = data.get("results") or []
        if int(data.get("total") or 0) <= 0 or not results:
            return None
        contact = Contact.from_hubspot(results[0])
        LOGGER.info("Contact %s matched phone format %s", contact.id, variant)
        return contact
