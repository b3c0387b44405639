from __future__ import annotations

from typing import Any

from callsync.adapters.hubspot.client import HubspotError


def _filter_value(filter_groups: list[dict[str, Any]]) -> str:
    return filter_groups[0]["filters"][0]["value"]


class FakeHubspot:
    """In-memory stand-in for HubspotClient."""

    def __init__(self) -> None:
        self.contacts: dict[str, dict[str, Any]] = {}
        self.companies: dict[str, dict[str, Any]] = {}
        self.calls: dict[str, dict[str, Any]] = {}
        self.requests: list[tuple[str, Any]] = []
        self.fail_methods: set[str] = set()
        self.fail_create_for: set[str] = set()
        self._next_id = 9000

    def add_contact(
        self,
        contact_id: str,
        phone: str | None = None,
        mobilephone: str | None = None,
        firstname: str = "Ayşe",
        lastname: str = "Yılmaz",
        company_id: str | None = None,
    ) -> None:
        self.contacts[contact_id] = {
            "id": contact_id,
            "properties": {
                "phone": phone,
                "mobilephone": mobilephone,
                "firstname": firstname,
                "lastname": lastname,
            },
            "company_id": company_id,
        }

    def add_company(self, company_id: str, name: str) -> None:
        self.companies[company_id] = {"id": company_id, "properties": {"name": name}}

    def search_objects(self, object_type, filter_groups, properties=None, limit=None):
        self._check("search_objects")
        value = _filter_value(filter_groups)
        self.requests.append(("search", (object_type, value)))
        if object_type == "contacts":
            fields = [group["filters"][0]["propertyName"] for group in filter_groups]
            matches = [
                {"id": c["id"], "properties": c["properties"]}
                for c in self.contacts.values()
                if any(c["properties"].get(field) == value for field in fields)
            ]
        else:
            matches = [
                {"id": call_id, "properties": props}
                for call_id, props in self.calls.items()
                if value in (props.get("hs_call_body") or "")
            ]
        return {"total": len(matches), "results": matches[: limit or len(matches)]}

    def get_object(self, object_type, object_id, associations=None, properties=None):
        self._check("get_object")
        self.requests.append(("get", (object_type, object_id)))
        if object_type == "contacts":
            contact = self.contacts[object_id]
            payload = {"id": contact["id"], "properties": contact["properties"]}
            if associations and contact["company_id"]:
                payload["associations"] = {"companies": {"results": [{"id": contact["company_id"]}]}}
            return payload
        if object_type == "companies":
            return self.companies[object_id]
        raise HubspotError("not found", status_code=404)

    def create_object(self, object_type, properties):
        self._check("create_object")
        body = properties.get("hs_call_body") or ""
        if any(uuid in body for uuid in self.fail_create_for):
            raise HubspotError("HubSpot error 500: boom", status_code=500, body={"message": "boom"})
        self._next_id += 1
        call_id = str(self._next_id)
        self.calls[call_id] = dict(properties)
        self.requests.append(("create", (object_type, call_id)))
        return {"id": call_id, "properties": properties}

    def update_object(self, object_type, object_id, properties):
        self._check("update_object")
        self.calls[object_id].update(properties)
        self.requests.append(("update", (object_type, object_id)))
        return {"id": object_id}

    def batch_create_associations(self, from_type, to_type, inputs):
        self._check("batch_create_associations")
        self.requests.append(("typed_batch", (from_type, to_type, inputs)))
        return {"status": "COMPLETE", "results": []}

    def batch_associate_default(self, from_type, to_type, inputs):
        self._check("batch_associate_default")
        self.requests.append(("default_batch", (from_type, to_type, inputs)))
        return {"status": "COMPLETE", "results": []}

    def associate_default(self, from_type, from_id, to_type, to_id):
        self._check("associate_default")
        self.requests.append(("single", (from_type, from_id, to_type, to_id)))
        return {}

    def requests_of(self, kind: str) -> list[Any]:
        return [args for name, args in self.requests if name == kind]

    def _check(self, method: str) -> None:
        if method in self.fail_methods:
            raise HubspotError(f"{method} unavailable", status_code=503, body={"message": "unavailable"})


class FakeSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
