from __future__ import annotations

from typing import Any

import requests

BASE_URL = "https://api.hubapi.com"


class HubspotError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None, body: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class HubspotClient:
    """Thin wrapper over the HubSpot CRM v3/v4 endpoints used by the sync."""

    def __init__(
        self,
        access_token: str,
        base_url: str = BASE_URL,
        session: requests.Session | None = None,
        timeout: float = 30,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"}
        )

    def search_objects(
        self,
        object_type: str,
        filter_groups: list[dict[str, Any]],
        properties: list[str] | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"filterGroups": filter_groups}
        if properties:
            body["properties"] = properties
        if limit is not None:
            body["limit"] = limit
        return self._request("POST", f"/crm/v3/objects/{object_type}/search", json=body)

    def get_object(
        self,
        object_type: str,
        object_id: str,
        associations: list[str] | None = None,
        properties: list[str] | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if associations:
            params["associations"] = ",".join(associations)
        if properties:
            params["properties"] = ",".join(properties)
        return self._request("GET", f"/crm/v3/objects/{object_type}/{object_id}", params=params or None)

    def create_object(self, object_type: str, properties: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", f"/crm/v3/objects/{object_type}", json={"properties": properties})

    def update_object(self, object_type: str, object_id: str, properties: dict[str, Any]) -> dict[str, Any]:
        return self._request(
            "PATCH",
            f"/crm/v3/objects/{object_type}/{object_id}",
            json={"properties": properties},
        )

    def batch_create_associations(
        self, from_type: str, to_type: str, inputs: list[dict[str, Any]]
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            f"/crm/v4/associations/{from_type}/{to_type}/batch/create",
            json={"inputs": inputs},
        )

    def batch_associate_default(
        self, from_type: str, to_type: str, inputs: list[dict[str, Any]]
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            f"/crm/v4/associations/{from_type}/{to_type}/batch/associate/default",
            json={"inputs": inputs},
        )

    def associate_default(self, from_type: str, from_id: str, to_type: str, to_id: str) -> dict[str, Any]:
        return self._request(
            "PUT",
            f"/crm/v4/objects/{from_type}/{from_id}/associations/default/{to_type}/{to_id}",
        )

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, params=params, json=json, timeout=self.timeout)
        except requests.RequestException as exc:
            raise HubspotError(f"HubSpot request failed: {exc}") from exc
        if response.status_code >= 400:
            raise HubspotError(
                f"HubSpot error {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=_safe_json(response),
            )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise HubspotError(
                f"HubSpot returned non-JSON response: {response.text[:200]}",
                status_code=response.status_code,
                body=response.text,
            ) from exc


def _safe_json(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
