"""GoHighLevel CRM client used as the system of record."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from fastapi import Request

from app.core.config import Settings

logger = logging.getLogger(__name__)

CRMRecord = dict[str, Any]
CRMContact = dict[str, Any]


class CRMError(Exception):
    """Base error for CRM request failures."""


class CRMNotFoundError(CRMError):
    """Raised when a CRM resource does not exist."""


class CRMConnectionError(CRMError):
    """Raised when the CRM cannot be reached or times out."""


class CRMClient(Protocol):
    """Operations the booking workflow needs from the CRM."""

    async def search_records(
        self,
        schema_key: str,
        filters: dict[str, str],
        *,
        page_limit: int = 1,
        sort: list[dict[str, str]] | None = None,
    ) -> list[CRMRecord]:
        """Search custom-object records matching all equality filters."""

    async def get_record(self, schema_key: str, record_id: str) -> CRMRecord:
        """Fetch record by CRM id; raises CRMNotFoundError if absent."""

    async def create_record(self, schema_key: str, properties: dict[str, Any]) -> CRMRecord:
        """Create a record and return it with its CRM id."""

    async def update_record(
        self,
        schema_key: str,
        record_id: str,
        properties: dict[str, Any],
    ) -> None:
        """Write only the supplied properties."""

    async def find_contact_by_email(self, email: str) -> CRMContact | None:
        """Return contact with the given email, if any."""

    async def create_contact(self, payload: dict[str, Any]) -> CRMContact:
        """Create a contact."""

    async def add_contact_tags(self, contact_id: str, tags: list[str]) -> list[str]:
        """Merge tags into contact and return the resulting tag set."""


class HighLevelClient:
    """HTTP client for the GoHighLevel v2 API."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self.location_id = settings.ghl_location_id
        self.http = http or httpx.AsyncClient(
            base_url=settings.ghl_api_base_url,
            timeout=settings.request_timeout_seconds,
            headers={
                "Authorization": f"Bearer {settings.ghl_access_token}",
                "Version": settings.ghl_api_version,
                "Accept": "application/json",
            },
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _call(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self.http.request(method, path, params=params, json=json)
        except httpx.TimeoutException as exc:
            raise CRMConnectionError(f"CRM request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise CRMConnectionError(f"CRM request to {path} failed: {exc}") from exc

        if response.status_code == 404:
            raise CRMNotFoundError(f"CRM resource not found: {path}")
        if response.status_code >= 400:
            logger.warning(
                "CRM %s %s returned %s: %s",
                method,
                path,
                response.status_code,
                response.text[:500],
            )
            raise CRMError(f"CRM returned {response.status_code} for {path}")
        if not response.content:
            return {}
        return response.json()

    async def search_records(
        self,
        schema_key: str,
        filters: dict[str, str],
        *,
        page_limit: int = 1,
        sort: list[dict[str, str]] | None = None,
    ) -> list[CRMRecord]:
        body: dict[str, Any] = {
            "locationId": self.location_id,
            "page": 1,
            "pageLimit": page_limit,
            "query": "",
            "filters": [
                {
                    "group": "AND",
                    "filters": [
                        {"field": f"properties.{field}", "operator": "eq", "value": value}
                        for field, value in filters.items()
                    ],
                },
            ],
        }
        if sort:
            body["sort"] = sort
        data = await self._call("POST", f"/objects/{schema_key}/records/search", json=body)
        return list(data.get("records") or [])

    async def get_record(self, schema_key: str, record_id: str) -> CRMRecord:
        data = await self._call(
            "GET",
            f"/objects/{schema_key}/records/{record_id}",
            params={"locationId": self.location_id},
        )
        record = data.get("record")
        if not record:
            raise CRMNotFoundError(f"Record {record_id} not found in {schema_key}")
        return record

    async def create_record(self, schema_key: str, properties: dict[str, Any]) -> CRMRecord:
        data = await self._call(
            "POST",
            f"/objects/{schema_key}/records",
            json={"locationId": self.location_id, "properties": properties},
        )
        record = data.get("record")
        if not record or not record.get("id"):
            raise CRMError(f"CRM did not return created record for {schema_key}")
        return record

    async def update_record(
        self,
        schema_key: str,
        record_id: str,
        properties: dict[str, Any],
    ) -> None:
        await self._call(
            "PUT",
            f"/objects/{schema_key}/records/{record_id}",
            params={"locationId": self.location_id},
            json={"properties": properties},
        )

    async def find_contact_by_email(self, email: str) -> CRMContact | None:
        data = await self._call(
            "GET",
            "/contacts/search/duplicate",
            params={"locationId": self.location_id, "email": email},
        )
        return data.get("contact") or None

    async def create_contact(self, payload: dict[str, Any]) -> CRMContact:
        data = await self._call(
            "POST",
            "/contacts/",
            json={"locationId": self.location_id, **payload},
        )
        contact = data.get("contact")
        if not contact or not contact.get("id"):
            raise CRMError("CRM did not return created contact")
        return contact

    async def add_contact_tags(self, contact_id: str, tags: list[str]) -> list[str]:
        data = await self._call("POST", f"/contacts/{contact_id}/tags", json={"tags": tags})
        return list(data.get("tags") or tags)


def get_crm_client(request: Request) -> CRMClient:
    """FastAPI dependency returning the shared CRM client."""
    return request.app.state.crm_client
