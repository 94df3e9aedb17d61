"""
Research Services Module
HTTP clients for every data source the agent can query.

DESIGN DECISIONS:
- One shared httpx.AsyncClient per services instance, per-request timeout
- Each capability returns a ToolResult; "nothing found" is still a success
- Missing credentials and HTTP failures raise ToolExecutionError,
  which the dispatcher turns into a failed ToolResult
"""

import asyncio
import logging
import re
from typing import Any, Optional

import httpx

from config.settings import ServiceConfig

from ..core.errors import ToolExecutionError
from ..core.protocol import ToolResult

logger = logging.getLogger(__name__)


BRIGHT_DATA_URL = "https://api.brightdata.com/datasets/v3"
WHITEPAGES_URL = "https://api.whitepages.com/v1/person"
ENDATO_URL = "https://devapi.enformion.com/PersonSearch"
EXA_URL = "https://api.exa.ai/search"
PROPMIX_URL = "https://api.propmix.io/pubrec/assessor/v1/GetPropertyDetails"
DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"


def _http_detail(error: httpx.HTTPError) -> str:
    """' (HTTP 503)' for status errors, empty for transport errors"""
    if isinstance(error, httpx.HTTPStatusError):
        return f" (HTTP {error.response.status_code})"
    return ""


def _require(value: Optional[str], name: str) -> str:
    if not value:
        raise ToolExecutionError(f"{name} not configured")
    return value


class ResearchServices:
    """
    Data-source capabilities backing the base toolset.

    Usable as an async context manager; a client passed in by the caller is
    not closed on exit.
    """

    def __init__(self, settings: Optional[ServiceConfig] = None, http: Optional[httpx.AsyncClient] = None):
        self.settings = settings or ServiceConfig()
        self._owns_client = http is None
        self.http = http or httpx.AsyncClient(timeout=self.settings.timeout)

    async def aclose(self):
        if self._owns_client:
            await self.http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    # Bright Data LinkedIn enrichment

    async def enrich_linkedin_profile(self, url: str) -> ToolResult:
        api_key = _require(self.settings.bright_data_api_key, "BRIGHT_DATA_API_KEY")
        headers = {"Authorization": f"Bearer {api_key}"}

        try:
            trigger = await self.http.post(
                f"{BRIGHT_DATA_URL}/trigger",
                params={"dataset_id": self.settings.linkedin_dataset_id, "include_errors": "true"},
                json=[{"url": url}],
                headers=headers,
            )
            trigger.raise_for_status()
        except httpx.HTTPError as e:
            raise ToolExecutionError(f"LinkedIn enrichment failed{_http_detail(e)}: {e}") from e

        snapshot_id = (trigger.json() or {}).get("snapshot_id")
        if not snapshot_id:
            raise ToolExecutionError("No snapshot ID returned from Bright Data")

        for attempt in range(self.settings.poll_attempts):
            await asyncio.sleep(self.settings.poll_interval)
            try:
                res = await self.http.get(
                    f"{BRIGHT_DATA_URL}/snapshot/{snapshot_id}",
                    params={"format": "json"},
                    headers=headers,
                )
            except httpx.HTTPError as e:
                raise ToolExecutionError(f"LinkedIn enrichment failed: {e}") from e

            # 404 (or 202) means the snapshot is still being built
            if res.status_code in (202, 404):
                logger.debug(f"Snapshot {snapshot_id} not ready (attempt {attempt + 1})")
                continue
            if res.is_error:
                raise ToolExecutionError(f"Bright Data poll error (HTTP {res.status_code})")

            rows = res.json()
            if isinstance(rows, list) and rows:
                return self._profile_result(rows[0])

        raise ToolExecutionError("Timeout waiting for LinkedIn profile data")

    @staticmethod
    def _profile_result(profile: dict[str, Any]) -> ToolResult:
        about = profile.get("about")
        data = {
            "name": profile.get("name"),
            "headline": profile.get("headline"),
            "company": profile.get("current_company_name"),
            "position": profile.get("current_company_position"),
            "city": profile.get("city"),
            "state": profile.get("state"),
            "country": profile.get("country"),
            "about": about[:500] if about else None,
            "avatar": profile.get("avatar"),
            "experience": [
                {
                    "company": e.get("company"),
                    "title": e.get("title"),
                    "location": e.get("location"),
                    "start_date": e.get("start_date"),
                    "end_date": e.get("end_date"),
                }
                for e in (profile.get("experience") or [])[:5]
            ],
        }
        summary = ", ".join([
            profile.get("name") or "Unknown",
            profile.get("current_company_name") or "N/A",
            profile.get("city") or "N/A",
        ])
        return ToolResult(success=True, data=data, summary=summary)

    # Person search (WhitePages, Endato fallback)

    async def search_person_address(
        self,
        first_name: str,
        last_name: str,
        middle_name: Optional[str] = None,
        city: Optional[str] = None,
        state: Optional[str] = None,
        phone: Optional[str] = None,
        street: Optional[str] = None,
        zip_code: Optional[str] = None,
    ) -> ToolResult:
        full_name = " ".join(p for p in (first_name, middle_name, last_name) if p)

        wp_error: Optional[ToolExecutionError] = None
        try:
            wp_result = await self._search_whitepages(full_name, city, state, phone, street, zip_code)
            if wp_result.data is not None:
                return wp_result.model_copy(update={"summary": f"[WhitePages] {wp_result.summary}"})
        except ToolExecutionError as e:
            logger.warning(f"WhitePages lookup failed, trying Endato: {e}")
            wp_error = e

        try:
            endato = await self._search_endato(first_name, last_name, middle_name, city, state)
        except ToolExecutionError as e:
            note = "WhitePages failed. " if wp_error else "WhitePages: no results. "
            raise ToolExecutionError(f"{note}Endato fallback failed: {e}") from e

        prefix = (
            "[WhitePages error, Endato fallback] " if wp_error
            else "[WhitePages: no results, Endato fallback] "
        )
        return endato.model_copy(update={"summary": prefix + endato.summary})

    async def _search_whitepages(
        self,
        name: Optional[str],
        city: Optional[str],
        state: Optional[str],
        phone: Optional[str],
        street: Optional[str],
        zip_code: Optional[str],
    ) -> ToolResult:
        api_key = _require(self.settings.whitepages_api_key, "WHITEPAGES_API_KEY")
        if not name and not phone:
            raise ToolExecutionError("WhitePages requires name or phone")

        params = {
            "name": name,
            "phone": re.sub(r"[^0-9+]", "", phone) if phone else None,
            "street": street,
            "city": city,
            "state_code": state,
            "zip_code": zip_code,
        }
        try:
            res = await self.http.get(
                WHITEPAGES_URL,
                params={k: v for k, v in params.items() if v},
                headers={"Accept": "application/json", "X-Api-Key": api_key},
            )
            res.raise_for_status()
        except httpx.HTTPError as e:
            raise ToolExecutionError(f"WhitePages search failed{_http_detail(e)}: {e}") from e

        people = res.json() or []
        label = name or phone
        if not people:
            return ToolResult(success=True, data=None, summary=f'No WhitePages records found for "{label}"')

        data = [
            {
                "name": p.get("name"),
                "is_dead": p.get("is_dead"),
                "date_of_birth": p.get("date_of_birth"),
                "current_addresses": p.get("current_addresses") or [],
                "owned_properties": p.get("owned_properties") or [],
                "phones": (p.get("phones") or [])[:3],
                "emails": (p.get("emails") or [])[:3],
            }
            for p in people[:5]
        ]
        return ToolResult(success=True, data=data, summary=f'WhitePages: {len(people)} result(s) for "{label}"')

    async def _search_endato(
        self,
        first_name: str,
        last_name: str,
        middle_name: Optional[str],
        city: Optional[str],
        state: Optional[str],
    ) -> ToolResult:
        if not (self.settings.endato_api_name and self.settings.endato_api_password):
            raise ToolExecutionError("Endato credentials not configured")

        body: dict[str, Any] = {
            "FirstName": first_name,
            "LastName": last_name,
            "Page": 1,
            "ResultsPerPage": 10,
        }
        if middle_name:
            body["MiddleName"] = middle_name
        if city or state:
            address = {}
            if city:
                address["City"] = city
            if state:
                address["StateCode"] = state
            body["Addresses"] = [address]

        try:
            res = await self.http.post(
                ENDATO_URL,
                json=body,
                headers={
                    "galaxy-ap-name": self.settings.endato_api_name,
                    "galaxy-ap-password": self.settings.endato_api_password,
                    "galaxy-search-type": "Person",
                },
            )
            res.raise_for_status()
        except httpx.HTTPError as e:
            raise ToolExecutionError(f"Endato search failed{_http_detail(e)}: {e}") from e

        payload = res.json() or {}
        persons = payload.get("persons") or []
        if not persons:
            return ToolResult(
                success=True, data=None,
                summary=f"No Endato records found for {first_name} {last_name}",
            )

        person = persons[0]
        addresses = person.get("addresses") or []
        phones = person.get("phoneNumbers") or []
        name_parts = person.get("name") or {}
        full_name = person.get("fullName") or " ".join(
            p for p in (name_parts.get("firstName"), name_parts.get("middleName"), name_parts.get("lastName")) if p
        )

        data = {
            "source": "endato",
            "name": full_name,
            "age": person.get("age"),
            "isCurrentPropertyOwner": person.get("isCurrentPropertyOwner"),
            "currentAddress": addresses[0].get("fullAddress") if addresses else "Not available",
            "addressHistory": [
                {
                    "address": a.get("fullAddress"),
                    "city": a.get("city"),
                    "state": a.get("state"),
                    "zip": a.get("zip"),
                    "lat": a.get("latitude"),
                    "lng": a.get("longitude"),
                    "firstReported": a.get("firstReportedDate"),
                    "lastReported": a.get("lastReportedDate"),
                    "deliverable": a.get("isDeliverable"),
                }
                for a in addresses[:5]
            ],
            "phones": [
                {
                    "number": p.get("phoneNumber"),
                    "type": p.get("phoneType"),
                    "carrier": p.get("company"),
                    "connected": p.get("isConnected"),
                }
                for p in phones[:3]
            ],
            "emails": [e.get("emailAddress") for e in (person.get("emailAddresses") or [])[:3]],
            "totalResults": (payload.get("counts") or {}).get("searchResults", len(persons)),
        }
        age = person.get("age") if person.get("age") is not None else "?"
        return ToolResult(
            success=True,
            data=data,
            summary=f"Endato: {full_name}, age {age}, {len(addresses)} address(es)",
        )

    # Exa web search

    async def search_web(self, query: str, category: str = "auto", num_results: int = 5) -> ToolResult:
        api_key = _require(self.settings.exa_api_key, "EXA_AI_KEY")
        try:
            res = await self.http.post(
                EXA_URL,
                json={
                    "query": query,
                    "numResults": num_results,
                    "category": category,
                    "contents": {"text": True, "highlights": True},
                },
                headers={"x-api-key": api_key},
            )
            res.raise_for_status()
        except httpx.HTTPError as e:
            raise ToolExecutionError(f"Exa search failed{_http_detail(e)}: {e}") from e

        limit = self.settings.max_text_per_result
        results = (res.json() or {}).get("results") or []
        data = [
            {
                "title": r.get("title"),
                "url": r.get("url"),
                "text": r["text"][:limit] if r.get("text") else None,
                "highlights": (r.get("highlights") or [])[:3],
            }
            for r in results
        ]
        return ToolResult(success=True, data=data, summary=f'{len(results)} web results for "{query}"')

    # PropMix property verification

    async def verify_property(self, street_address: str, city: str, state: str, order_id: str) -> ToolResult:
        token = _require(self.settings.propmix_access_token, "PROPMIX_ACCESS_TOKEN")
        try:
            res = await self.http.get(
                PROPMIX_URL,
                params={"StreetAddress": street_address, "City": city, "State": state, "OrderId": order_id},
                headers={"Access-Token": token},
            )
        except httpx.HTTPError as e:
            raise ToolExecutionError(f"PropMix lookup failed: {e}") from e

        if res.status_code == 404:
            return ToolResult(success=True, data=None, summary="No property data found for this address")
        if res.is_error:
            raise ToolExecutionError(f"PropMix lookup failed (HTTP {res.status_code})")

        return ToolResult(success=True, data=res.json(), summary="Property details retrieved")

    # Google Distance Matrix

    async def calculate_distance(self, origin: str, destination: str) -> ToolResult:
        api_key = _require(self.settings.google_maps_api_key, "GOOGLE_SEARCH_API_KEY")
        try:
            res = await self.http.get(
                DISTANCE_MATRIX_URL,
                params={"origins": origin, "destinations": destination, "key": api_key, "units": "imperial"},
            )
            res.raise_for_status()
        except httpx.HTTPError as e:
            raise ToolExecutionError(f"Distance calculation failed{_http_detail(e)}: {e}") from e

        payload = res.json() or {}
        rows = payload.get("rows") or [{}]
        elements = rows[0].get("elements") or [None]
        element = elements[0]
        if not element or element.get("status") != "OK":
            status = element.get("status") if element else "no data"
            return ToolResult(success=True, data=None, summary=f"Distance calculation returned status: {status}")

        distance = element.get("distance") or {}
        duration = element.get("duration") or {}
        return ToolResult(
            success=True,
            data={
                "distance": distance,
                "duration": duration,
                "origin": (payload.get("origin_addresses") or [None])[0],
                "destination": (payload.get("destination_addresses") or [None])[0],
            },
            summary=f"{distance.get('text', '?')}, {duration.get('text', '?')}",
        )
