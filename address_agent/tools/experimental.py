"""
Experimental data sources: campaign finance donations, corporate officer
records, Census income by ZIP, and commute probability scoring.
"""

import math
from typing import Optional

import httpx

from ..core.errors import ToolExecutionError
from ..core.protocol import ToolResult
from .services import ResearchServices, _http_detail


FEC_URL = "https://api.open.fec.gov/v1/schedules/schedule_a/"
OPENCORPORATES_URL = "https://api.opencorporates.com/v0.4.8/officers/search"
CENSUS_ACS_URL = "https://api.census.gov/data/2023/acs/acs5"

# Census state FIPS codes
STATE_FIPS = {
    "AL": "01", "AK": "02", "AZ": "04", "AR": "05", "CA": "06", "CO": "08", "CT": "09",
    "DE": "10", "FL": "12", "GA": "13", "HI": "15", "ID": "16", "IL": "17", "IN": "18",
    "IA": "19", "KS": "20", "KY": "21", "LA": "22", "ME": "23", "MD": "24", "MA": "25",
    "MI": "26", "MN": "27", "MS": "28", "MO": "29", "MT": "30", "NE": "31", "NV": "32",
    "NH": "33", "NJ": "34", "NM": "35", "NY": "36", "NC": "37", "ND": "38", "OH": "39",
    "OK": "40", "OR": "41", "PA": "42", "RI": "44", "SC": "45", "SD": "46", "TN": "47",
    "TX": "48", "UT": "49", "VT": "50", "VA": "51", "WA": "53", "WV": "54", "WI": "55",
    "WY": "56", "DC": "11",
}

# Log-normal fit of US commute distances (median ~16 miles)
COMMUTE_MU = 2.77
COMMUTE_SIGMA = 0.8
COMMUTE_PEAK_DENSITY = 0.032


def compute_commute_probability(distance_miles: float) -> float:
    """Likelihood (0-1) that a one-way driving distance is someone's daily commute"""
    if distance_miles <= 0:
        return 0.95
    if distance_miles > 200:
        return 0.01

    z = (math.log(distance_miles) - COMMUTE_MU) / COMMUTE_SIGMA
    pdf = math.exp(-0.5 * z * z) / (distance_miles * COMMUTE_SIGMA * math.sqrt(2 * math.pi))
    return round(min(1.0, pdf / COMMUTE_PEAK_DENSITY), 2)


class ExperimentalServices(ResearchServices):
    """Base capabilities plus the experimental public-record sources"""

    async def search_fec_donations(
        self,
        name: str,
        state: Optional[str] = None,
        employer: Optional[str] = None,
    ) -> ToolResult:
        params = {
            "api_key": self.settings.fec_api_key,
            "contributor_name": name,
            "sort": "-contribution_receipt_date",
            "per_page": 10,
            "is_individual": "true",
        }
        if state:
            params["contributor_state"] = state
        if employer:
            params["contributor_employer"] = employer

        try:
            res = await self.http.get(FEC_URL, params=params)
            res.raise_for_status()
        except httpx.HTTPError as e:
            raise ToolExecutionError(f"FEC search failed{_http_detail(e)}: {e}") from e

        results = (res.json() or {}).get("results") or []
        if not results:
            return ToolResult(success=True, data=None, summary=f'No FEC donation records found for "{name}"')

        seen = set()
        unique = []
        for r in results:
            key = f"{r.get('contributor_street_1')}|{r.get('contributor_zip')}".lower()
            if key in seen:
                continue
            seen.add(key)
            unique.append(r)

        data = [
            {
                "name": r.get("contributor_name"),
                "address": ", ".join(
                    s for s in (r.get("contributor_street_1"), r.get("contributor_street_2")) if s
                ),
                "city": r.get("contributor_city"),
                "state": r.get("contributor_state"),
                "zip": r.get("contributor_zip"),
                "employer": r.get("contributor_employer"),
                "occupation": r.get("contributor_occupation"),
                "amount": r.get("contribution_receipt_amount"),
                "date": r.get("contribution_receipt_date"),
                "committee": r.get("committee_name"),
            }
            for r in unique[:5]
        ]
        return ToolResult(
            success=True,
            data=data,
            summary=(
                f"{len(results)} donation(s) found, {len(unique)} unique address(es). "
                "Source: FEC public records."
            ),
        )

    async def search_corporate_officer(self, name: str, jurisdiction: Optional[str] = None) -> ToolResult:
        params = {"q": name}
        if jurisdiction:
            params["jurisdiction_code"] = jurisdiction
        if self.settings.opencorporates_api_key:
            params["api_token"] = self.settings.opencorporates_api_key

        try:
            res = await self.http.get(OPENCORPORATES_URL, params=params)
            res.raise_for_status()
        except httpx.HTTPError as e:
            raise ToolExecutionError(f"OpenCorporates search failed{_http_detail(e)}: {e}") from e

        results = (res.json() or {}).get("results") or {}
        officers = results.get("officers") or []
        if not officers:
            return ToolResult(success=True, data=None, summary=f'No corporate officer records found for "{name}"')

        data = []
        for item in officers[:5]:
            officer = item.get("officer") or {}
            company = officer.get("company") or {}
            data.append({
                "name": officer.get("name"),
                "position": officer.get("position"),
                "address": officer.get("address"),
                "company": company.get("name"),
                "companyJurisdiction": company.get("jurisdiction_code"),
                "companyRegisteredAddress": company.get("registered_address_in_full"),
                "startDate": officer.get("start_date"),
                "endDate": officer.get("end_date"),
            })

        total = results.get("total_count", len(officers))
        return ToolResult(
            success=True,
            data=data,
            summary=f"{len(officers)} officer record(s) found across {total} total matches",
        )

    async def census_income_by_state(self, state: str) -> list[dict]:
        """Median household income for every ZIP code tabulation area in a state"""
        api_key = self.settings.census_api_key
        if not api_key:
            raise ToolExecutionError(
                "CENSUS_API_KEY not configured. Get a free key at "
                "https://api.census.gov/data/key_signup.html"
            )
        fips = STATE_FIPS.get(state.upper())
        if not fips:
            raise ToolExecutionError(f"Unknown state code: {state}")

        try:
            res = await self.http.get(
                CENSUS_ACS_URL,
                params={
                    "get": "B19013_001E,NAME",
                    "for": "zip code tabulation area:*",
                    "in": f"state:{fips}",
                    "key": api_key,
                },
            )
            res.raise_for_status()
        except httpx.HTTPError as e:
            raise ToolExecutionError(f"Census API failed{_http_detail(e)}: {e}") from e

        # First row is the header: B19013_001E, NAME, state, zip code tabulation area
        zips = []
        for row in (res.json() or [])[1:]:
            try:
                income = int(row[0])
            except (TypeError, ValueError):
                continue
            # Census marks missing values with large negative sentinels
            if income > 0:
                zips.append({"zip": row[3], "name": row[1], "median_income": income})
        return zips

    async def find_affordable_zips(self, state: str, estimated_income: float, tolerance_pct: float = 0.4) -> ToolResult:
        all_zips = await self.census_income_by_state(state)
        low = estimated_income * (1 - tolerance_pct)
        high = estimated_income * (1 + tolerance_pct)

        matching = sorted(
            (z for z in all_zips if low <= z["median_income"] <= high),
            key=lambda z: abs(z["median_income"] - estimated_income),
        )

        data = {
            "matching_zips": [
                {
                    "zip": z["zip"],
                    "median_income": z["median_income"],
                    "income_gap": abs(z["median_income"] - estimated_income),
                }
                for z in matching[:20]
            ],
            "total_matching": len(matching),
            "total_zips": len(all_zips),
            "income_range": {"min": round(low), "max": round(high)},
        }
        return ToolResult(
            success=True,
            data=data,
            summary=(
                f"{len(matching)}/{len(all_zips)} ZIP codes match income range "
                f"${round(low):,}-${round(high):,}"
            ),
        )

    async def score_commute_probability(self, distance_miles: float) -> ToolResult:
        probability = compute_commute_probability(distance_miles)
        if probability > 0.5:
            label = "likely"
        elif probability > 0.2:
            label = "possible"
        else:
            label = "unlikely"
        return ToolResult(
            success=True,
            data={"distance_miles": distance_miles, "probability": probability},
            summary=f"{distance_miles} miles: commute probability {probability} ({label})",
        )
