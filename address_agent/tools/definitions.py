"""
Tool definitions advertised to the model (Anthropic tool_use schema) and the
pydantic input models the dispatcher validates calls against.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from config.settings import Toolset

from ..core.protocol import ToolDefinition


DECISION_TOOL = "submit_decision"

# Descriptions (overridable per variant)

DEFAULT_DESCRIPTIONS: dict[str, str] = {
    "enrich_linkedin_profile": (
        "Enriches a LinkedIn profile URL via Bright Data. Returns name, company, title, "
        "location, experience. Use FIRST when a LinkedIn URL is provided."
    ),
    "search_person_address": (
        "Search for residential address history by person name. Uses WhitePages as primary "
        "source, with Endato as fallback. Returns current addresses, owned properties, phone "
        "numbers. Best for finding US home addresses."
    ),
    "search_web": (
        "Neural web search via Exa AI. Use for researching company office addresses, remote "
        "work policies, person info, news articles."
    ),
    "verify_property": (
        "Verify property ownership via PropMix. Check if a US street address is owned by a "
        "specific person. Useful for confirming home address ownership."
    ),
    "calculate_distance": (
        "Calculate driving distance and travel time between two addresses via Google Maps. "
        "Use to assess commute viability and office suitability. >60 min commute = person may "
        "not regularly attend that office."
    ),
    "submit_decision": (
        "Submit your final delivery recommendation. Call this ONLY when you have gathered "
        "enough evidence and your confidence is above 75%."
    ),
    "search_fec_donations": (
        "Search FEC (Federal Election Commission) public records for political campaign "
        "donations. Donors' HOME ADDRESSES are public record. This is one of the most reliable "
        "ways to find a home address. Search by name, optionally filter by state or employer."
    ),
    "search_corporate_officer": (
        "Search OpenCorporates for a person as a company officer, director, or registered "
        "agent. Officers' addresses are often on file and may be their home address, especially "
        "for small companies/LLCs."
    ),
    "find_affordable_zips": (
        "Given an estimated annual income and state, find ZIP codes where the median household "
        "income is within range. Uses Census ACS data. Helps narrow the geographic search space."
    ),
    "score_commute_probability": (
        "Given a distance in miles between a candidate home address and the workplace, compute "
        "the probability that this is a realistic commute. Returns 0-1 probability (higher = "
        "more likely). Use after calculate_distance to score candidate addresses."
    ),
}


# Input models


class EnrichProfileInput(BaseModel):
    url: str


class SearchPersonAddressInput(BaseModel):
    first_name: str
    last_name: str
    middle_name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None
    street: Optional[str] = None
    zip_code: Optional[str] = None


class SearchWebInput(BaseModel):
    query: str
    category: Literal["company", "people", "news", "auto"] = "auto"
    num_results: int = Field(default=5, ge=1, le=10)


class VerifyPropertyInput(BaseModel):
    street_address: str
    city: str
    state: str
    order_id: str


class CalculateDistanceInput(BaseModel):
    origin: str
    destination: str


class FECDonationsInput(BaseModel):
    name: str
    state: Optional[str] = None
    employer: Optional[str] = None


class CorporateOfficerInput(BaseModel):
    name: str
    jurisdiction: Optional[str] = None


class AffordableZipsInput(BaseModel):
    state: str
    estimated_income: float = Field(gt=0)
    tolerance_pct: float = Field(default=0.4, ge=0, le=1)


class CommuteProbabilityInput(BaseModel):
    distance_miles: float


INPUT_MODELS: dict[str, type[BaseModel]] = {
    "enrich_linkedin_profile": EnrichProfileInput,
    "search_person_address": SearchPersonAddressInput,
    "search_web": SearchWebInput,
    "verify_property": VerifyPropertyInput,
    "calculate_distance": CalculateDistanceInput,
    "search_fec_donations": FECDonationsInput,
    "search_corporate_officer": CorporateOfficerInput,
    "find_affordable_zips": AffordableZipsInput,
    "score_commute_probability": CommuteProbabilityInput,
}


# Schemas

_ADDRESS_INFO_SCHEMA = {
    "type": "object",
    "properties": {
        "address": {"type": "string"},
        "confidence": {"type": "number"},
        "reasoning": {"type": "string"},
    },
}

SCHEMAS: dict[str, dict] = {
    "enrich_linkedin_profile": {
        "type": "object",
        "properties": {
            "url": {"type": "string", "description": "LinkedIn profile URL (https://www.linkedin.com/in/...)"},
        },
        "required": ["url"],
    },
    "search_person_address": {
        "type": "object",
        "properties": {
            "first_name": {"type": "string", "description": "First name"},
            "middle_name": {"type": "string", "description": "Middle name (optional)"},
            "last_name": {"type": "string", "description": "Last name"},
            "city": {"type": "string", "description": "City (optional, helps narrow results)"},
            "state": {"type": "string", "description": "Two-letter US state code (optional)"},
            "phone": {"type": "string", "description": "Phone number to reverse-lookup or confirm identity (optional)"},
            "street": {"type": "string", "description": 'Partial street address filter, e.g. "123 Main" (optional)'},
            "zip_code": {"type": "string", "description": "5-digit ZIP code filter (optional)"},
        },
        "required": ["first_name", "last_name"],
    },
    "search_web": {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "Search query (be specific)"},
            "category": {
                "type": "string",
                "enum": ["company", "people", "news", "auto"],
                "description": "Search category (default: auto)",
            },
            "num_results": {"type": "number", "description": "Number of results, 1-10 (default: 5)"},
        },
        "required": ["query"],
    },
    "verify_property": {
        "type": "object",
        "properties": {
            "street_address": {"type": "string", "description": 'Full street address (e.g., "123 Main St")'},
            "city": {"type": "string", "description": "City name"},
            "state": {"type": "string", "description": "Two-letter state code"},
            "order_id": {"type": "string", "description": "Unique identifier (use firstname-lastname-timestamp)"},
        },
        "required": ["street_address", "city", "state", "order_id"],
    },
    "calculate_distance": {
        "type": "object",
        "properties": {
            "origin": {"type": "string", "description": "Starting address or location"},
            "destination": {"type": "string", "description": "Destination address or location"},
        },
        "required": ["origin", "destination"],
    },
    "submit_decision": {
        "type": "object",
        "properties": {
            "recommendation": {
                "type": "string",
                "enum": ["HOME", "OFFICE", "BOTH", "COURIER"],
                "description": (
                    "Where to deliver the package. HOME = verified home address. OFFICE = "
                    "direct-to-desk office delivery confirmed. BOTH = two viable verified "
                    "addresses. COURIER = no direct delivery option available."
                ),
            },
            "confidence": {"type": "number", "description": "Confidence percentage (0-100)"},
            "reasoning": {"type": "string", "description": "Detailed explanation of why this recommendation was chosen"},
            "home_address": {**_ADDRESS_INFO_SCHEMA, "description": "Home address details (if found)"},
            "office_address": {**_ADDRESS_INFO_SCHEMA, "description": "Office address details (if found)"},
            "flags": {
                "type": "array",
                "items": {"type": "string"},
                "description": 'Notable flags or caveats (e.g., "common name", "international address")',
            },
            "career_summary": {"type": "string", "description": "Brief 2-3 sentence summary of the person's career"},
            "profile_image_url": {"type": "string", "description": "Profile picture URL from the LinkedIn enrichment step"},
        },
        "required": ["recommendation", "confidence", "reasoning"],
    },
    "search_fec_donations": {
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": 'Full name to search (e.g., "John Smith")'},
            "state": {"type": "string", "description": "Two-letter state code to narrow results (optional)"},
            "employer": {"type": "string", "description": "Employer name to narrow results (optional)"},
        },
        "required": ["name"],
    },
    "search_corporate_officer": {
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "Person name to search"},
            "jurisdiction": {"type": "string", "description": 'Jurisdiction code like "us_tn" for Tennessee (optional)'},
        },
        "required": ["name"],
    },
    "find_affordable_zips": {
        "type": "object",
        "properties": {
            "state": {"type": "string", "description": 'Two-letter state code (e.g., "TN")'},
            "estimated_income": {"type": "number", "description": "Estimated annual household income in dollars"},
            "tolerance_pct": {"type": "number", "description": "Tolerance as decimal (default 0.4 = +/-40%)"},
        },
        "required": ["state", "estimated_income"],
    },
    "score_commute_probability": {
        "type": "object",
        "properties": {
            "distance_miles": {"type": "number", "description": "Driving distance in miles"},
        },
        "required": ["distance_miles"],
    },
}


BASE_TOOL_NAMES = (
    "enrich_linkedin_profile",
    "search_person_address",
    "search_web",
    "verify_property",
    "calculate_distance",
    DECISION_TOOL,
)

EXPERIMENTAL_TOOL_NAMES = (
    "search_fec_donations",
    "search_corporate_officer",
    "find_affordable_zips",
    "score_commute_probability",
)

TOOLSETS: dict[Toolset, tuple[str, ...]] = {
    Toolset.BASE: BASE_TOOL_NAMES,
    Toolset.EXPERIMENTAL: BASE_TOOL_NAMES + EXPERIMENTAL_TOOL_NAMES,
}


def build_tool_definitions(
    toolset: Toolset = Toolset.BASE,
    descriptions: Optional[dict[str, str]] = None,
) -> list[ToolDefinition]:
    """Tool definitions for a toolset, with optional description overrides"""
    merged = {**DEFAULT_DESCRIPTIONS, **(descriptions or {})}
    return [
        ToolDefinition(name=name, description=merged[name], input_schema=SCHEMAS[name])
        for name in TOOLSETS[Toolset(toolset)]
    ]
