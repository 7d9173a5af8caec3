"""
Destination extraction
Finds the Mexican destination a query is about
"""

import re
from dataclasses import dataclass, asdict
from typing import Dict, Optional


@dataclass(frozen=True)
class Destination:
    """A recognised destination and how it was matched"""
    detected: str  # alias found in the query
    normalized: str  # canonical name used for search and filtering
    state: str
    region: str
    confidence: str = "high"  # "high" for a full alias match, "medium" for all-words

    def to_dict(self) -> Dict:
        return asdict(self)


# alias -> (canonical name, state, region)
DESTINATIONS: Dict[str, tuple] = {
    "cancun": ("Cancun", "Quintana Roo", "Riviera Maya"),
    "playa del carmen": ("Playa del Carmen", "Quintana Roo", "Riviera Maya"),
    "tulum": ("Tulum", "Quintana Roo", "Riviera Maya"),
    "cozumel": ("Cozumel", "Quintana Roo", "Riviera Maya"),
    "riviera maya": ("Riviera Maya", "Quintana Roo", "Riviera Maya"),
    "isla mujeres": ("Isla Mujeres", "Quintana Roo", "Riviera Maya"),
    "cabo san lucas": ("Cabo San Lucas", "Baja California Sur", "Los Cabos"),
    "los cabos": ("Los Cabos", "Baja California Sur", "Los Cabos"),
    "cabo": ("Cabo San Lucas", "Baja California Sur", "Los Cabos"),
    "puerto vallarta": ("Puerto Vallarta", "Jalisco", "Pacific Coast"),
    "vallarta": ("Puerto Vallarta", "Jalisco", "Pacific Coast"),
    "mexico city": ("Mexico City", "CDMX", "Central Mexico"),
    "cdmx": ("Mexico City", "CDMX", "Central Mexico"),
    "guadalajara": ("Guadalajara", "Jalisco", "Central Mexico"),
    "san miguel de allende": ("San Miguel de Allende", "Guanajuato", "Central Mexico"),
    "oaxaca": ("Oaxaca", "Oaxaca", "Southern Mexico"),
    "acapulco": ("Acapulco", "Guerrero", "Pacific Coast"),
    "mazatlan": ("Mazatlan", "Sinaloa", "Pacific Coast"),
    "merida": ("Merida", "Yucatan", "Yucatan Peninsula"),
}

_ALIASES_LONGEST_FIRST = sorted(DESTINATIONS, key=len, reverse=True)

_CONTEXTUAL_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"restaurant|food|dining|eat|cafe|bar",
        r"activity|activities|tour|excursion|attraction|sightseeing",
        r"near|nearby|around|close to|in the area",
        r"what.*do|where.*go|how.*get",
        r"beach|pool|spa|nightlife|shopping",
        r"transport|taxi|bus|airport|getting around",
        r"hotel|stay|resort|room|more|other|cheaper|another",
    )
]

# accents users commonly type
_ACCENTS = str.maketrans("áéíóúñ", "aeioun")


def _fold(text: str) -> str:
    return text.lower().translate(_ACCENTS)


def extract_destination(query: str) -> Optional[Destination]:
    """
    Destination mentioned in `query`, if any.

    Longest alias wins ("cabo san lucas" before "cabo"); failing that, a
    multi-word alias whose words all appear somewhere in the query.

    Example:
        >>> extract_destination("cheap hotels in Cabo").normalized
        'Cabo San Lucas'
        >>> extract_destination("del carmen playa resorts").confidence
        'medium'
    """
    text = _fold(query)
    for alias in _ALIASES_LONGEST_FIRST:
        if alias in text:
            return Destination(alias, *DESTINATIONS[alias], confidence="high")

    for alias, info in DESTINATIONS.items():
        words = alias.split()
        if len(words) > 1 and all(word in text for word in words):
            return Destination(alias, *info, confidence="medium")
    return None


def needs_location_context(query: str) -> bool:
    """True for follow-ups that only make sense with a remembered destination"""
    if extract_destination(query):
        return False
    return any(p.search(query) for p in _CONTEXTUAL_PATTERNS)


def enhance_query_with_location(query: str, location: Optional[str]) -> str:
    """Append the session's destination to a follow-up that names none"""
    if not location or not needs_location_context(query):
        return query
    return f"{query} in {location}"


def matches_location(city: str, location: str, target: str) -> bool:
    """
    Case-insensitive, bidirectional containment on city (and location text)

    Example:
        >>> matches_location("Cancún", "", "cancun")
        True
        >>> matches_location("Playa", "", "Playa del Carmen")
        True
    """
    target = _fold(target).strip()
    if not target:
        return True
    city = _fold(city or "").strip()
    location = _fold(location or "").strip()
    if city and (target in city or city in target):
        return True
    return bool(location) and target in location
