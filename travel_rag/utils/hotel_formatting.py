"""
Hotel display formatting
Turns sparse index metadata / API records into display-ready Hotel models

Pure functions: no caching, no I/O. Backfilled values (ratings, review
counts) are seeded by the hotel id so a hotel always renders the same way.
"""

import hashlib
import json
import random
from typing import Any, Dict, List, Optional

from ..schemas.ai_schemas import Hotel, HotelSource, VectorMatch


HOTEL_IMAGES = [
    "https://images.unsplash.com/photo-1566073771259-6a8506099945",  # pool resort
    "https://images.unsplash.com/photo-1571003123894-1f0594d2b5d9",  # beach resort
    "https://images.unsplash.com/photo-1520250497591-112f2f40a3f4",  # boutique
    "https://images.unsplash.com/photo-1582719508461-905c673771fd",  # modern resort
    "https://images.unsplash.com/photo-1551882547-ff40c63fe5fa",  # ocean view
    "https://images.unsplash.com/photo-1564501049412-61c2a3083791",  # tropical resort
    "https://images.unsplash.com/photo-1542314831-068cd1dbfeeb",  # city hotel
    "https://images.unsplash.com/photo-1571896349842-33c89424de2d",  # exterior
    "https://images.unsplash.com/photo-1584132967334-10e028bd69f7",  # beach hotel
    "https://images.unsplash.com/photo-1549294413-26f195200c16",  # resort pool
]

BASE_AMENITIES = ["WiFi", "Air Conditioning", "Room Service"]

TYPE_AMENITIES = {
    "Resort": ["Pool", "Beach Access", "Restaurant", "Spa", "All-Inclusive"],
    "Boutique": ["Unique Design", "Personalized Service", "Restaurant", "Bar"],
    "Luxury": ["Concierge", "Spa", "Fine Dining", "Butler Service", "Premium Location"],
}

TYPE_BASE_RATING = {"Luxury": 4.2, "Resort": 4.0, "Boutique": 3.8}

DESCRIPTION_TEMPLATES = {
    "Resort": "Experience luxury and relaxation at {name} in {city}. This beautiful resort offers world-class amenities and exceptional service in a stunning location.",
    "Boutique": "Discover the unique charm of {name}, a boutique hotel in {city} that combines personalized service with distinctive style and character.",
    "Luxury": "Indulge in the ultimate luxury experience at {name} in {city}. This premium hotel offers unparalleled comfort and sophisticated elegance.",
    "Hotel": "Enjoy comfortable accommodations and excellent service at {name} in {city}. Perfect for both business and leisure travelers.",
}

MIN_DESCRIPTION_LENGTH = 20


def _seeded(seed: str) -> random.Random:
    digest = hashlib.sha256(seed.encode("utf-8")).hexdigest()
    return random.Random(int(digest[:16], 16))


def _pick(data: Dict[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        value = data.get(name)
        if value not in (None, ""):
            return value
    return default


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def parse_list(value: Any) -> List[str]:
    """
    List of non-blank strings from a list or a JSON-encoded list

    Example:
        >>> parse_list('["Pool", " ", "Spa"]')
        ['Pool', 'Spa']
    """
    if isinstance(value, str):
        try:
            value = json.loads(value or "[]")
        except ValueError:
            return []
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def default_amenities(hotel_type: Optional[str], location: Optional[str] = None) -> List[str]:
    if hotel_type in TYPE_AMENITIES:
        return BASE_AMENITIES + TYPE_AMENITIES[hotel_type]
    if location and "beach" in location.lower():
        return BASE_AMENITIES + ["Beach Access", "Pool", "Restaurant"]
    return list(BASE_AMENITIES)


def reasonable_rating(hotel_type: Optional[str], score: float, seed: str) -> float:
    """
    Plausible 3.0-5.0 rating for a hotel with no usable rating.

    Starts from a per-type base, nudged up for strong relevance scores,
    with a small jitter seeded by `seed`.
    """
    base = TYPE_BASE_RATING.get(hotel_type or "", 3.5)
    if score > 0.8:
        base += 0.5
    elif score > 0.6:
        base += 0.2
    jitter = (_seeded(seed).random() - 0.5) * 0.4
    return round(max(3.0, min(5.0, base + jitter)), 1)


def placeholder_review_count(seed: str) -> int:
    return 150 + _seeded(seed + ":reviews").randint(0, 399)


def generate_description(name: str, city: str, hotel_type: Optional[str], amenities: List[str]) -> str:
    template = DESCRIPTION_TEMPLATES.get(hotel_type or "", DESCRIPTION_TEMPLATES["Hotel"])
    description = template.format(name=name, city=city)
    if amenities:
        description += f" Features include {', '.join(amenities[:3])} and more."
    return description


def convert_price_range(price_range: Optional[str]) -> str:
    """
    Normalize a price label to dollar signs

    Example:
        >>> convert_price_range("Budget friendly")
        '$$'
        >>> convert_price_range("$$$$")
        '$$$$'
    """
    if not price_range:
        return "$$$"
    if "$" in price_range:
        return price_range
    lower = price_range.lower()
    if any(word in lower for word in ("budget", "cheap", "low")):
        return "$$"
    if any(word in lower for word in ("luxury", "premium", "high")):
        return "$$$$$"
    if "mid" in lower or "moderate" in lower:
        return "$$$"
    if "expensive" in lower:
        return "$$$$"
    return "$$$"


def placeholder_image(index: int) -> str:
    return HOTEL_IMAGES[index % len(HOTEL_IMAGES)]


def format_vector_match(match: VectorMatch, index: int = 0, target_location: Optional[str] = None) -> Hotel:
    """
    Build a display-ready Hotel from a vector-index hit

    Args:
        match: Vector hit (id, score, metadata)
        index: Position in the result list (picks the placeholder image)
        target_location: Destination the user asked about, if any

    Returns:
        Hotel with missing fields backfilled
    """
    meta = match.metadata or {}
    hotel_id = str(_pick(meta, "hotel_id", default=match.id))
    hotel_type = _pick(meta, "type", default="Hotel")
    name = _pick(meta, "name", default="Unknown Hotel")
    city = _pick(meta, "city", default="")

    amenities = parse_list(meta.get("amenities"))
    if not amenities:
        amenities = default_amenities(hotel_type, target_location)

    rating = _to_float(meta.get("rating"))
    if rating <= 0 or rating > 5:
        rating = reasonable_rating(hotel_type, match.score, hotel_id)

    description = _pick(meta, "description", default="")
    if len(description) < MIN_DESCRIPTION_LENGTH:
        description = generate_description(name, city, hotel_type, amenities)

    return Hotel(
        id=hotel_id,
        score=match.score,
        name=name,
        location=_pick(meta, "location", default=""),
        city=city,
        state=_pick(meta, "state", default="Mexico"),
        description=description,
        amenities=amenities,
        price_range=convert_price_range(_pick(meta, "price_range", "priceRange")),
        rating=round(rating, 1),
        review_count=_to_int(_pick(meta, "review_count", "reviewCount")) or placeholder_review_count(hotel_id),
        type=hotel_type,
        image_url=_pick(meta, "image_url", "imageUrl", default=placeholder_image(index)),
        affiliate_link=_pick(meta, "affiliate_link", "affiliateLink", default="#"),
        nearby_attractions=parse_list(_pick(meta, "nearby_attractions", "nearbyAttractions", default=[])),
        latitude=_to_float(meta.get("latitude")),
        longitude=_to_float(meta.get("longitude")),
        source=HotelSource.VECTOR,
    )


def format_tripadvisor_hotel(
    basic: Dict[str, Any],
    details: Optional[Dict[str, Any]] = None,
    index: int = 0,
) -> Hotel:
    """
    Build a Hotel from a TripAdvisor location search hit and its details

    Details are optional; without them the hotel is built from the search
    hit alone.
    """
    details = details or {}
    location_id = str(_pick(basic, "location_id", default=f"ta-{index}"))
    address = details.get("address_obj") or basic.get("address_obj") or {}
    city = address.get("city") or "Unknown"
    state = address.get("state") or "Mexico"
    name = _pick(details, "name", default=_pick(basic, "name", default="Unknown Hotel"))

    amenities = parse_list(details.get("amenities")) or ["WiFi", "Pool", "Restaurant", "Bar", "Room Service"]

    rating = _to_float(_pick(details, "rating", default=basic.get("rating")))
    if rating <= 0 or rating > 5:
        rating = round(3.5 + _seeded(location_id).random() * 1.4, 1)

    description = _pick(details, "description", default=_pick(basic, "description", default=""))
    if len(description) < MIN_DESCRIPTION_LENGTH:
        description = generate_description(name, city, "Hotel", amenities)

    link = _pick(details, "web_url", default=f"https://www.tripadvisor.com/Hotel_Review-d{location_id}.html")

    return Hotel(
        id=location_id,
        score=0.0,
        name=name,
        location=address.get("address_string") or f"{city}, {state}",
        city=city,
        state=state,
        description=description,
        amenities=amenities,
        price_range=convert_price_range(_pick(details, "price_level", default=basic.get("price_level"))),
        rating=rating,
        review_count=_to_int(_pick(details, "num_reviews", default=basic.get("num_reviews")))
        or placeholder_review_count(location_id),
        type="Hotel",
        image_url=placeholder_image(index),
        affiliate_link=link,
        nearby_attractions=[],
        latitude=_to_float(_pick(details, "latitude", default=basic.get("latitude"))),
        longitude=_to_float(_pick(details, "longitude", default=basic.get("longitude"))),
        source=HotelSource.TRIPADVISOR,
    )


def hotel_search_text(hotel: Hotel) -> str:
    """Descriptive text embedded for a hotel when it is indexed"""
    return "\n".join([
        f"Hotel: {hotel.name}",
        f"Location: {hotel.location}",
        f"City: {hotel.city}",
        f"State: {hotel.state}",
        f"Description: {hotel.description}",
        f"Amenities: {', '.join(hotel.amenities)}",
        f"Price Range: {hotel.price_range}",
        f"Rating: {hotel.rating}",
        f"Type: {hotel.type}",
        f"Reviews: {hotel.review_count} reviews",
        f"Nearby Attractions: {', '.join(hotel.nearby_attractions) or 'N/A'}",
    ])


def hotel_index_metadata(hotel: Hotel) -> Dict[str, Any]:
    """Payload stored next to a hotel's vector"""
    payload = hotel.to_payload()
    payload.pop("score", None)
    payload["hotel_id"] = payload.pop("id")
    return payload
