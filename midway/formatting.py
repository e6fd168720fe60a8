"""Display helpers for travel times, prices and map links"""

import math
import re
from typing import Optional
from urllib.parse import quote_plus, urlencode

from .models import SENTINEL_MINUTES, UNKNOWN_TEXT, Coordinate, TravelMode

MAX_PRICE_LEVEL = 4

PRICE_DESCRIPTIONS = {
    1: "Budget-friendly",
    2: "Moderate",
    3: "Pricey",
    4: "Expensive",
}


def seconds_to_minutes(seconds: float) -> int:
    """Half-up rounding: 90s -> 2, 150s -> 3"""
    return int(math.floor(seconds / 60.0 + 0.5))


def parse_duration_to_minutes(text: Optional[str]) -> int:
    """'1 hour 5 mins' -> 65, '12 mins' -> 12; anything unreadable is the sentinel"""
    if not text or text == UNKNOWN_TEXT:
        return SENTINEL_MINUTES
    numbers = [int(n) for n in re.findall(r"\d+", text)]
    if not numbers:
        return SENTINEL_MINUTES
    lowered = text.lower()
    if "day" in lowered:
        days = numbers[0]
        hours = numbers[1] if len(numbers) > 1 else 0
        return days * 24 * 60 + hours * 60
    if "hour" in lowered or "hr" in lowered:
        hours = numbers[0]
        minutes = numbers[1] if len(numbers) > 1 else 0
        return hours * 60 + minutes
    return numbers[0]


def format_minutes(minutes: Optional[int]) -> str:
    if minutes is None or minutes == SENTINEL_MINUTES or minutes < 0:
        return UNKNOWN_TEXT
    if minutes < 60:
        return f"{minutes} min"
    hours, rest = divmod(minutes, 60)
    if rest == 0:
        return f"{hours} hr"
    return f"{hours} hr {rest} min"


def price_level_text(price_level: Optional[int]) -> str:
    if not price_level or price_level <= 0:
        return ""
    return "$" * min(price_level, MAX_PRICE_LEVEL)


def price_level_description(price_level: Optional[int]) -> str:
    if not price_level or price_level <= 0:
        return UNKNOWN_TEXT
    return PRICE_DESCRIPTIONS.get(min(price_level, MAX_PRICE_LEVEL), UNKNOWN_TEXT)


def directions_url(origin: Coordinate, destination: Coordinate, mode: TravelMode,
                   place_id: Optional[str] = None) -> str:
    params = {
        "api": 1,
        "origin": origin.as_param(),
        "destination": destination.as_param(),
        "travelmode": TravelMode.parse(mode).value,
    }
    if place_id:
        params["destination_place_id"] = place_id
    return "https://www.google.com/maps/dir/?" + urlencode(params)


def share_url(location: Coordinate, place_id: Optional[str] = None) -> str:
    url = f"https://www.google.com/maps/search/?api=1&query={quote_plus(location.as_param())}"
    if place_id:
        url += f"&query_place_id={quote_plus(place_id)}"
    return url


def share_message(name: str, address: Optional[str], maps_url: str) -> str:
    return f"Check out {name} at {address or 'this location'}. {maps_url}"
