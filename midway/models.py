"""Value objects passed between the meeting-point core and its collaborators"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from .errors import InvalidInputError


# Travel time used when a lookup could not be answered. It is a real value,
# carried through scoring, not an error.
SENTINEL_MINUTES = 9999
UNKNOWN_TEXT = "Unknown"


class TravelMode(str, Enum):
    DRIVING = "driving"
    WALKING = "walking"
    BICYCLING = "bicycling"
    TRANSIT = "transit"

    @classmethod
    def parse(cls, value) -> "TravelMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise InvalidInputError(f"Unsupported travel mode '{value}' (expected one of: {allowed})")


class Tier(str, Enum):
    """Strategy that produced a MeetingResult, best first"""
    OPTIMIZED = "optimized"
    LEGACY_FALLBACK = "legacy_fallback"
    ARITHMETIC_ONLY = "arithmetic_only"


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def __post_init__(self):
        try:
            lat = float(self.latitude)
            lng = float(self.longitude)
        except (TypeError, ValueError):
            raise InvalidInputError(f"Coordinate values must be numbers, got ({self.latitude!r}, {self.longitude!r})")
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise InvalidInputError("Coordinate values must be finite")
        if not -90.0 <= lat <= 90.0:
            raise InvalidInputError(f"Latitude {lat} outside [-90, 90]")
        if not -180.0 <= lng <= 180.0:
            raise InvalidInputError(f"Longitude {lng} outside [-180, 180]")
        object.__setattr__(self, "latitude", lat)
        object.__setattr__(self, "longitude", lng)

    @classmethod
    def from_dict(cls, data: Dict) -> "Coordinate":
        """Accepts {'lat', 'lng'} (Google style) or {'latitude', 'longitude'}"""
        if not isinstance(data, dict):
            raise InvalidInputError("Coordinate must be an object with lat and lng")
        lat = data.get("lat", data.get("latitude"))
        lng = data.get("lng", data.get("longitude"))
        if lat is None or lng is None:
            raise InvalidInputError("Coordinate must have lat and lng properties")
        return cls(lat, lng)

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.latitude, "lng": self.longitude}

    def as_param(self) -> str:
        return f"{self.latitude},{self.longitude}"


@dataclass(frozen=True)
class Origin:
    """A participant's starting point"""
    coordinate: Coordinate
    label: str = ""
    formatted_address: Optional[str] = None


@dataclass(frozen=True)
class RouteStep:
    distance_meters: int
    start: Coordinate
    end: Coordinate


@dataclass(frozen=True)
class Route:
    steps: Tuple[RouteStep, ...]
    total_distance_meters: int


@dataclass(frozen=True)
class Venue:
    id: str
    name: str
    coordinate: Coordinate
    rating: Optional[float] = None
    total_ratings: int = 0
    price_level: Optional[int] = None
    category_types: Tuple[str, ...] = ()
    photo_ref: Optional[str] = None
    address: Optional[str] = None
    open_now: Optional[bool] = None


@dataclass(frozen=True)
class TravelCell:
    """One origin -> destination entry of a travel matrix"""
    duration_minutes: int = SENTINEL_MINUTES
    distance_text: str = UNKNOWN_TEXT
    duration_text: str = UNKNOWN_TEXT

    @property
    def is_known(self) -> bool:
        return self.duration_minutes != SENTINEL_MINUTES


UNKNOWN_TRAVEL = TravelCell()


@dataclass(frozen=True)
class TravelResult:
    origin_index: int
    venue_id: str
    duration_minutes: int = SENTINEL_MINUTES
    distance_text: str = UNKNOWN_TEXT
    duration_text: str = UNKNOWN_TEXT

    @classmethod
    def from_cell(cls, origin_index: int, venue_id: str, cell: TravelCell) -> "TravelResult":
        return cls(origin_index, venue_id, cell.duration_minutes, cell.distance_text, cell.duration_text)


@dataclass(frozen=True)
class RankedVenue:
    """A venue plus the travel data and scores it was ranked with.

    Venues from the legacy tier carry travel info for the first origin only
    and no scores; those fields stay None.
    """
    venue: Venue
    travel: Tuple[TravelResult, ...] = ()
    max_time_difference_minutes: Optional[int] = None
    total_travel_minutes: Optional[int] = None
    fairness_score: Optional[float] = None
    rating_score: Optional[float] = None
    total_time_score: Optional[float] = None
    composite_score: Optional[float] = None

    @property
    def travel_minutes_by_origin(self) -> Tuple[int, ...]:
        return tuple(t.duration_minutes for t in self.travel)

    @property
    def has_complete_travel_data(self) -> bool:
        return bool(self.travel) and all(t.duration_minutes != SENTINEL_MINUTES for t in self.travel)


@dataclass(frozen=True)
class MeetingResult:
    midpoint: Coordinate
    ranked_venues: Tuple[RankedVenue, ...]
    tier_used: Tier
    midpoint_strategy: str = "arithmetic"
    origins: Tuple[Coordinate, ...] = ()
    mode: TravelMode = TravelMode.DRIVING
    categories: Tuple[str, ...] = ()
    notes: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.ranked_venues
