"""Midway: find a fair place to meet for everyone involved."""

from .models import (
    Coordinate,
    MeetingResult,
    Origin,
    RankedVenue,
    RouteStep,
    Tier,
    TravelMode,
    Venue,
)
from .errors import (
    InvalidInputError,
    MapsServiceError,
    MidwayError,
    NoVenuesFoundError,
    TransportError,
)
from .fallback import FallbackOrchestrator, find_meeting_venues

__version__ = "0.3.0"
