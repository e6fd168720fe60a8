"""Turns a MeetingResult into the JSON-ready payload served to clients"""

from typing import Callable, Dict, List, Optional, Sequence

from .formatting import (
    directions_url,
    format_minutes,
    price_level_description,
    price_level_text,
    share_message,
    share_url,
)
from .models import (
    SENTINEL_MINUTES,
    UNKNOWN_TEXT,
    Coordinate,
    MeetingResult,
    RankedVenue,
    TravelMode,
)

NO_ADDRESS = "Address not available"


def _score(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 2)


class ResultAssembler:
    """Side-effect free; `photo_url_builder` maps a photo reference to a URL"""

    def __init__(self, photo_url_builder: Optional[Callable[[str], str]] = None):
        self.photo_url_builder = photo_url_builder

    def assemble(self, result: MeetingResult) -> Dict:
        venues = [self.venue_payload(rv, result.origins, result.mode) for rv in result.ranked_venues]
        return {
            'midpoint': result.midpoint.to_dict(),
            'midpoint_strategy': result.midpoint_strategy,
            'tier_used': result.tier_used.value,
            'mode': result.mode.value,
            'categories': list(result.categories),
            'origins': [o.to_dict() for o in result.origins],
            'venues': venues,
            'venue_count': len(venues),
            'no_results': not venues,
            'notes': list(result.notes),
        }

    def venue_payload(self, ranked: RankedVenue, origins: Sequence[Coordinate], mode: TravelMode) -> Dict:
        venue = ranked.venue
        travel: List[Dict] = []
        for t in ranked.travel:
            known = t.duration_minutes != SENTINEL_MINUTES
            entry = {
                'origin_index': t.origin_index,
                'duration_minutes': t.duration_minutes if known else None,
                'distance': t.distance_text or UNKNOWN_TEXT,
                'duration': t.duration_text or UNKNOWN_TEXT,
            }
            if known and entry['duration'] == UNKNOWN_TEXT:
                entry['duration'] = format_minutes(t.duration_minutes)
            if t.origin_index < len(origins):
                entry['directions_url'] = directions_url(origins[t.origin_index], venue.coordinate, mode, venue.id)
            travel.append(entry)

        first = travel[0] if travel else {}
        maps_url = share_url(venue.coordinate, venue.id)
        photo_url = None
        if venue.photo_ref and self.photo_url_builder:
            photo_url = self.photo_url_builder(venue.photo_ref)

        return {
            'id': venue.id,
            'name': venue.name,
            'address': venue.address or NO_ADDRESS,
            'lat': venue.coordinate.latitude,
            'lng': venue.coordinate.longitude,
            'rating': venue.rating,
            'total_ratings': venue.total_ratings,
            'price_level': venue.price_level,
            'price_text': price_level_text(venue.price_level),
            'price_description': price_level_description(venue.price_level),
            'types': list(venue.category_types),
            'open_now': venue.open_now,
            'photo_url': photo_url,
            'maps_url': maps_url,
            'share_message': share_message(venue.name, venue.address, maps_url),
            'travel': travel,
            # first origin's figures, kept flat for list views
            'distance': first.get('distance', UNKNOWN_TEXT),
            'duration': first.get('duration', UNKNOWN_TEXT),
            'travel_minutes_by_origin': list(ranked.travel_minutes_by_origin),
            'has_complete_travel_data': ranked.has_complete_travel_data,
            'max_time_difference_minutes': ranked.max_time_difference_minutes,
            'total_travel_minutes': ranked.total_travel_minutes,
            'fairness_score': _score(ranked.fairness_score),
            'rating_score': _score(ranked.rating_score),
            'total_time_score': _score(ranked.total_time_score),
            'composite_score': _score(ranked.composite_score),
        }


def assemble_result(result: MeetingResult, photo_url_builder: Optional[Callable[[str], str]] = None) -> Dict:
    return ResultAssembler(photo_url_builder).assemble(result)
