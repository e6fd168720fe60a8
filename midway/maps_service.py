import asyncio
import concurrent.futures
import datetime as _dt
import logging
from typing import Callable, Dict, List, Optional, Sequence

import googlemaps
from googlemaps import exceptions as gm_exceptions

from .cache import CACHE_TTL, MISS, ResponseCache, make_key
from .config import PLACEHOLDER_KEY
from .errors import (
    InvalidRequestError,
    MapsServiceError,
    QuotaExceededError,
    RequestDeniedError,
    RouteNotFoundError,
    TransportError,
)
from .formatting import parse_duration_to_minutes, seconds_to_minutes
from .models import (
    UNKNOWN_TEXT,
    UNKNOWN_TRAVEL,
    Coordinate,
    Route,
    RouteStep,
    TravelCell,
    TravelMode,
    Venue,
)

logger = logging.getLogger(__name__)

PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"
PHOTO_MAX_WIDTH = 400

# Google status string -> error class. Resolved here once; callers only ever
# see the typed errors.
STATUS_ERRORS = {
    'OVER_QUERY_LIMIT': QuotaExceededError,
    'OVER_DAILY_LIMIT': QuotaExceededError,
    'REQUEST_DENIED': RequestDeniedError,
    'INVALID_REQUEST': InvalidRequestError,
    'MAX_WAYPOINTS_EXCEEDED': InvalidRequestError,
    'MAX_ROUTE_LENGTH_EXCEEDED': InvalidRequestError,
    'NOT_FOUND': RouteNotFoundError,
    'ZERO_RESULTS': RouteNotFoundError,
}


def translate_error(error: Exception) -> MapsServiceError:
    """Map a googlemaps (or lower level) exception onto the midway error classes"""
    if isinstance(error, MapsServiceError):
        return error
    if isinstance(error, gm_exceptions.ApiError):
        cls = STATUS_ERRORS.get(error.status, TransportError)
        return cls(error.message or error.status, status=error.status)
    if isinstance(error, gm_exceptions.Timeout):
        return TransportError("Maps request timed out", status='TIMEOUT')
    if isinstance(error, gm_exceptions.HTTPError):
        return TransportError(f"HTTP error {error.status_code}", status=str(error.status_code))
    if isinstance(error, gm_exceptions.TransportError):
        return TransportError(str(error.base_exception or error), status='TRANSPORT')
    return TransportError(f"{type(error).__name__}: {error}")


def _latlng(loc: Dict) -> Coordinate:
    return Coordinate(loc['lat'], loc['lng'])


class GoogleMapsService:
    """Google Maps implementation of routing, venue discovery and travel matrices"""

    def __init__(
        self,
        api_key: str,
        timeout: int = 10,
        max_workers: int = 10,
        cache: Optional[ResponseCache] = None,
        client=None,
    ):
        if client is None:
            if not api_key or api_key == PLACEHOLDER_KEY:
                raise ValueError("Valid Google Maps API key is required")
            client = googlemaps.Client(key=api_key, timeout=timeout)
        self.api_key = api_key
        self.client = client
        self.cache = cache
        self.executor = concurrent.futures.ThreadPoolExecutor(max_workers=max_workers)

    def cleanup(self):
        """Clean up resources"""
        if hasattr(self, 'executor'):
            self.executor.shutdown(wait=True)

    def _request(self, endpoint: str, call: Callable, cache_params: Dict, **params):
        """Run one client call through the response cache, translating failures"""
        key = make_key(endpoint, cache_params)
        if self.cache is not None:
            cached = self.cache.get(key, CACHE_TTL.get(endpoint, 0))
            if cached is not MISS:
                logger.debug("cache hit: %s", endpoint)
                return cached
        try:
            response = call(**params)
        except Exception as e:
            error = translate_error(e)
            logger.warning("%s request failed: %s (%s)", endpoint, error, type(error).__name__)
            raise error from e
        if self.cache is not None:
            self.cache.set(key, response)
        return response

    def geocode_address(self, address: str) -> Optional[Dict]:
        """
        Geocode an address using Google Maps Geocoding API
        Returns formatted address and coordinates, or None when nothing matched
        """
        result = self._request('geocode', self.client.geocode, {'address': address}, address=address)
        if not result:
            return None
        try:
            location = result[0]
            coordinate = _latlng(location['geometry']['location'])
        except (KeyError, IndexError, TypeError) as e:
            raise TransportError(f"Malformed geocode response: {e}") from e
        return {
            'formatted_address': location.get('formatted_address', address),
            'lat': coordinate.latitude,
            'lng': coordinate.longitude,
            'coordinate': coordinate,
        }

    def get_route(self, origin: Coordinate, destination: Coordinate,
                  mode: TravelMode = TravelMode.DRIVING) -> Route:
        """First route returned by the Directions API, flattened to its steps"""
        mode = TravelMode.parse(mode)
        params = {'origin': origin.as_param(), 'destination': destination.as_param(), 'mode': mode.value}
        routes = self._request('directions', self.client.directions, params, alternatives=False, **params)
        if not routes:
            raise RouteNotFoundError("No route found between locations", status='ZERO_RESULTS')

        try:
            route = routes[0]
            steps: List[RouteStep] = []
            total_distance = 0
            for leg in route.get('legs', []):
                total_distance += leg.get('distance', {}).get('value', 0)
                for step in leg.get('steps', []):
                    steps.append(RouteStep(
                        distance_meters=step['distance']['value'],
                        start=_latlng(step['start_location']),
                        end=_latlng(step['end_location']),
                    ))
        except (KeyError, TypeError) as e:
            raise TransportError(f"Malformed directions response: {e}") from e

        if not steps:
            raise RouteNotFoundError("Route has no steps", status='ZERO_RESULTS')
        return Route(steps=tuple(steps), total_distance_meters=total_distance)

    def search_venues(self, center: Coordinate, radius_meters: int, category: str) -> List[Venue]:
        """
        Find places of one category near a coordinate
        """
        params = {'location': (center.latitude, center.longitude), 'radius': radius_meters, 'type': category}
        places_result = self._request(
            'places_nearby', self.client.places_nearby,
            {'location': center.as_param(), 'radius': radius_meters, 'type': category},
            **params,
        )

        venues = []
        for place in (places_result or {}).get('results', []):
            try:
                venue = Venue(
                    id=place['place_id'],
                    name=place.get('name', ''),
                    coordinate=_latlng(place['geometry']['location']),
                    rating=place.get('rating'),
                    total_ratings=place.get('user_ratings_total') or 0,
                    price_level=place.get('price_level'),
                    category_types=tuple(place.get('types', [])),
                    photo_ref=(place.get('photos') or [{}])[0].get('photo_reference'),
                    address=place.get('vicinity'),
                    open_now=(place.get('opening_hours') or {}).get('open_now'),
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Skipping malformed place result: %s", e)
                continue
            venues.append(venue)
        return venues

    def compute_matrix(self, origins: Sequence[Coordinate], destinations: Sequence[Coordinate],
                       mode: TravelMode) -> List[List[TravelCell]]:
        """Distance Matrix lookup; rows = origins, cols = destinations.
        Elements Google could not answer come back as the sentinel cell.
        """
        mode = TravelMode.parse(mode)
        rows = len(origins)
        cols = len(destinations)
        matrix = [[UNKNOWN_TRAVEL for _ in range(cols)] for _ in range(rows)]
        if not rows or not cols:
            return matrix

        params = {
            'origins': [(o.latitude, o.longitude) for o in origins],
            'destinations': [(d.latitude, d.longitude) for d in destinations],
            'mode': mode.value,
        }
        if mode is TravelMode.TRANSIT:
            params['departure_time'] = _dt.datetime.now()
        cache_params = {
            'origins': [o.as_param() for o in origins],
            'destinations': [d.as_param() for d in destinations],
            'mode': mode.value,
        }
        dm = self._request('distance_matrix', self.client.distance_matrix, cache_params, **params)

        for i, row in enumerate((dm or {}).get('rows', [])[:rows]):
            for j, el in enumerate(row.get('elements', [])[:cols]):
                if not el or el.get('status') != 'OK' or 'duration' not in el:
                    continue
                duration = el['duration']
                if duration.get('value') is not None:
                    minutes = seconds_to_minutes(duration['value'])
                else:
                    minutes = parse_duration_to_minutes(duration.get('text'))
                matrix[i][j] = TravelCell(
                    duration_minutes=minutes,
                    distance_text=el.get('distance', {}).get('text', UNKNOWN_TEXT),
                    duration_text=duration.get('text', UNKNOWN_TEXT),
                )
        return matrix

    def photo_url(self, photo_reference: str, max_width: int = PHOTO_MAX_WIDTH) -> str:
        return f"{PHOTO_URL}?maxwidth={max_width}&photoreference={photo_reference}&key={self.api_key}"

    # Async wrapper methods for parallel execution
    async def geocode_address_async(self, address: str) -> Optional[Dict]:
        """Async wrapper for geocode_address"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self.geocode_address, address)

    async def get_route_async(self, origin: Coordinate, destination: Coordinate,
                              mode: TravelMode = TravelMode.DRIVING) -> Route:
        """Async wrapper for get_route"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self.get_route, origin, destination, mode)

    async def search_venues_async(self, center: Coordinate, radius_meters: int, category: str) -> List[Venue]:
        """Async wrapper for search_venues"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self.search_venues, center, radius_meters, category)

    async def compute_matrix_async(self, origins: Sequence[Coordinate], destinations: Sequence[Coordinate],
                                   mode: TravelMode) -> List[List[TravelCell]]:
        """Async wrapper for compute_matrix"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self.compute_matrix, origins, destinations, mode)
