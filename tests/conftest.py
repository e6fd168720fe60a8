import sys
from pathlib import Path

import pytest

# Ensure the project root is on sys.path for direct pytest runs
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from midway.config import Settings  # noqa: E402
from midway.models import (  # noqa: E402
    UNKNOWN_TRAVEL,
    Coordinate,
    Route,
    RouteStep,
    TravelCell,
    TravelMode,
    Venue,
)


SF = Coordinate(37.7749, -122.4194)
LA = Coordinate(34.0522, -118.2437)


def make_venue(venue_id, rating=4.0, lat=36.0, lng=-120.0, name=None, **kw):
    return Venue(id=venue_id, name=name or f"Venue {venue_id}", coordinate=Coordinate(lat, lng), rating=rating, **kw)


def straight_route(a: Coordinate, b: Coordinate, meters_per_degree: int = 1000) -> Route:
    """Single-step route whose length is proportional to the degree offset"""
    distance = int(round((abs(b.latitude - a.latitude) + abs(b.longitude - a.longitude)) * meters_per_degree))
    return Route(steps=(RouteStep(distance, a, b),), total_distance_meters=distance)


class FakeRouteClient:
    def __init__(self, route=None, error=None, errors_for=None):
        self.route = route
        self.error = error
        self.errors_for = errors_for or {}
        self.calls = []

    async def get_route_async(self, origin, destination, mode=TravelMode.DRIVING):
        self.calls.append((origin, destination, mode))
        if origin in self.errors_for:
            raise self.errors_for[origin]
        if self.error is not None:
            raise self.error
        if callable(self.route):
            return self.route(origin, destination)
        return self.route


class FakeDiscovery:
    """responses: category -> list of venues, an exception, or a list of those
    consumed one per call (the last one repeats)"""

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []

    async def search_venues_async(self, center, radius_meters, category):
        self.calls.append((center, radius_meters, category))
        res = self.responses.get(category, [])
        if isinstance(res, tuple):
            seen = sum(1 for c in self.calls if c[2] == category)
            res = res[min(seen, len(res)) - 1]
        if isinstance(res, BaseException):
            raise res
        return list(res)


class FakeMatrix:
    """minutes: destination Coordinate -> per-origin minutes.
    Destinations listed in `failing` make the whole call raise."""

    def __init__(self, minutes=None, failing=(), error=None):
        self.minutes = minutes or {}
        self.failing = set(failing)
        self.error = error
        self.calls = []

    async def compute_matrix_async(self, origins, destinations, mode):
        self.calls.append((list(origins), list(destinations), mode))
        if self.error is not None and any(d in self.failing for d in destinations):
            raise self.error
        matrix = []
        for i in range(len(origins)):
            row = []
            for d in destinations:
                per_origin = self.minutes.get(d)
                if per_origin is None or per_origin[i] is None:
                    row.append(UNKNOWN_TRAVEL)
                else:
                    m = per_origin[i]
                    row.append(TravelCell(m, f"{m} km", f"{m} mins"))
            matrix.append(row)
        return matrix


class FakeMapsService:
    """All three capabilities plus geocoding, for app-level tests"""

    def __init__(self, route=None, route_error=None, venues=None, minutes=None,
                 geocodes=None, matrix_error=None, failing=()):
        self.routes = FakeRouteClient(route=route, error=route_error)
        self.discovery = FakeDiscovery(venues)
        self.matrix = FakeMatrix(minutes, failing=failing, error=matrix_error)
        self.geocodes = geocodes or {}

    async def get_route_async(self, origin, destination, mode=TravelMode.DRIVING):
        return await self.routes.get_route_async(origin, destination, mode)

    async def search_venues_async(self, center, radius_meters, category):
        return await self.discovery.search_venues_async(center, radius_meters, category)

    async def compute_matrix_async(self, origins, destinations, mode):
        return await self.matrix.compute_matrix_async(origins, destinations, mode)

    def geocode_address(self, address):
        coord = self.geocodes.get(address)
        if coord is None:
            return None
        return {'formatted_address': address.title(), 'lat': coord.latitude,
                'lng': coord.longitude, 'coordinate': coord}

    async def geocode_address_async(self, address):
        return self.geocode_address(address)

    def photo_url(self, ref):
        return f"https://photos.test/{ref}"


@pytest.fixture
def quiet_settings():
    return Settings(environ={'LOG_FILE': '', 'LOG_LEVEL': 'WARNING'})


@pytest.fixture
def half_way_route():
    """SF -> LA as two equal 300 km steps meeting at the geometric centre"""
    centre = Coordinate((SF.latitude + LA.latitude) / 2, (SF.longitude + LA.longitude) / 2)
    return Route(
        steps=(RouteStep(300000, SF, centre), RouteStep(300000, centre, LA)),
        total_distance_meters=600000,
    )
