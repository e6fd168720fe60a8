"""Capability interfaces the core depends on.

`GoogleMapsService` implements all three; tests plug in in-memory fakes.
Implementations report failures with the classes in `midway.errors`.
"""

from typing import List, Protocol, Sequence

from .models import Coordinate, Route, TravelCell, TravelMode, Venue


class RouteClient(Protocol):
    async def get_route_async(self, origin: Coordinate, destination: Coordinate,
                              mode: TravelMode = TravelMode.DRIVING) -> Route:
        """Raises RouteNotFoundError when no route exists, TransportError on I/O failure"""
        ...


class VenueDiscovery(Protocol):
    async def search_venues_async(self, center: Coordinate, radius_meters: int, category: str) -> List[Venue]:
        ...


class TravelMatrixClient(Protocol):
    async def compute_matrix_async(self, origins: Sequence[Coordinate], destinations: Sequence[Coordinate],
                                   mode: TravelMode) -> List[List[TravelCell]]:
        """matrix[origin_index][destination_index]; unanswerable cells hold the sentinel"""
        ...
