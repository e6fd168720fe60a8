"""Tiered meeting-venue search.

Tiers are tried best first and a tier only runs when the one before it raised
or came back empty:

    OPTIMIZED        every origin scored through the travel matrix
    LEGACY_FALLBACK  rating-sorted search, travel info from the first origin
    ARITHMETIC_ONLY  no venues; the arithmetic midpoint is still returned

"Retry" here means trying a cruder strategy. Repeating the same request is
left to the maps client.
"""

import asyncio
import logging
from typing import List, Sequence, Tuple

from .aio import run_sync
from .errors import InvalidInputError, MidwayError, is_transport_failure
from .geo_math import arithmetic_midpoint
from .interfaces import RouteClient, TravelMatrixClient, VenueDiscovery
from .midpoint import STRATEGY_ARITHMETIC, MidpointResolution, RoadMidpointResolver
from .models import (
    UNKNOWN_TRAVEL,
    Coordinate,
    MeetingResult,
    Origin,
    RankedVenue,
    Tier,
    TravelCell,
    TravelMode,
    TravelResult,
    Venue,
)
from .optimizer import (
    DEFAULT_WEIGHTS,
    MATRIX_BATCH_SIZE,
    SEARCH_RADIUS_M,
    MeetingPlaceOptimizer,
    ScoringWeights,
    dedupe_venues,
    discover_venues,
    matrix_cell,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 20


def validate_request(origins, mode, categories, max_results) -> Tuple[Tuple[Coordinate, ...], TravelMode, Tuple[str, ...], int]:
    """Normalize caller arguments or raise InvalidInputError before any network call"""
    if origins is not None and not isinstance(origins, (list, tuple)):
        raise InvalidInputError("origins must be a list of coordinates")
    if not origins or len(origins) < 2:
        raise InvalidInputError("At least two origins are required")
    coords = []
    for i, origin in enumerate(origins):
        if isinstance(origin, Origin):
            origin = origin.coordinate
        elif isinstance(origin, dict):
            origin = Coordinate.from_dict(origin)
        if not isinstance(origin, Coordinate):
            raise InvalidInputError(f"Origin {i} is not a coordinate")
        coords.append(origin)

    mode = TravelMode.parse(mode)

    if isinstance(categories, str):
        categories = [categories]
    if categories is not None and not isinstance(categories, (list, tuple)):
        raise InvalidInputError("categories must be a list of strings")
    if any(not isinstance(c, str) for c in categories or ()):
        raise InvalidInputError("Every category must be a string")
    cleaned = [c.strip() for c in (categories or ()) if c.strip()]
    if not cleaned:
        raise InvalidInputError("At least one venue category is required")

    if isinstance(max_results, bool) or not isinstance(max_results, int) or max_results <= 0:
        raise InvalidInputError("max_results must be a positive integer")

    return tuple(coords), mode, tuple(cleaned), max_results


class FallbackOrchestrator:
    """Runs the tiers in order and packages whichever answer comes first"""

    def __init__(
        self,
        route_client: RouteClient,
        discovery: VenueDiscovery,
        matrix_client: TravelMatrixClient,
        search_radius: int = SEARCH_RADIUS_M,
        batch_size: int = MATRIX_BATCH_SIZE,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ):
        self.discovery = discovery
        self.matrix_client = matrix_client
        self.search_radius = search_radius
        self.resolver = RoadMidpointResolver(route_client)
        self.optimizer = MeetingPlaceOptimizer(
            self.resolver, discovery, matrix_client,
            search_radius=search_radius, batch_size=batch_size, weights=weights,
        )

    def find(self, origins: Sequence[Coordinate], mode, categories: Sequence[str],
             max_results: int = DEFAULT_MAX_RESULTS) -> MeetingResult:
        return run_sync(self.find_async(origins, mode, categories, max_results))

    async def find_async(self, origins: Sequence[Coordinate], mode, categories: Sequence[str],
                         max_results: int = DEFAULT_MAX_RESULTS) -> MeetingResult:
        origins, mode, categories, max_results = validate_request(origins, mode, categories, max_results)
        resolution = await self.resolver.resolve_detailed_async(origins)
        notes: List[str] = []
        if resolution.failures:
            notes.append(f"routing failed for {len(resolution.failures)} request(s); midpoint is {resolution.strategy}")

        def result(venues, tier: Tier) -> MeetingResult:
            logger.info("Meeting search finished: tier=%s venues=%d midpoint=%s",
                        tier.value, len(venues), resolution.coordinate.as_param())
            return MeetingResult(
                midpoint=resolution.coordinate,
                ranked_venues=tuple(venues),
                tier_used=tier,
                midpoint_strategy=resolution.strategy,
                origins=origins,
                mode=mode,
                categories=categories,
                notes=tuple(notes),
            )

        try:
            ranked = await self.optimizer.optimize_async(
                origins, mode, categories, max_results, midpoint=resolution.coordinate
            )
            if ranked:
                return result(ranked, Tier.OPTIMIZED)
            notes.append("optimized search returned no venues")
        except Exception as e:
            logger.warning("Optimized search failed (%s: %s); trying legacy search", type(e).__name__, e,
                           exc_info=not isinstance(e, MidwayError))
            notes.append(f"optimized search failed: {e}")

        legacy_error = None
        try:
            legacy = await self.legacy_search_async(origins, mode, categories, max_results, resolution.coordinate)
            if legacy:
                return result(legacy, Tier.LEGACY_FALLBACK)
            notes.append("legacy search returned no venues")
        except Exception as e:
            logger.warning("Legacy search failed (%s: %s)", type(e).__name__, e)
            notes.append(f"legacy search failed: {e}")
            legacy_error = e

        if legacy_error is not None and self._provider_unreachable(resolution, legacy_error):
            logger.error("Maps provider unreachable for routing and discovery; giving up")
            raise legacy_error

        midpoint = arithmetic_midpoint(origins)
        logger.info("No venues found; returning arithmetic midpoint %s", midpoint.as_param())
        return MeetingResult(
            midpoint=midpoint,
            ranked_venues=(),
            tier_used=Tier.ARITHMETIC_ONLY,
            midpoint_strategy=STRATEGY_ARITHMETIC,
            origins=origins,
            mode=mode,
            categories=categories,
            notes=tuple(notes),
        )

    @staticmethod
    def _provider_unreachable(resolution: MidpointResolution, discovery_error: BaseException) -> bool:
        return (
            is_transport_failure(discovery_error)
            and not resolution.road_aware
            and bool(resolution.failures)
            and all(is_transport_failure(f) for f in resolution.failures)
        )

    async def legacy_search_async(self, origins: Sequence[Coordinate], mode: TravelMode, categories: Sequence[str],
                                  max_results: int, midpoint: Coordinate) -> List[RankedVenue]:
        """Rating-sorted venues around the midpoint with travel info from the first origin only"""
        found, failures = await discover_venues(self.discovery, midpoint, self.search_radius, categories)
        if failures and len(failures) == len(categories):
            raise failures[0]

        venues = dedupe_venues(found)
        venues.sort(key=lambda v: v.rating or 0.0, reverse=True)
        venues = venues[:max_results]
        if not venues:
            return []

        cells = await asyncio.gather(*(self._first_origin_travel(origins[0], v, mode) for v in venues))
        return [
            RankedVenue(venue=venue, travel=(TravelResult.from_cell(0, venue.id, cell),))
            for venue, cell in zip(venues, cells)
        ]

    async def _first_origin_travel(self, origin: Coordinate, venue: Venue, mode: TravelMode) -> TravelCell:
        try:
            matrix = await self.matrix_client.compute_matrix_async([origin], [venue.coordinate], mode)
        except Exception as e:
            logger.warning("Travel info for %s failed: %s", venue.name, e)
            return UNKNOWN_TRAVEL
        return matrix_cell(matrix, 0, 0)


def find_meeting_venues(maps_service, origins: Sequence[Coordinate], mode, categories: Sequence[str],
                        max_results: int = DEFAULT_MAX_RESULTS, **options) -> MeetingResult:
    """Convenience entry point for a service implementing all three capabilities"""
    orchestrator = FallbackOrchestrator(maps_service, maps_service, maps_service, **options)
    return orchestrator.find(origins, mode, categories, max_results)
