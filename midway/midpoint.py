"""Road-aware meeting point resolution.

Two origins: the point halfway along the driving route between them, so the
road distance is split evenly.

Three or more origins: seed with the arithmetic midpoint, route every origin
to the seed, then walk each route only as far as the mean route length. Far
origins stop short of the seed, which pulls the re-averaged point towards
them and evens out the road distances.

Any routing failure degrades to the arithmetic midpoint; resolving never
raises for valid origins.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .aio import run_sync
from .errors import RouteNotFoundError
from .geo_math import arithmetic_midpoint, interpolate_along_route, route_length
from .interfaces import RouteClient
from .models import Coordinate, Route, TravelMode

logger = logging.getLogger(__name__)

STRATEGY_ROAD = "road"
STRATEGY_ROAD_REFINED = "road-refined"
STRATEGY_ARITHMETIC = "arithmetic"


@dataclass(frozen=True)
class MidpointResolution:
    coordinate: Coordinate
    strategy: str
    failures: Tuple[BaseException, ...] = ()

    @property
    def road_aware(self) -> bool:
        return self.strategy != STRATEGY_ARITHMETIC


def _route_distance(route: Route) -> float:
    if not route.steps:
        raise RouteNotFoundError("Route has no steps")
    return float(route.total_distance_meters or route_length(route.steps))


class RoadMidpointResolver:
    """Finds the meeting coordinate for a set of origins"""

    def __init__(self, route_client: RouteClient, route_mode: TravelMode = TravelMode.DRIVING):
        self.route_client = route_client
        self.route_mode = route_mode

    def resolve(self, origins: Sequence[Coordinate]) -> Coordinate:
        return run_sync(self.resolve_async(origins))

    async def resolve_async(self, origins: Sequence[Coordinate]) -> Coordinate:
        resolution = await self.resolve_detailed_async(origins)
        return resolution.coordinate

    async def resolve_detailed_async(self, origins: Sequence[Coordinate]) -> MidpointResolution:
        fallback = arithmetic_midpoint(origins)
        if len(origins) == 1:
            return MidpointResolution(origins[0], STRATEGY_ARITHMETIC)
        try:
            if len(origins) == 2:
                return await self._two_origin_midpoint(origins[0], origins[1])
            return await self._refined_midpoint(origins, fallback)
        except Exception as e:
            logger.warning("Road midpoint failed (%s: %s); using arithmetic midpoint", type(e).__name__, e)
            return MidpointResolution(fallback, STRATEGY_ARITHMETIC, (e,))

    async def _two_origin_midpoint(self, a: Coordinate, b: Coordinate) -> MidpointResolution:
        route = await self.route_client.get_route_async(a, b, self.route_mode)
        half = _route_distance(route) / 2
        point = interpolate_along_route(route.steps, half)
        logger.debug("Road midpoint at %.0fm of %.0fm: %s", half, half * 2, point)
        return MidpointResolution(point, STRATEGY_ROAD)

    async def _refined_midpoint(self, origins: Sequence[Coordinate], seed: Coordinate) -> MidpointResolution:
        results = await asyncio.gather(
            *(self.route_client.get_route_async(o, seed, self.route_mode) for o in origins),
            return_exceptions=True,
        )

        failures: List[BaseException] = []
        usable: List[Tuple[int, Route, float]] = []
        for i, res in enumerate(results):
            if isinstance(res, BaseException):
                logger.warning("Route from origin %d to seed failed: %s", i, res)
                failures.append(res)
                continue
            try:
                usable.append((i, res, _route_distance(res)))
            except RouteNotFoundError as e:
                failures.append(e)

        if not usable:
            return MidpointResolution(seed, STRATEGY_ARITHMETIC, tuple(failures))

        target = sum(distance for _, _, distance in usable) / len(usable)
        adjusted = [seed] * len(origins)
        for i, route, _ in usable:
            adjusted[i] = interpolate_along_route(route.steps, target)
        return MidpointResolution(arithmetic_midpoint(adjusted), STRATEGY_ROAD_REFINED, tuple(failures))
