"""Pure geometry helpers. No network calls in here."""

from typing import Sequence

from geopy.distance import great_circle

from .errors import InvalidInputError
from .models import Coordinate, RouteStep


def arithmetic_midpoint(coords: Sequence[Coordinate]) -> Coordinate:
    """Coordinate-wise mean of latitude and longitude.

    Ignores earth curvature and road topology; only used as the last-resort
    meeting point and as the seed for multi-origin refinement.
    """
    if not coords:
        raise InvalidInputError("At least one coordinate is required for a midpoint")
    lat = sum(c.latitude for c in coords) / len(coords)
    lng = sum(c.longitude for c in coords) / len(coords)
    return Coordinate(lat, lng)


def interpolate(p1: Coordinate, p2: Coordinate, frac: float) -> Coordinate:
    return Coordinate(
        p1.latitude + (p2.latitude - p1.latitude) * frac,
        p1.longitude + (p2.longitude - p1.longitude) * frac,
    )


def interpolate_along_route(steps: Sequence[RouteStep], target_distance_meters: float) -> Coordinate:
    """Return the point `target_distance_meters` into the route.

    Steps are walked in order; inside the step that reaches the target the
    position is linearly interpolated between its start and end. A target past
    the end of the route (rounding in the provider's totals) yields the last
    step's end coordinate.
    """
    if not steps:
        raise InvalidInputError("Cannot interpolate along an empty route")

    target = max(0.0, float(target_distance_meters))
    covered = 0.0
    for step in steps:
        step_distance = float(step.distance_meters)
        if covered + step_distance >= target:
            ratio = 0.0 if step_distance <= 0 else (target - covered) / step_distance
            return interpolate(step.start, step.end, ratio)
        covered += step_distance
    return steps[-1].end


def route_length(steps: Sequence[RouteStep]) -> int:
    return sum(step.distance_meters for step in steps)


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in meters"""
    return great_circle((a.latitude, a.longitude), (b.latitude, b.longitude)).meters
