import math

import pytest

from conftest import LA, SF
from midway.errors import InvalidInputError
from midway.geo_math import (
    arithmetic_midpoint,
    haversine_distance,
    interpolate,
    interpolate_along_route,
    route_length,
)
from midway.models import Coordinate, RouteStep


EAST_ROUTE = (
    RouteStep(100, Coordinate(0, 0), Coordinate(0, 1)),
    RouteStep(200, Coordinate(0, 1), Coordinate(0, 3)),
    RouteStep(100, Coordinate(0, 3), Coordinate(1, 3)),
)


def test_arithmetic_midpoint_two_points():
    mid = arithmetic_midpoint([SF, LA])
    assert mid.latitude == pytest.approx((37.7749 + 34.0522) / 2)
    assert mid.longitude == pytest.approx((-122.4194 + -118.2437) / 2)


def test_arithmetic_midpoint_single_point_is_itself():
    assert arithmetic_midpoint([SF]) == SF


def test_arithmetic_midpoint_requires_coordinates():
    with pytest.raises(InvalidInputError):
        arithmetic_midpoint([])


def test_interpolate_fraction():
    p = interpolate(Coordinate(0, 0), Coordinate(10, 20), 0.25)
    assert p.latitude == pytest.approx(2.5)
    assert p.longitude == pytest.approx(5.0)


def test_single_step_half_distance_is_straight_line_midpoint():
    a, b = Coordinate(40.0, -74.0), Coordinate(42.0, -70.0)
    step = RouteStep(5000, a, b)
    mid = interpolate_along_route([step], 2500)
    expected = arithmetic_midpoint([a, b])
    assert mid.latitude == pytest.approx(expected.latitude)
    assert mid.longitude == pytest.approx(expected.longitude)


@pytest.mark.parametrize("target, expected", [
    (0, (0, 0)),
    (50, (0, 0.5)),
    (100, (0, 1)),
    (150, (0, 1.5)),
    (300, (0, 3)),
    (350, (0.5, 3)),
])
def test_interpolate_along_multi_step_route(target, expected):
    p = interpolate_along_route(EAST_ROUTE, target)
    assert (p.latitude, p.longitude) == pytest.approx(expected)


def test_target_past_route_end_returns_last_step_end():
    assert interpolate_along_route(EAST_ROUTE, 10_000) == Coordinate(1, 3)


def test_negative_target_clamps_to_route_start():
    assert interpolate_along_route(EAST_ROUTE, -5) == Coordinate(0, 0)


def test_zero_length_step_does_not_divide_by_zero():
    steps = [
        RouteStep(0, Coordinate(0, 0), Coordinate(0, 0)),
        RouteStep(100, Coordinate(0, 0), Coordinate(0, 1)),
    ]
    assert interpolate_along_route(steps, 0) == Coordinate(0, 0)
    assert interpolate_along_route(steps, 50).longitude == pytest.approx(0.5)


def test_interpolation_is_monotonic_along_route():
    # the route only ever moves east then north, so neither axis may go backwards
    previous = interpolate_along_route(EAST_ROUTE, 0)
    for target in range(0, 401, 10):
        point = interpolate_along_route(EAST_ROUTE, target)
        assert point.longitude >= previous.longitude - 1e-12
        assert point.latitude >= previous.latitude - 1e-12
        previous = point


def test_interpolate_along_empty_route_raises():
    with pytest.raises(InvalidInputError):
        interpolate_along_route([], 10)


def test_route_length():
    assert route_length(EAST_ROUTE) == 400
    assert route_length([]) == 0


def test_haversine_distance_sf_to_la():
    meters = haversine_distance(SF, LA)
    assert 555_000 < meters < 563_000


def test_haversine_distance_same_point_is_zero():
    assert haversine_distance(SF, SF) == pytest.approx(0.0)


@pytest.mark.parametrize("lat, lng", [
    (91, 0),
    (-90.5, 0),
    (0, 181),
    (float("nan"), 0),
    (0, math.inf),
    ("north", 0),
    (None, 0),
])
def test_coordinate_rejects_invalid_values(lat, lng):
    with pytest.raises(InvalidInputError):
        Coordinate(lat, lng)


def test_coordinate_from_dict_accepts_both_spellings():
    assert Coordinate.from_dict({"lat": 1, "lng": 2}) == Coordinate(1.0, 2.0)
    assert Coordinate.from_dict({"latitude": 1, "longitude": 2}) == Coordinate(1.0, 2.0)
    with pytest.raises(InvalidInputError):
        Coordinate.from_dict({"lat": 1})


def test_coordinate_serialisation():
    c = Coordinate("37.5", -122)
    assert c.to_dict() == {"lat": 37.5, "lng": -122.0}
    assert c.as_param() == "37.5,-122.0"
