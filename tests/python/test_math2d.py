from __future__ import annotations

import math
import random

import pytest
from pygame.math import Vector2

from flocking.sim.utils.math2d import (
    _clamp_length_xy_f,
    _heading_from_velocity,
    _safe_normalize_xy,
    toroidal_distance,
    toroidal_offset,
    wrap_coordinate,
)


def test_toroidal_offset_is_antisymmetric_and_bounded():
    rng = random.Random(99)
    width, height = 120.0, 80.0
    for _ in range(500):
        a = Vector2(rng.uniform(0, width), rng.uniform(0, height))
        b = Vector2(rng.uniform(0, width), rng.uniform(0, height))
        ab = toroidal_offset(a, b, width, height)
        ba = toroidal_offset(b, a, width, height)
        assert ab.x == pytest.approx(-ba.x)
        assert ab.y == pytest.approx(-ba.y)
        assert -width / 2 <= ab.x <= width / 2
        assert -height / 2 <= ab.y <= height / 2


def test_toroidal_offset_at_exact_half_surface_stays_symmetric():
    a = Vector2(0.0, 0.0)
    b = Vector2(50.0, 25.0)
    ab = toroidal_offset(a, b, 100.0, 50.0)
    ba = toroidal_offset(b, a, 100.0, 50.0)
    assert ab == -ba
    assert abs(ab.x) == 50.0


def test_toroidal_offset_takes_short_way_around():
    offset = toroidal_offset(Vector2(1.0, 99.0), Vector2(99.0, 1.0), 100.0, 100.0)
    assert offset.x == pytest.approx(2.0)
    assert offset.y == pytest.approx(-2.0)
    assert toroidal_distance(Vector2(1.0, 99.0), Vector2(99.0, 1.0), 100.0, 100.0) == pytest.approx(math.sqrt(8.0))


@pytest.mark.parametrize("policy", ["modulo", "snap"])
def test_wrap_inside_is_noop(policy):
    for value in (0.0, 0.25, 50.0, 99.999):
        assert wrap_coordinate(value, 100.0, policy) == value


@pytest.mark.parametrize("policy", ["modulo", "snap"])
def test_wrap_upper_edge_maps_to_zero(policy):
    assert wrap_coordinate(100.0, 100.0, policy) == 0.0


def test_modulo_wrap_below_zero_maps_near_upper_bound():
    wrapped = wrap_coordinate(-1e-3, 100.0)
    assert wrapped == pytest.approx(100.0 - 1e-3)
    assert wrapped < 100.0


def test_modulo_wrap_never_returns_the_dimension():
    assert wrap_coordinate(-1e-20, 100.0) == 0.0


def test_modulo_wrap_handles_multiple_laps():
    assert wrap_coordinate(250.0, 100.0) == pytest.approx(50.0)
    assert wrap_coordinate(-130.0, 100.0) == pytest.approx(70.0)


def test_snap_wrap_jumps_to_opposite_edge():
    assert wrap_coordinate(-1e-3, 100.0, "snap") == 100.0
    assert wrap_coordinate(103.0, 100.0, "snap") == 0.0


def test_clamp_length_rescales_only_when_too_long():
    assert _clamp_length_xy_f(3.0, 4.0, 10.0) == (3.0, 4.0)
    x, y = _clamp_length_xy_f(3000.0, 4000.0, 6.0)
    assert math.hypot(x, y) == pytest.approx(6.0)
    assert x / y == pytest.approx(0.75)


def test_safe_normalize_of_zero_is_zero():
    assert _safe_normalize_xy(0.0, 0.0) == Vector2()


def test_heading_zero_points_up_on_screen():
    assert _heading_from_velocity(Vector2(0.0, -1.0)) == pytest.approx(0.0)
    assert _heading_from_velocity(Vector2(1.0, 0.0)) == pytest.approx(math.pi / 2)
    assert abs(_heading_from_velocity(Vector2(0.0, 1.0))) == pytest.approx(math.pi)
