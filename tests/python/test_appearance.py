from __future__ import annotations

import math

import pytest
from pygame.math import Vector2

from flocking.sim.systems.appearance import glyph_vertices, velocity_color


@pytest.mark.parametrize(
    "velocity",
    [Vector2(1, 0), Vector2(-1, 0), Vector2(0, 1), Vector2(0, -1), Vector2(3, -4), Vector2()],
)
def test_color_channels_stay_in_palette(velocity):
    red, green, blue = velocity_color(velocity)
    assert 0.2 <= red <= 0.6
    assert 0.2 <= green <= 0.6
    assert 0.6 <= blue <= 1.0


def test_color_depends_only_on_direction():
    assert velocity_color(Vector2(2, 1)) == pytest.approx(velocity_color(Vector2(6, 3)))


def test_glyph_points_up_for_zero_heading():
    tip, left, right = glyph_vertices(Vector2(10, 10), 0.0, base=8.0, height=13.0)

    assert tip == Vector2(10, 3.5)
    assert left == Vector2(6, 16.5)
    assert right == Vector2(14, 16.5)


def test_glyph_rotates_with_heading():
    tip, left, right = glyph_vertices(Vector2(0, 0), math.pi / 2, base=8.0, height=13.0)

    assert tip.x == pytest.approx(6.5)
    assert tip.y == pytest.approx(0.0)
    assert (left + right).x / 2 == pytest.approx(-6.5)
    assert left.distance_to(right) == pytest.approx(8.0)
