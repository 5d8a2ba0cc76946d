"""Pure helpers for renderers: glyph geometry and velocity tinting."""

from __future__ import annotations

import math

from pygame.math import Vector2

from ..utils.math2d import _clamp_value, _safe_normalize_xy


def velocity_color(velocity: Vector2) -> tuple[float, float, float]:
    """
    Map a velocity direction to an RGB triple in [0, 1].

    The unit direction is treated as an xy chromaticity pair (Y = 1) and run
    through an XYZ -> RGB style matrix. Channels are clamped so every boid
    stays in the blue family. Zero velocity maps to the neutral centre.
    """

    direction = _safe_normalize_xy(velocity.x, velocity.y)
    x = (direction.x + 1.0) * 0.5
    y = max(1e-6, (direction.y + 1.0) * 0.5)
    big_y = 1.0
    big_x = x * (big_y / y)
    big_z = (1.0 - x - y) * (big_y / y)
    red = _clamp_value(1.3707 * big_x - 0.9001 * big_y - 0.4706 * big_z, 0.2, 0.6)
    green = _clamp_value(-0.5139 * big_x + 1.4253 * big_y + 0.0806 * big_z, 0.2, 0.6)
    blue = _clamp_value(1.0053 * big_x - 1.807 * big_y + 2.0094 * big_z, 0.6, 1.0)
    return red, green, blue


def glyph_vertices(position: Vector2, heading: float, base: float, height: float) -> tuple[Vector2, Vector2, Vector2]:
    """Tip, left and right corners of a triangle centred on ``position`` pointing along ``heading``."""
    sin_h = math.sin(heading)
    cos_h = math.cos(heading)
    half_base = base * 0.5
    half_height = height * 0.5
    tip = Vector2(position.x + sin_h * half_height, position.y - cos_h * half_height)
    left = Vector2(
        position.x - cos_h * half_base - sin_h * half_height,
        position.y - sin_h * half_base + cos_h * half_height,
    )
    right = Vector2(
        position.x + cos_h * half_base - sin_h * half_height,
        position.y + sin_h * half_base + cos_h * half_height,
    )
    return tip, left, right
