from __future__ import annotations

import math

from pygame.math import Vector2


def _safe_normalize_xy(x: float, y: float) -> Vector2:
    magnitude_sq = x * x + y * y
    if magnitude_sq < 1e-10:
        return Vector2()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def _clamp_length_xy_f(x: float, y: float, max_length: float) -> tuple[float, float]:
    if max_length <= 0.0:
        return 0.0, 0.0
    magnitude_sq = x * x + y * y
    max_sq = max_length * max_length
    if magnitude_sq <= max_sq:
        return x, y
    if magnitude_sq <= 1e-18:
        return 0.0, 0.0
    inv = max_length / math.sqrt(magnitude_sq)
    return x * inv, y * inv


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def _heading_from_velocity(vector: Vector2) -> float:
    return _heading_from_velocity_xy(vector.x, vector.y)


def _heading_from_velocity_xy(x: float, y: float) -> float:
    # 0 points up on screen (y grows downward), clockwise positive.
    return math.atan2(x, -y)


def toroidal_delta(delta: float, size: float) -> float:
    half = size * 0.5
    if delta > half:
        return delta - size
    if delta < -half:
        return delta + size
    return delta


def toroidal_offset_xy(ax: float, ay: float, bx: float, by: float, width: float, height: float) -> tuple[float, float]:
    return toroidal_delta(ax - bx, width), toroidal_delta(ay - by, height)


def toroidal_offset(a: Vector2, b: Vector2, width: float, height: float) -> Vector2:
    """Shortest signed displacement from ``b`` to ``a`` on a ``width`` x ``height`` torus."""
    dx, dy = toroidal_offset_xy(a.x, a.y, b.x, b.y, width, height)
    return Vector2(dx, dy)


def toroidal_distance(a: Vector2, b: Vector2, width: float, height: float) -> float:
    dx, dy = toroidal_offset_xy(a.x, a.y, b.x, b.y, width, height)
    return math.hypot(dx, dy)


def wrap_coordinate(value: float, size: float, policy: str = "modulo") -> float:
    if policy == "snap":
        if value >= size:
            return 0.0
        if value < 0.0:
            return size
        return value
    if 0.0 <= value < size:
        return value
    wrapped = value % size
    # -tiny % size rounds up to size itself
    if wrapped >= size:
        wrapped -= size
    return wrapped
