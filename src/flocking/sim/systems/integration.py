from __future__ import annotations

import math
from typing import TYPE_CHECKING

from ..utils.math2d import _clamp_length_xy_f, _heading_from_velocity_xy, wrap_coordinate

if TYPE_CHECKING:
    from ..core.agent import Boid
    from ..core.config import SimulationConfig


def integrate(boid: Boid, delta_x: float, delta_y: float, config: SimulationConfig) -> None:
    vel_x = boid.velocity.x + delta_x
    vel_y = boid.velocity.y + delta_y
    speed_sq = vel_x * vel_x + vel_y * vel_y
    if speed_sq > 1e-12:
        boid.heading = _heading_from_velocity_xy(vel_x, vel_y)
        drive = config.forward_drive / math.sqrt(speed_sq)
        vel_x += vel_x * drive
        vel_y += vel_y * drive
    vel_x, vel_y = _clamp_length_xy_f(vel_x, vel_y, config.max_speed)
    boid.velocity.update(vel_x, vel_y)
    boid.position.update(
        wrap_coordinate(boid.position.x + vel_x, config.width, config.edge_policy),
        wrap_coordinate(boid.position.y + vel_y, config.height, config.edge_policy),
    )
