from __future__ import annotations

from typing import List, TYPE_CHECKING

from pygame.math import Vector2

if TYPE_CHECKING:
    from ..core.config import SimulationConfig


def compute_velocity_delta(
    config: SimulationConfig,
    position: Vector2,
    velocity: Vector2,
    neighbor_offsets: List[Vector2],
    neighbor_velocities: List[Vector2],
    neighbor_dist_sq: List[float],
) -> tuple[float, float]:
    """
    Net cohesion, alignment, separation and close-separation force for one boid.

    Every rule filters the same neighbor list by its own threshold in a single
    pass. A rule with no qualifying neighbor contributes nothing.
    """

    cohesion = config.cohesion
    alignment = config.alignment
    separation = config.separation
    close_separation = config.close_separation
    cohesion_sq = cohesion.threshold * cohesion.threshold
    alignment_sq = alignment.threshold * alignment.threshold
    separation_sq = separation.threshold * separation.threshold
    close_sq = close_separation.threshold * close_separation.threshold

    center_x = 0.0
    center_y = 0.0
    cohesion_count = 0
    heading_x = 0.0
    heading_y = 0.0
    alignment_count = 0
    push_x = 0.0
    push_y = 0.0
    close_push_x = 0.0
    close_push_y = 0.0

    for offset, other_velocity, dist_sq in zip(neighbor_offsets, neighbor_velocities, neighbor_dist_sq):
        if dist_sq < cohesion_sq:
            # neighbor position unwrapped next to ours
            center_x += position.x + offset.x
            center_y += position.y + offset.y
            cohesion_count += 1
        if dist_sq < alignment_sq:
            heading_x += other_velocity.x
            heading_y += other_velocity.y
            alignment_count += 1
        if dist_sq < separation_sq:
            push_x -= offset.x
            push_y -= offset.y
        if dist_sq < close_sq:
            close_push_x -= offset.x
            close_push_y -= offset.y

    delta_x = 0.0
    delta_y = 0.0
    if cohesion_count:
        inv = 1.0 / cohesion_count
        delta_x += (center_x * inv - position.x) / cohesion.factor
        delta_y += (center_y * inv - position.y) / cohesion.factor
    if alignment_count:
        inv = 1.0 / alignment_count
        delta_x += (heading_x * inv - velocity.x) / alignment.factor
        delta_y += (heading_y * inv - velocity.y) / alignment.factor
    delta_x += push_x / separation.factor + close_push_x / close_separation.factor
    delta_y += push_y / separation.factor + close_push_y / close_separation.factor
    return delta_x, delta_y


def perceived_center(position: Vector2, neighbor_offsets: List[Vector2]) -> Vector2:
    if not neighbor_offsets:
        return Vector2(position)
    center = Vector2()
    for offset in neighbor_offsets:
        center += position + offset
    return center / len(neighbor_offsets)
