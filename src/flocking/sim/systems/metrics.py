from __future__ import annotations

from typing import Tuple

from ..types.metrics import TickMetrics


def create_metrics(
    tick: int,
    neighbor_checks: int,
    duration_ms: float,
    stats: Tuple[int, float, float],
    occupancy: Tuple[int, int],
) -> TickMetrics:
    population, avg_speed, max_speed = stats
    occupied_cells, max_cell_occupancy = occupancy
    return TickMetrics(
        tick=tick,
        population=population,
        neighbor_checks=neighbor_checks,
        average_speed=avg_speed,
        max_speed_observed=max_speed,
        average_neighbors=0.0 if population == 0 else neighbor_checks / population,
        occupied_cells=occupied_cells,
        max_cell_occupancy=max_cell_occupancy,
        tick_duration_ms=duration_ms,
    )
