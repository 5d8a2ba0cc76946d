from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    neighbor_checks: int
    average_speed: float
    max_speed_observed: float
    average_neighbors: float
    occupied_cells: int = 0
    max_cell_occupancy: int = 0
    tick_duration_ms: float = 0.0
