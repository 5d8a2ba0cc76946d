from __future__ import annotations

import logging
import math
from time import perf_counter
from typing import Any, Dict, List, Optional, Sequence

from pygame.math import Vector2

from .agent import Boid
from .config import ConfigError, SimulationConfig
from .rng import DeterministicRng
from .spatial_grid import SpatialGrid
from ..systems import appearance, integration, metrics as metrics_system, steering
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld
from ..utils.math2d import _heading_from_velocity

logger = logging.getLogger(__name__)


def _copy_boid(agent: Boid) -> Boid:
    return Boid(position=Vector2(agent.position), velocity=Vector2(agent.velocity), heading=agent.heading)


class FlockSimulator:
    def __init__(self, config: SimulationConfig, agents: Optional[Sequence[Boid]] = None):
        config.validate()
        if agents is not None and len(agents) == 0:
            raise ConfigError("a flock needs at least one boid")
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._grid = SpatialGrid(config.width, config.height, config.cell_size)
        self._agents: List[Boid] = []
        self._delta_x: List[float] = []
        self._delta_y: List[float] = []
        self._neighbor_offsets: List[Vector2] = []
        self._neighbor_velocities: List[Vector2] = []
        self._neighbor_dist_sq: List[float] = []
        self._metrics: TickMetrics | None = None
        # Explicit flocks are restored from this copy on reset; seeded flocks are re-bootstrapped.
        self._initial_agents: List[Boid] | None = None
        self._refresh_interaction_cache()
        if agents is None:
            self._bootstrap_population()
        else:
            self._initial_agents = [_copy_boid(agent) for agent in agents]
            self._agents.extend(agents)
        logger.info(
            "flock ready: %d boids on %.0fx%.0f torus, %dx%d cells, interaction radius %.2f",
            len(self._agents),
            config.width,
            config.height,
            self._grid.cols,
            self._grid.rows,
            self._interaction_radius,
        )

    @property
    def agents(self) -> List[Boid]:
        return self._agents

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def grid(self) -> SpatialGrid:
        return self._grid

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def max_interaction_radius(self) -> float:
        return self._interaction_radius

    def reset(self) -> None:
        self._agents.clear()
        self._grid.clear()
        self._neighbor_offsets.clear()
        self._neighbor_velocities.clear()
        self._neighbor_dist_sq.clear()
        self._rng.reset()
        self._metrics = None
        if self._initial_agents is None:
            self._bootstrap_population()
        else:
            self._agents.extend(_copy_boid(agent) for agent in self._initial_agents)

    def step(self, tick: int) -> TickMetrics:
        start = perf_counter()
        config = self._config
        agents = self._agents
        grid = self._grid

        grid.clear()
        for index, agent in enumerate(agents):
            grid.insert(index, agent.position, agent.velocity)

        # Deltas are buffered so every boid reads the velocities of the previous frame.
        count = len(agents)
        delta_x = self._delta_x
        delta_y = self._delta_y
        if len(delta_x) != count:
            delta_x[:] = [0.0] * count
            delta_y[:] = [0.0] * count
        offsets = self._neighbor_offsets
        velocities = self._neighbor_velocities
        dist_sq = self._neighbor_dist_sq
        radius = self._interaction_radius
        cell_offsets = self._interaction_cell_offsets
        neighbor_checks = 0

        for index, agent in enumerate(agents):
            neighbor_checks += grid.collect_neighbors(
                index,
                agent.position,
                radius,
                offsets,
                velocities,
                dist_sq,
                cell_offsets=cell_offsets,
            )
            delta_x[index], delta_y[index] = steering.compute_velocity_delta(
                config, agent.position, agent.velocity, offsets, velocities, dist_sq
            )

        speed_sum = 0.0
        fastest = 0.0
        for index, agent in enumerate(agents):
            integration.integrate(agent, delta_x[index], delta_y[index], config)
            speed = agent.velocity.length()
            speed_sum += speed
            if speed > fastest:
                fastest = speed

        elapsed_ms = (perf_counter() - start) * 1000.0
        stats = (count, 0.0 if count == 0 else speed_sum / count, fastest)
        metrics = metrics_system.create_metrics(tick, neighbor_checks, elapsed_ms, stats, grid.occupancy())
        self._metrics = metrics
        logger.debug(
            "tick %d: avg speed %.3f, neighbor checks %d, %.2f ms",
            tick,
            metrics.average_speed,
            neighbor_checks,
            elapsed_ms,
        )
        return metrics

    def snapshot(self, tick: int) -> Snapshot:
        config = self._config
        metrics = self._metrics if self._metrics is not None else self._snapshot_metrics_from_state(tick)
        agents_payload = [self._agent_snapshot(index, agent) for index, agent in enumerate(self._agents)]
        metadata = SnapshotMetadata(
            agent_count=len(self._agents),
            max_speed=config.max_speed,
            sim_dt=config.time_step,
            tick_rate=1.0 / config.time_step,
            seed=config.seed,
            edge_policy=config.edge_policy,
            config_version=config.config_version,
            boid_base=config.appearance.boid_base,
            boid_height=config.appearance.boid_height,
        )
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=agents_payload,
            world=SnapshotWorld(width=config.width, height=config.height),
            metadata=metadata,
        )

    def _bootstrap_population(self) -> None:
        config = self._config
        count = int(config.agent_count)
        # Coverage layout: one slot per boid, spread evenly so nobody starts overlapped.
        cols = max(1, int(math.ceil(math.sqrt(count * config.width / config.height))))
        rows = int(math.ceil(count / cols))
        spacing_x = config.width / cols
        spacing_y = config.height / rows
        for index in range(count):
            col = index % cols
            row = index // cols
            position = Vector2((col + 0.5) * spacing_x, (row + 0.5) * spacing_y)
            velocity = self._rng.next_unit_circle() * self._rng.next_range(0.0, config.max_speed)
            heading = _heading_from_velocity(velocity) if velocity.length_squared() > 1e-12 else 0.0
            self._agents.append(Boid(position=position, velocity=velocity, heading=heading))

    def _refresh_interaction_cache(self) -> None:
        self._interaction_radius = self._config.max_interaction_radius
        self._interaction_cell_offsets = self._grid.build_neighbor_cell_offsets(self._interaction_radius)

    def _agent_snapshot(self, index: int, agent: Boid) -> Dict[str, Any]:
        return {
            "index": index,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "heading": agent.heading,
            "speed": agent.velocity.length(),
            "color": list(appearance.velocity_color(agent.velocity)),
        }

    def _snapshot_metrics_from_state(self, tick: int) -> TickMetrics:
        speeds = [agent.velocity.length() for agent in self._agents]
        population = len(speeds)
        return TickMetrics(
            tick=tick,
            population=population,
            neighbor_checks=0,
            average_speed=0.0 if population == 0 else sum(speeds) / population,
            max_speed_observed=max(speeds, default=0.0),
            average_neighbors=0.0,
        )
