from __future__ import annotations

import math
from typing import List, Tuple

from pygame.math import Vector2

from .config import ConfigError

GridEntry = Tuple[int, Vector2, Vector2]
CellOffsets = List[Tuple[int, int]]


class SpatialGrid:
    """
    Uniform bucket grid over a ``width`` x ``height`` torus.

    Buckets live in one flat list indexed by ``col + row * cols`` and are
    truncated in place on ``clear`` so a long run does not reallocate them.
    Entries hold the agent index plus references to its position and velocity;
    the grid is only valid until the next ``clear``.
    """

    def __init__(self, width: float, height: float, cell_size: float) -> None:
        if width <= 0 or height <= 0:
            raise ConfigError(f"grid surface must have positive size, got {width}x{height}")
        if cell_size <= 0:
            raise ConfigError(f"cell_size must be positive, got {cell_size}")
        self._width = float(width)
        self._height = float(height)
        self._half_width = self._width * 0.5
        self._half_height = self._height * 0.5
        self._cell_size = float(cell_size)
        self._inv_cell_size = 1.0 / self._cell_size
        self._cols = max(1, int(math.ceil(self._width / self._cell_size)))
        self._rows = max(1, int(math.ceil(self._height / self._cell_size)))
        # A trailing partial cell is narrower than cell_size, so a short segment can cross one extra boundary.
        self._partial_col = self._cols * self._cell_size - self._width > 1e-9
        self._partial_row = self._rows * self._cell_size - self._height > 1e-9
        self._buckets: List[List[GridEntry]] = [[] for _ in range(self._cols * self._rows)]
        self._active: List[int] = []

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cell_size(self) -> float:
        return self._cell_size

    def __len__(self) -> int:
        buckets = self._buckets
        return sum(len(buckets[index]) for index in self._active)

    def clear(self) -> None:
        buckets = self._buckets
        for index in self._active:
            buckets[index].clear()
        self._active.clear()

    def insert(self, agent_index: int, position: Vector2, velocity: Vector2) -> None:
        index = self._bucket_index(position.x, position.y)
        bucket = self._buckets[index]
        if not bucket:
            self._active.append(index)
        bucket.append((agent_index, position, velocity))

    def build_neighbor_cell_offsets(self, radius: float) -> CellOffsets:
        if radius <= 0:
            return []
        col_offsets = self._axis_offsets(radius, self._cols, self._partial_col)
        row_offsets = self._axis_offsets(radius, self._rows, self._partial_row)
        return [(dx, dy) for dy in row_offsets for dx in col_offsets]

    def query_neighbors(self, agent_index: int, position: Vector2, radius: float) -> List[Tuple[Vector2, Vector2]]:
        offsets: List[Vector2] = []
        velocities: List[Vector2] = []
        dist_sq: List[float] = []
        self.collect_neighbors(agent_index, position, radius, offsets, velocities, dist_sq)
        return [(offset, Vector2(velocity)) for offset, velocity in zip(offsets, velocities)]

    def collect_neighbors(
        self,
        agent_index: int,
        position: Vector2,
        radius: float,
        out_offsets: List[Vector2],
        out_velocities: List[Vector2],
        out_dist_sq: List[float],
        out_indices: List[int] | None = None,
        cell_offsets: CellOffsets | None = None,
    ) -> int:
        """
        Fill the provided buffers with every other agent strictly closer than ``radius``.

        Offsets are toroidal (neighbor minus ``position``) and reuse the Vector2
        objects already in ``out_offsets``. Velocities are the stored references.
        ``cell_offsets`` may be passed from ``build_neighbor_cell_offsets(radius)``
        to skip rebuilding the scan window. Returns the neighbor count.
        """

        out_velocities.clear()
        out_dist_sq.clear()
        if out_indices is not None:
            out_indices.clear()
        if radius <= 0:
            del out_offsets[:]
            return 0
        if cell_offsets is None:
            cell_offsets = self.build_neighbor_cell_offsets(radius)

        pos_x = position.x
        pos_y = position.y
        base_col = int(math.floor(pos_x * self._inv_cell_size)) % self._cols
        base_row = int(math.floor(pos_y * self._inv_cell_size)) % self._rows
        radius_sq = radius * radius
        cols = self._cols
        rows = self._rows
        width = self._width
        height = self._height
        half_w = self._half_width
        half_h = self._half_height
        buckets = self._buckets
        append_offset = out_offsets.append
        append_velocity = out_velocities.append
        append_dist = out_dist_sq.append
        append_index = out_indices.append if out_indices is not None else None
        count = 0

        for dx, dy in cell_offsets:
            bucket = buckets[(base_col + dx) % cols + ((base_row + dy) % rows) * cols]
            if not bucket:
                continue
            for other_index, other_pos, other_vel in bucket:
                if other_index == agent_index:
                    continue
                offset_x = other_pos.x - pos_x
                if offset_x > half_w:
                    offset_x -= width
                elif offset_x < -half_w:
                    offset_x += width
                offset_y = other_pos.y - pos_y
                if offset_y > half_h:
                    offset_y -= height
                elif offset_y < -half_h:
                    offset_y += height
                dist_sq = offset_x * offset_x + offset_y * offset_y
                if dist_sq >= radius_sq:
                    continue
                if count < len(out_offsets):
                    out_offsets[count].update(offset_x, offset_y)
                else:
                    append_offset(Vector2(offset_x, offset_y))
                append_velocity(other_vel)
                append_dist(dist_sq)
                if append_index is not None:
                    append_index(other_index)
                count += 1

        del out_offsets[count:]
        return count

    def occupancy(self) -> Tuple[int, int]:
        if not self._active:
            return 0, 0
        buckets = self._buckets
        return len(self._active), max(len(buckets[index]) for index in self._active)

    def _bucket_index(self, x: float, y: float) -> int:
        col = int(math.floor(x * self._inv_cell_size)) % self._cols
        row = int(math.floor(y * self._inv_cell_size)) % self._rows
        return col + row * self._cols

    def _axis_offsets(self, radius: float, count: int, partial: bool) -> List[int]:
        cell_range = int(math.ceil(radius * self._inv_cell_size))
        if partial:
            cell_range += 1
        if 2 * cell_range + 1 >= count:
            # window covers the whole axis; visit each wrapped cell once
            return list(range(count))
        return list(range(-cell_range, cell_range + 1))
