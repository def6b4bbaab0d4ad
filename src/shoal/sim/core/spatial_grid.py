from __future__ import annotations

import math
from typing import TYPE_CHECKING, Callable, List, Sequence, Tuple

if TYPE_CHECKING:
    from .agent import Agent


class SpatialGrid:
    """Uniform grid of agent-index buckets covering the viewport.

    Query radii must not exceed ``cell_size``: only the 3x3 block of cells
    around the querying agent is scanned.
    """

    def __init__(self, width: float, height: float, cell_size: float) -> None:
        self._cell_size = cell_size
        self._cells: List[List[int]] = []
        self._active_cells: List[int] = []
        self._grid_w = 0
        self._grid_h = 0
        self.resize(width, height)

    @property
    def cell_size(self) -> float:
        return self._cell_size

    @property
    def dimensions(self) -> Tuple[int, int]:
        return self._grid_w, self._grid_h

    def resize(self, width: float, height: float) -> None:
        self._grid_w = max(1, int(math.ceil(width / self._cell_size)))
        self._grid_h = max(1, int(math.ceil(height / self._cell_size)))
        self._cells = [[] for _ in range(self._grid_w * self._grid_h)]
        self._active_cells.clear()

    def clear(self) -> None:
        for cell in self._active_cells:
            self._cells[cell].clear()
        self._active_cells.clear()

    def rebuild(self, agents: Sequence["Agent"]) -> None:
        self.clear()
        cells = self._cells
        active = self._active_cells
        grid_w = self._grid_w
        for index, agent in enumerate(agents):
            cx, cy = self.cell_of(agent.position.x, agent.position.y)
            bucket = cells[cy * grid_w + cx]
            if not bucket:
                active.append(cy * grid_w + cx)
            bucket.append(index)

    def cell_of(self, x: float, y: float) -> Tuple[int, int]:
        cx = int(math.floor(x / self._cell_size))
        cy = int(math.floor(y / self._cell_size))
        return (
            max(0, min(self._grid_w - 1, cx)),
            max(0, min(self._grid_h - 1, cy)),
        )

    def bucket(self, cx: int, cy: int) -> List[int]:
        return self._cells[cy * self._grid_w + cx]

    def collect_neighbors(
        self,
        agents: Sequence["Agent"],
        pos_x: float,
        pos_y: float,
        radius: float,
        out_indices: List[int],
        out_dist_sq: List[float],
        cap: int,
        exclude: int = -1,
    ) -> int:
        """
        Fill the buffers with indices of agents within ``radius`` of ``(pos_x, pos_y)``.

        Scans the 3x3 cell block around the point, skipping ``exclude``, and
        stops once ``cap`` neighbors were found. Returns the neighbor count.
        """

        out_indices.clear()
        out_dist_sq.clear()
        radius_sq = radius * radius
        base_x, base_y = self.cell_of(pos_x, pos_y)
        grid_w = self._grid_w
        grid_h = self._grid_h
        cells = self._cells
        count = 0

        for oy in (-1, 0, 1):
            yy = base_y + oy
            if yy < 0 or yy >= grid_h:
                continue
            for ox in (-1, 0, 1):
                xx = base_x + ox
                if xx < 0 or xx >= grid_w:
                    continue
                for other in cells[yy * grid_w + xx]:
                    if other == exclude:
                        continue
                    pos = agents[other].position
                    dx = pos.x - pos_x
                    dy = pos.y - pos_y
                    dist_sq = dx * dx + dy * dy
                    if dist_sq > radius_sq:
                        continue
                    out_indices.append(other)
                    out_dist_sq.append(dist_sq)
                    count += 1
                    if count >= cap:
                        return count
        return count

    def for_each_neighbor(
        self,
        agents: Sequence["Agent"],
        index: int,
        radius: float,
        visit: Callable[[int, float], None],
        cap: int,
    ) -> int:
        indices: List[int] = []
        dist_sq: List[float] = []
        origin = agents[index].position
        count = self.collect_neighbors(
            agents, origin.x, origin.y, radius, indices, dist_sq, cap, exclude=index
        )
        for other, d2 in zip(indices, dist_sq):
            visit(other, d2)
        return count
