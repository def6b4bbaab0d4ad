from __future__ import annotations

import random

from pygame.math import Vector2

from shoal.sim.core.agent import Agent
from shoal.sim.core.spatial_grid import SpatialGrid


def _agent(idx: int, x: float, y: float) -> Agent:
    return Agent(id=idx, position=Vector2(x, y), velocity=Vector2(), size=4.0)


def test_neighbor_query_matches_bruteforce():
    rng = random.Random(3)
    agents = [_agent(i, rng.uniform(0, 1000), rng.uniform(0, 600)) for i in range(300)]
    grid = SpatialGrid(1000, 600, cell_size=100)
    grid.rebuild(agents)
    radius = 65.0
    out_indices: list[int] = []
    out_dist_sq: list[float] = []

    for index, agent in enumerate(agents):
        grid.collect_neighbors(
            agents, agent.position.x, agent.position.y, radius, out_indices, out_dist_sq, cap=10_000, exclude=index
        )
        brute = [
            j
            for j, other in enumerate(agents)
            if j != index and (other.position - agent.position).length_squared() <= radius * radius
        ]
        assert sorted(out_indices) == brute
        for j, dist_sq in zip(out_indices, out_dist_sq):
            assert dist_sq == (agents[j].position - agent.position).length_squared()


def test_neighbors_outside_block_are_not_visited():
    agents = [_agent(0, 150, 150), _agent(1, 290, 150), _agent(2, 310, 150)]
    grid = SpatialGrid(500, 500, cell_size=100)
    grid.rebuild(agents)
    out_indices: list[int] = []
    out_dist_sq: list[float] = []

    grid.collect_neighbors(agents, 150, 150, 500.0, out_indices, out_dist_sq, cap=100, exclude=0)

    # Agent 2 sits in column 3, outside the 3x3 block centred on column 1.
    assert out_indices == [1]


def test_neighbor_cap_short_circuits():
    agents = [_agent(i, 50 + i * 0.1, 50) for i in range(30)]
    grid = SpatialGrid(400, 400, cell_size=100)
    grid.rebuild(agents)
    out_indices: list[int] = []
    out_dist_sq: list[float] = []

    count = grid.collect_neighbors(agents, 50, 50, 60.0, out_indices, out_dist_sq, cap=18, exclude=0)

    assert count == 18
    assert len(out_indices) == 18
    assert 0 not in out_indices


def test_out_of_bounds_positions_clamp_to_edge_cells():
    grid = SpatialGrid(300, 200, cell_size=100)
    assert grid.dimensions == (3, 2)
    assert grid.cell_of(-50, -50) == (0, 0)
    assert grid.cell_of(350, 250) == (2, 1)

    agents = [_agent(0, -50, 50), _agent(1, 10, 50)]
    grid.rebuild(agents)
    found: list[int] = []
    grid.for_each_neighbor(agents, 1, 65.0, lambda other, _d2: found.append(other), cap=18)
    assert found == [0]


def test_rebuild_places_each_agent_in_exactly_one_bucket():
    rng = random.Random(11)
    agents = [_agent(i, rng.uniform(-60, 860), rng.uniform(-60, 660)) for i in range(120)]
    grid = SpatialGrid(800, 600, cell_size=100)
    for _ in range(3):
        for agent in agents:
            agent.position.x += rng.uniform(-40, 40)
            agent.position.y += rng.uniform(-40, 40)
        grid.rebuild(agents)
        grid_w, grid_h = grid.dimensions
        seen: list[int] = []
        for cy in range(grid_h):
            for cx in range(grid_w):
                seen.extend(grid.bucket(cx, cy))
        assert sorted(seen) == list(range(len(agents)))


def test_empty_grid_yields_no_visits():
    grid = SpatialGrid(300, 300, cell_size=100)
    grid.rebuild([])
    out_indices: list[int] = [7]
    out_dist_sq: list[float] = [1.0]

    assert grid.collect_neighbors([], 10, 10, 50.0, out_indices, out_dist_sq, cap=18) == 0
    assert out_indices == []
    assert out_dist_sq == []
