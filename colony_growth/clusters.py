"""
Cluster analyzer.

Partitions the living cells into maximal 8-connected components with a
breadth-first search. Connectivity is purely spatial: colony and state do
not matter. A cluster counts as mutated if any member is mutated.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import List

import numpy as np

from .grid import CellState, Coord, Grid


@dataclass
class Cluster:
    members: List[Coord] = field(default_factory=list)
    mutated: bool = False

    @property
    def size(self) -> int:
        return len(self.members)


@dataclass(frozen=True)
class ClusterStats:
    total_clusters: int = 0
    healthy_clusters: int = 0
    mutated_clusters: int = 0
    largest_cluster: int = 0


def _alive(grid: Grid, x: int, y: int) -> bool:
    cell = grid.sites[y][x].cell
    return cell is not None and cell.state is not CellState.DEAD


def _bfs(grid: Grid, start: Coord, visited: np.ndarray) -> Cluster:
    cluster = Cluster()
    queue = deque([start])
    visited[start[1], start[0]] = True
    while queue:
        x, y = queue.popleft()
        cluster.members.append((x, y))
        if grid.sites[y][x].cell.state is CellState.MUTATED:
            cluster.mutated = True
        for nx, ny in grid.neighbors(x, y):
            if not visited[ny, nx] and _alive(grid, nx, ny):
                visited[ny, nx] = True
                queue.append((nx, ny))
    return cluster


def find_clusters(grid: Grid) -> List[Cluster]:
    """All clusters, in order of their first site in a row-major scan."""
    visited = np.zeros((grid.height, grid.width), dtype=bool)
    clusters = []
    for site in grid:
        if not visited[site.y, site.x] and _alive(grid, site.x, site.y):
            clusters.append(_bfs(grid, (site.x, site.y), visited))
    return clusters


def analyze(grid: Grid) -> ClusterStats:
    clusters = find_clusters(grid)
    mutated = sum(1 for c in clusters if c.mutated)
    return ClusterStats(
        total_clusters=len(clusters),
        healthy_clusters=len(clusters) - mutated,
        mutated_clusters=mutated,
        largest_cluster=max((c.size for c in clusters), default=0),
    )
