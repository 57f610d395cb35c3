from __future__ import annotations

import pytest

from colony_growth.grid import CellState, RootColony, create_cell, create_initial_grid
from colony_growth.params import Params
from colony_growth.random_utils import Rng


COLONY = RootColony(id="colony-a", color="#22c55e")


@pytest.fixture
def params() -> Params:
    """Always-viable, always-dividing cells that never mutate."""
    return Params(
        width=10,
        height=10,
        initial_cell_count=0,
        initial_growth_rate=1.0,
        initial_mutation_chance=0.0,
        survival_threshold=0.0,
    )


@pytest.fixture
def rng() -> Rng:
    return Rng(1234)


@pytest.fixture
def grid(params):
    return create_initial_grid(params.width, params.height, params)


@pytest.fixture
def put_cell(params):
    def _put(grid, x, y, mutated=False, **changes):
        cell = create_cell(x, y, COLONY, params)
        if mutated:
            cell.state = CellState.MUTATED
        for key, value in changes.items():
            setattr(cell, key, value)
        grid.sites[y][x].cell = cell
        return cell

    return _put
