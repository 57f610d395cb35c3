from __future__ import annotations

from dataclasses import replace

import pytest

from colony_growth.grid import CellState, create_initial_grid
from colony_growth.lifecycle import (
    age_death_probability,
    attempt_age_death,
    attempt_division,
    attempt_mutation,
    consume,
    step_cells,
)
from colony_growth.random_utils import Rng


def test_mutation_scales_parameters_once(grid, put_cell, rng):
    cell = put_cell(grid, 2, 2, mutation_probability=1.0, growth_rate=0.5)
    cell.oxygen.consumption_rate = 0.4
    cell.glucose.consumption_rate = 0.2
    cell.oxygen.survival_threshold = 3.0
    cell.glucose.survival_threshold = 1.5

    assert attempt_mutation(cell, rng)
    assert cell.state is CellState.MUTATED
    assert cell.growth_rate == pytest.approx(0.6)
    assert cell.oxygen.consumption_rate == pytest.approx(0.6)
    assert cell.glucose.consumption_rate == pytest.approx(0.3)
    assert cell.oxygen.survival_threshold == pytest.approx(6.0)
    assert cell.glucose.survival_threshold == pytest.approx(3.0)

    assert not attempt_mutation(cell, rng)
    assert cell.growth_rate == pytest.approx(0.6)
    assert cell.oxygen.survival_threshold == pytest.approx(6.0)


def test_mutation_never_fires_at_zero_probability(grid, put_cell, rng):
    cell = put_cell(grid, 0, 0, mutation_probability=0.0)
    for _ in range(1000):
        attempt_mutation(cell, rng)
    assert cell.state is CellState.HEALTHY


@pytest.mark.parametrize(
    "age, expected",
    [(0, 0.0), (49, 0.0), (50, 0.0), (100, 0.5), (150, 1.0), (400, 1.0)],
)
def test_age_death_probability_ramp(age, expected):
    assert age_death_probability(age) == pytest.approx(expected)


def test_young_cells_never_die_of_age(grid, put_cell):
    rng = Rng(7)
    cell = put_cell(grid, 1, 1, age=49)
    assert not any(attempt_age_death(cell, rng) for _ in range(5000))


def test_old_cells_always_die_of_age(grid, put_cell):
    rng = Rng(7)
    cell = put_cell(grid, 1, 1, age=150)
    assert all(attempt_age_death(cell, rng) for _ in range(100))


def test_consumption_debits_site_and_floors_at_zero(grid, put_cell):
    cell = put_cell(grid, 3, 3, growth_rate=0.5)
    cell.oxygen.consumption_rate = 4.0
    cell.glucose.consumption_rate = 1000.0
    site = grid.sites[3][3]
    site.nutrient.oxygen.level = 10.0
    site.nutrient.glucose.level = 10.0

    assert consume(cell, site)
    assert site.nutrient.oxygen.level == pytest.approx(8.0)
    assert site.nutrient.glucose.level == 0.0


@pytest.mark.parametrize("seed", range(20))
def test_starving_cell_is_always_removed(grid, put_cell, params, seed):
    cell = put_cell(grid, 2, 2, growth_rate=0.05)
    for use in (cell.oxygen, cell.glucose):
        use.consumption_rate = 0.5
        use.survival_threshold = 5.0
    grid.sites[2][2].nutrient.glucose.level = 3.0

    counts = step_cells(grid, params, Rng(seed))

    assert grid.sites[2][2].cell is None
    assert counts.starvation_deaths == 1
    assert counts.total == 0
    # the debit is kept even though the cell died
    assert grid.sites[2][2].nutrient.glucose.level == pytest.approx(3.0 - 0.05 * 0.5)
    assert grid.sites[2][2].nutrient.oxygen.level == pytest.approx(100.0 - 0.05 * 0.5)


def test_threshold_is_checked_against_pre_consumption_level(grid, put_cell, rng):
    cell = put_cell(grid, 0, 0, growth_rate=1.0)
    cell.oxygen.survival_threshold = 5.0
    cell.oxygen.consumption_rate = 3.0
    site = grid.sites[0][0]
    site.nutrient.oxygen.level = 5.0

    assert consume(cell, site)
    assert site.nutrient.oxygen.level == pytest.approx(2.0)


def test_division_fails_when_all_neighbors_occupied(params, put_cell, rng):
    grid = create_initial_grid(3, 3, params)
    for y in range(3):
        for x in range(3):
            put_cell(grid, x, y)
    before = [[id(site.cell) for site in row] for row in grid.sites]

    assert attempt_division(grid, grid.sites[1][1].cell, rng) is None
    assert [[id(site.cell) for site in row] for row in grid.sites] == before


def test_division_only_targets_empty_neighbors(params, put_cell):
    grid = create_initial_grid(3, 3, params)
    for y in range(3):
        for x in range(3):
            if (x, y) != (2, 0):
                put_cell(grid, x, y)

    for seed in range(10):
        g = grid.copy()
        child = attempt_division(g, g.sites[1][1].cell, Rng(seed))
        assert (child.x, child.y) == (2, 0)
        assert g.sites[0][2].cell is child


def test_offspring_inherits_parent_state_and_parameters(grid, put_cell, rng):
    parent = put_cell(grid, 4, 4, mutated=True, growth_rate=1.0, age=30, mutation_probability=0.2)
    parent.oxygen.consumption_rate = 0.75
    parent.glucose.survival_threshold = 10.0

    child = attempt_division(grid, parent, rng)

    assert child is not None
    assert max(abs(child.x - 4), abs(child.y - 4)) == 1
    assert child.age == 0
    assert child.state is CellState.MUTATED
    assert child.root_colony_id == parent.root_colony_id
    assert child.color == parent.color
    assert child.growth_rate == parent.growth_rate
    assert child.mutation_probability == parent.mutation_probability
    assert child.oxygen.consumption_rate == 0.75
    assert child.glucose.survival_threshold == 10.0
    assert child.oxygen is not parent.oxygen


def test_single_founder_divides_once_in_one_step(grid, put_cell, params, rng):
    put_cell(grid, 5, 5)

    counts = step_cells(grid, params, rng)

    cells = list(grid.living_cells())
    assert len(cells) == 2
    assert counts.total == 2
    assert counts.births == 1
    assert grid.sites[5][5].cell.age == 1
    child = next(c for c in cells if (c.x, c.y) != (5, 5))
    assert max(abs(child.x - 5), abs(child.y - 5)) == 1
    assert child.age == 0


def test_same_step_offspring_can_act_when_enabled(params, put_cell):
    params = replace(params, offspring_act_same_step=True)
    grid = create_initial_grid(3, 3, params)
    put_cell(grid, 0, 0)

    counts = step_cells(grid, params, Rng(3))

    # every neighbor of (0, 0) comes later in the scan, so the child divides too
    assert grid.cell_count() >= 3
    assert counts.total == grid.cell_count()


@pytest.mark.parametrize("same_step", [False, True])
def test_tally_matches_living_cells(params, put_cell, same_step):
    params = replace(params, offspring_act_same_step=same_step, initial_growth_rate=0.6)
    grid = create_initial_grid(12, 12, params)
    for x, y in [(1, 1), (6, 6), (10, 3), (2, 9)]:
        put_cell(grid, x, y, growth_rate=0.6)
    rng = Rng(11)

    for _ in range(15):
        counts = step_cells(grid, params, rng)
        states = grid.state_array()
        assert counts.healthy == int((states == 1).sum())
        assert counts.mutated == int((states == 2).sum())


def test_mutated_cell_is_tallied_as_mutated_in_the_step_it_flips(grid, put_cell, params, rng):
    put_cell(grid, 0, 0, mutation_probability=1.0, growth_rate=0.0)

    counts = step_cells(grid, params, rng)

    assert counts.mutations == 1
    assert counts.mutated == 1
    assert counts.healthy == 0


@pytest.mark.parametrize("same_step", [False, True])
def test_birth_into_site_vacated_earlier_in_the_pass_is_tallied(params, put_cell, same_step):
    params = replace(params, offspring_act_same_step=same_step)
    grid = create_initial_grid(3, 1, params)
    starving = put_cell(grid, 0, 0)
    starving.oxygen.survival_threshold = 500.0
    put_cell(grid, 1, 0)
    put_cell(grid, 2, 0)

    counts = step_cells(grid, params, Rng(5))

    assert counts.starvation_deaths == 1
    assert counts.births == 1
    child = grid.sites[0][0].cell
    assert child is not None and child.age == 0
    assert counts.total == grid.cell_count() == 3


def test_age_death_skips_consumption_and_division(grid, put_cell, params, rng):
    put_cell(grid, 4, 4, age=150)

    counts = step_cells(grid, params, rng)

    site = grid.sites[4][4]
    assert site.cell is None
    assert counts.age_deaths == 1
    assert counts.births == 0
    assert counts.total == 0
    assert grid.cell_count() == 0
    assert site.nutrient.oxygen.level == 100.0
    assert site.nutrient.glucose.level == 100.0


@pytest.mark.parametrize("same_step", [False, True])
def test_tally_matches_living_cells_with_deaths(params, put_cell, same_step):
    params = replace(params, offspring_act_same_step=same_step)
    grid = create_initial_grid(12, 12, params)
    for i, (x, y) in enumerate([(1, 1), (6, 6), (10, 3), (2, 9), (7, 1)]):
        cell = put_cell(grid, x, y, growth_rate=0.6, age=40 + 20 * i)
        for use in (cell.oxygen, cell.glucose):
            use.consumption_rate = 5.0
            use.survival_threshold = 40.0
    rng = Rng(11)

    deaths = births = 0
    for _ in range(40):
        counts = step_cells(grid, params, rng)
        deaths += counts.age_deaths + counts.starvation_deaths
        births += counts.births
        states = grid.state_array()
        assert counts.healthy == int((states == 1).sum())
        assert counts.mutated == int((states == 2).sum())

    assert deaths > 0
    assert births > 0
