"""
Cell lifecycle engine.

One pass over the grid in row-major order (y outer, x inner). Each living
cell goes through, in this order:

1) mutation          Healthy -> Mutated once, scaling its parameters
2) age death         probability ramps from 0 at age 50 to 1 at age 150
3) consumption       growth_rate * consumption_rate taken from its site;
                     it dies if either pre-consumption level was below
                     its survival threshold (the debit is kept)
4) division          with probability growth_rate, into a random empty
                     Moore neighbor; the offspring copies the parent
5) aging             age += 1

The grid is modified in place; callers that need the previous grid keep
their own copy (see colony_model.step).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Set

from .grid import RESOURCES, CellRecord, CellState, Coord, Grid, GridCell
from .params import Params
from .random_utils import Rng


# ============================================================
# CONFIG
# ============================================================

AGE_START_DEATH = 50
BASE_LIFESPAN = 100

MUTATION_GROWTH_FACTOR = 1.2
MUTATION_CONSUMPTION_FACTOR = 1.5
MUTATION_THRESHOLD_FACTOR = 2.0


@dataclass
class LifecycleCounts:
    healthy: int = 0
    mutated: int = 0
    births: int = 0
    mutations: int = 0
    age_deaths: int = 0
    starvation_deaths: int = 0

    @property
    def total(self) -> int:
        return self.healthy + self.mutated

    def tally(self, cell: CellRecord) -> None:
        if cell.state is CellState.MUTATED:
            self.mutated += 1
        elif cell.state is CellState.HEALTHY:
            self.healthy += 1


# ============================================================
# PER-CELL RULES
# ============================================================

def attempt_mutation(cell: CellRecord, rng: Rng) -> bool:
    if cell.state is not CellState.HEALTHY:
        return False
    if not rng.check_probability(cell.mutation_probability):
        return False
    cell.state = CellState.MUTATED
    cell.growth_rate *= MUTATION_GROWTH_FACTOR
    for name in RESOURCES:
        use = cell.uptake(name)
        use.consumption_rate *= MUTATION_CONSUMPTION_FACTOR
        use.survival_threshold *= MUTATION_THRESHOLD_FACTOR
    return True


def age_death_probability(age: int) -> float:
    if age < AGE_START_DEATH:
        return 0.0
    return min(1.0, (age - AGE_START_DEATH) / BASE_LIFESPAN)


def attempt_age_death(cell: CellRecord, rng: Rng) -> bool:
    p = age_death_probability(cell.age)
    if p <= 0.0:
        return False
    return rng.check_probability(p)


def consume(cell: CellRecord, site: GridCell) -> bool:
    """Debit the site's resources for this cell; True if the cell stays viable."""
    viable = True
    for name in RESOURCES:
        use = cell.uptake(name)
        field = site.nutrient.resource(name)
        if field.level < use.survival_threshold:
            viable = False
        field.level = max(0.0, field.level - cell.growth_rate * use.consumption_rate)
    return viable


def empty_neighbors(grid: Grid, x: int, y: int) -> List[Coord]:
    return [(nx, ny) for nx, ny in grid.neighbors(x, y) if grid.sites[ny][nx].cell is None]


def spawn_offspring(parent: CellRecord, x: int, y: int) -> CellRecord:
    """Offspring keeps the parent's colony, state and current parameters."""
    return parent.copy(x=x, y=y, age=0)


def attempt_division(grid: Grid, cell: CellRecord, rng: Rng) -> Optional[CellRecord]:
    """Place an offspring next to cell; None if the roll fails or no room."""
    if not rng.check_probability(cell.growth_rate):
        return None
    free = empty_neighbors(grid, cell.x, cell.y)
    if not free:
        return None
    x, y = rng.choice(free)
    child = spawn_offspring(cell, x, y)
    grid.sites[y][x].cell = child
    return child


def _vacate(site: GridCell) -> None:
    site.cell.state = CellState.DEAD
    site.cell = None


# ============================================================
# GRID PASS
# ============================================================

def step_cells(grid: Grid, params: Params, rng: Rng) -> LifecycleCounts:
    """
    Advance every living cell by one step, in place.

    Newborns occupy their site immediately. Unless
    params.offspring_act_same_step is set they are not processed until the
    next pass; either way they are included in the returned tally.
    """
    counts = LifecycleCounts()
    newborn: List[CellRecord] = []
    newborn_ids: Set[int] = set()
    processed: Set[int] = set()

    for site in grid:
        cell = site.cell
        if cell is None or not cell.is_alive:
            continue
        if id(cell) in newborn_ids and not params.offspring_act_same_step:
            continue
        processed.add(id(cell))

        if attempt_mutation(cell, rng):
            counts.mutations += 1

        if attempt_age_death(cell, rng):
            _vacate(site)
            counts.age_deaths += 1
            continue

        if not consume(cell, site):
            _vacate(site)
            counts.starvation_deaths += 1
            continue

        child = attempt_division(grid, cell, rng)
        if child is not None:
            newborn.append(child)
            newborn_ids.add(id(child))
            counts.births += 1

        cell.age += 1
        counts.tally(cell)

    # a site can change hands within a pass, so newborns are tracked by record
    for child in newborn:
        if id(child) not in processed and grid.sites[child.y][child.x].cell is child:
            counts.tally(child)

    return counts
