"""
Grid data model and grid manager.

The grid is a row-major list of rows of GridCell sites. Each site holds at
most one living CellRecord plus its oxygen and glucose fields. "No cell" is
the only way a site can be empty: dead cells are never left in place.

Grid manager duties:
- allocate a fresh grid from Params
- seed founder colonies at distinct random empty sites
- expand the grid when density gets too high, re-centering the old contents
- copy-on-write edit operations used by the host (place/remove/set level)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterator, List, Optional, Tuple

import numpy as np

from .errors import InvalidLocation, InvalidParameter, OccupiedSite
from .params import Params
from .random_utils import Rng

logger = logging.getLogger(__name__)


# ============================================================
# CONFIG
# ============================================================

RESOURCES = ("oxygen", "glucose")

COLONY_PALETTE = ["#22c55e", "#ef4444", "#3b82f6", "#f59e0b", "#8b5cf6", "#ec4899"]

SEED_ATTEMPTS = 1000  # random draws per founder before seeding gives up

Coord = Tuple[int, int]


# ============================================================
# DATA STRUCTURES
# ============================================================

class CellState(Enum):
    HEALTHY = "HEALTHY"
    MUTATED = "MUTATED"
    DEAD = "DEAD"  # only while the lifecycle engine is removing a cell


@dataclass
class ResourceField:
    level: float
    diffusion_rate: float


@dataclass
class NutrientState:
    oxygen: ResourceField
    glucose: ResourceField

    def resource(self, name: str) -> ResourceField:
        if name not in RESOURCES:
            raise InvalidParameter(f"Unknown resource {name!r}; expected one of {RESOURCES}")
        return getattr(self, name)

    def copy(self) -> "NutrientState":
        return NutrientState(oxygen=replace(self.oxygen), glucose=replace(self.glucose))


@dataclass
class ResourceUse:
    consumption_rate: float
    survival_threshold: float


@dataclass
class CellRecord:
    x: int
    y: int
    root_colony_id: str
    color: str
    state: CellState
    age: int
    growth_rate: float
    mutation_probability: float
    oxygen: ResourceUse
    glucose: ResourceUse

    @property
    def is_mutated(self) -> bool:
        return self.state is CellState.MUTATED

    @property
    def is_alive(self) -> bool:
        return self.state is not CellState.DEAD

    def uptake(self, name: str) -> ResourceUse:
        return getattr(self, name)

    def copy(self, **changes) -> "CellRecord":
        clone = replace(self, oxygen=replace(self.oxygen), glucose=replace(self.glucose))
        for key, value in changes.items():
            setattr(clone, key, value)
        return clone


@dataclass
class GridCell:
    x: int
    y: int
    cell: Optional[CellRecord]
    nutrient: NutrientState

    def copy(self) -> "GridCell":
        return GridCell(
            x=self.x,
            y=self.y,
            cell=self.cell.copy() if self.cell is not None else None,
            nutrient=self.nutrient.copy(),
        )


@dataclass(frozen=True)
class RootColony:
    id: str
    color: str


class Grid:
    """Fixed-size 2-D array of sites, indexed as sites[y][x]."""

    def __init__(self, sites: List[List[GridCell]]):
        if not sites or not sites[0]:
            raise InvalidParameter("a grid needs at least one site")
        self.sites = sites

    @property
    def height(self) -> int:
        return len(self.sites)

    @property
    def width(self) -> int:
        return len(self.sites[0])

    @property
    def capacity(self) -> int:
        return self.width * self.height

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def site(self, x: int, y: int) -> GridCell:
        if not self.in_bounds(x, y):
            raise InvalidLocation(x, y, self.width, self.height)
        return self.sites[y][x]

    def neighbors(self, x: int, y: int) -> List[Coord]:
        """Moore neighborhood, clipped at the edges (no wraparound)."""
        out = []
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                if dx == 0 and dy == 0:
                    continue
                nx, ny = x + dx, y + dy
                if 0 <= nx < self.width and 0 <= ny < self.height:
                    out.append((nx, ny))
        return out

    def __iter__(self) -> Iterator[GridCell]:
        """Row-major: y outer, x inner."""
        for row in self.sites:
            yield from row

    def living_cells(self) -> Iterator[CellRecord]:
        for site in self:
            if site.cell is not None and site.cell.is_alive:
                yield site.cell

    def cell_count(self) -> int:
        return sum(1 for _ in self.living_cells())

    def density(self) -> float:
        return self.cell_count() / self.capacity

    def levels(self, resource: str) -> np.ndarray:
        return np.array(
            [[site.nutrient.resource(resource).level for site in row] for row in self.sites],
            dtype=float,
        )

    def diffusion_rates(self, resource: str) -> np.ndarray:
        return np.array(
            [[site.nutrient.resource(resource).diffusion_rate for site in row] for row in self.sites],
            dtype=float,
        )

    def total_level(self, resource: str) -> float:
        return float(np.sum(self.levels(resource)))

    def state_array(self) -> np.ndarray:
        """(H, W) int8 array: 0 empty, 1 healthy, 2 mutated."""
        out = np.zeros((self.height, self.width), dtype=np.int8)
        for site in self:
            if site.cell is not None and site.cell.is_alive:
                out[site.y, site.x] = 2 if site.cell.is_mutated else 1
        return out

    def copy(self) -> "Grid":
        return Grid([[site.copy() for site in row] for row in self.sites])


# ============================================================
# ALLOCATION AND SEEDING
# ============================================================

def default_nutrient(params: Params) -> NutrientState:
    return NutrientState(
        oxygen=ResourceField(params.initial_oxygen_level, params.oxygen_diffusion_rate),
        glucose=ResourceField(params.initial_glucose_level, params.glucose_diffusion_rate),
    )


def create_initial_grid(width: int, height: int, params: Params) -> Grid:
    """Empty grid with every site at the initial resource levels."""
    if width <= 0 or height <= 0:
        raise InvalidParameter(f"grid dimensions must be positive, got {width}x{height}")
    return Grid(
        [
            [GridCell(x=x, y=y, cell=None, nutrient=default_nutrient(params)) for x in range(width)]
            for y in range(height)
        ]
    )


def create_cell(x: int, y: int, colony: RootColony, params: Params) -> CellRecord:
    """New healthy cell at age 0 with the per-cell defaults from params."""
    return CellRecord(
        x=x,
        y=y,
        root_colony_id=colony.id,
        color=colony.color,
        state=CellState.HEALTHY,
        age=0,
        growth_rate=params.initial_growth_rate,
        mutation_probability=params.initial_mutation_chance,
        oxygen=ResourceUse(params.consumption_rate, params.survival_threshold),
        glucose=ResourceUse(params.consumption_rate, params.survival_threshold),
    )


def new_colony(rng: Rng, index: int) -> RootColony:
    """Fresh colony identity; colors cycle through the palette by index."""
    return RootColony(id=rng.new_id(), color=COLONY_PALETTE[index % len(COLONY_PALETTE)])


def find_empty_site(grid: Grid, rng: Rng, attempts: int = SEED_ATTEMPTS) -> Optional[Coord]:
    """Rejection-sample a random empty site; None once attempts run out."""
    for _ in range(attempts):
        x = rng.randint(0, grid.width - 1)
        y = rng.randint(0, grid.height - 1)
        if grid.sites[y][x].cell is None:
            return x, y
    return None


def seed_founders(grid: Grid, params: Params, rng: Rng) -> List[RootColony]:
    """
    Place params.initial_cell_count founders in place, one colony each.

    Seeding stops early (and logs a warning) when no empty site turns up
    within the attempt budget, so the returned list may be short.
    """
    colonies: List[RootColony] = []
    for i in range(params.initial_cell_count):
        pos = find_empty_site(grid, rng)
        if pos is None:
            logger.warning(
                "Could not place all initial cells: seeded %d of %d founders.",
                len(colonies),
                params.initial_cell_count,
            )
            break
        x, y = pos
        colony = new_colony(rng, i)
        grid.sites[y][x].cell = create_cell(x, y, colony, params)
        colonies.append(colony)
    return colonies


# ============================================================
# EXPANSION
# ============================================================

def needs_expansion(total_cells: int, grid: Grid, max_density_threshold: float) -> bool:
    return total_cells / grid.capacity > max_density_threshold


def expand_grid(old: Grid, params: Params, factor: int | None = None) -> Grid:
    """
    Allocate a grid `factor` times larger in each dimension and copy the old
    sites into its center, rewriting every copied cell's coordinates.
    """
    factor = params.expansion_factor if factor is None else factor
    new_width, new_height = old.width * factor, old.height * factor
    grid = create_initial_grid(new_width, new_height, params)

    offset_x = (new_width - old.width) // 2
    offset_y = (new_height - old.height) // 2
    for site in old:
        nx, ny = site.x + offset_x, site.y + offset_y
        target = grid.sites[ny][nx]
        target.nutrient = site.nutrient.copy()
        if site.cell is not None:
            target.cell = site.cell.copy(x=nx, y=ny)

    logger.info(
        "Grid expanded from %dx%d to %dx%d (offset %d,%d).",
        old.width, old.height, new_width, new_height, offset_x, offset_y,
    )
    return grid


# ============================================================
# EDIT OPERATIONS (copy-on-write)
# ============================================================

def place_cell(grid: Grid, x: int, y: int, params: Params, colony: RootColony) -> Grid:
    """Return a copy of grid with a new healthy cell of `colony` at (x, y)."""
    if grid.site(x, y).cell is not None:
        raise OccupiedSite(x, y)
    out = grid.copy()
    out.sites[y][x].cell = create_cell(x, y, colony, params)
    return out


def remove_cell(grid: Grid, x: int, y: int) -> Grid:
    """Return a copy of grid with (x, y) emptied; an empty site is a no-op."""
    grid.site(x, y)
    out = grid.copy()
    out.sites[y][x].cell = None
    return out


def set_nutrient_level(grid: Grid, x: int, y: int, resource: str, value: float) -> Grid:
    """Return a copy of grid with one resource level at (x, y) replaced."""
    site = grid.site(x, y)
    site.nutrient.resource(resource)
    if not value >= 0:
        raise InvalidParameter(f"{resource} level must be a non-negative number, got {value}")
    out = grid.copy()
    out.sites[y][x].nutrient.resource(resource).level = float(value)
    return out
