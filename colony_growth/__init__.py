from .clusters import ClusterStats, analyze
from .colony_model import ColonyModel, StepMetrics, StepResult, initialize, step
from .diffusion import diffuse
from .errors import ColonyError, InvalidLocation, InvalidParameter, OccupiedSite
from .grid import (
    CellRecord,
    CellState,
    Grid,
    GridCell,
    RootColony,
    expand_grid,
    place_cell,
    remove_cell,
    set_nutrient_level,
)
from .params import Params, build_params, load_params
from .random_utils import Rng
