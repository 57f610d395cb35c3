"""
Colony growth model: cells competing for oxygen and glucose on a grid.

Per step:
- lifecycle pass (mutation, age death, consumption, division, aging)
- one diffusion pass over the resulting resource fields
- cluster analysis for reporting
- if density went above the threshold, the grid is expanded instead and
  that step reports nothing

`initialize` and `step` are the kernel: they take a grid and return a new
one, never touching their input. `ColonyModel` is the host that owns the
current grid between steps.

Usage
-----
$ python -m colony_growth.colony_model                  # small demo run
$ python -m colony_growth.colony_model --steps 300 --seed 7 --csv run.csv
$ python -m colony_growth.colony_model --config params.json --plot
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import asdict, dataclass, replace
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from matplotlib.colors import to_rgb

from .clusters import analyze
from .diffusion import diffuse
from .errors import InvalidParameter
from .grid import (
    Grid,
    RootColony,
    create_initial_grid,
    expand_grid,
    needs_expansion,
    new_colony,
    place_cell,
    remove_cell,
    seed_founders,
    set_nutrient_level,
)
from .lifecycle import LifecycleCounts, step_cells
from .params import Params, build_params, load_params
from .random_utils import Rng

logger = logging.getLogger(__name__)

MUTATED_SHADE = 0.55  # brightness factor for mutated cells in as_rgb


@dataclass(frozen=True)
class StepMetrics:
    step: int
    healthy: int
    mutated: int
    total: int
    total_clusters: int
    healthy_clusters: int
    mutated_clusters: int

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class StepResult:
    grid: Grid
    metrics: Optional[StepMetrics]
    expanded: bool
    events: LifecycleCounts


# ============================================================
# KERNEL INTERFACE
# ============================================================

def initialize(params: Params, rng: Rng | None = None) -> Tuple[Grid, List[RootColony]]:
    params.validate()
    rng = rng or Rng(params.seed)
    grid = create_initial_grid(params.width, params.height, params)
    colonies = seed_founders(grid, params, rng)
    return grid, colonies


def step(grid: Grid, params: Params, rng: Rng, step_number: int) -> StepResult:
    """
    Run one step on a copy of `grid`.

    step_number is the number reported in the metrics of a normal step.
    """
    next_grid = grid.copy()
    events = step_cells(next_grid, params, rng)
    next_grid = diffuse(next_grid, copy_cells=False)

    if needs_expansion(events.total, next_grid, params.max_density_threshold):
        expanded = expand_grid(next_grid, params)
        return StepResult(grid=expanded, metrics=None, expanded=True, events=events)

    clusters = analyze(next_grid)
    metrics = StepMetrics(
        step=step_number,
        healthy=events.healthy,
        mutated=events.mutated,
        total=events.total,
        total_clusters=clusters.total_clusters,
        healthy_clusters=clusters.healthy_clusters,
        mutated_clusters=clusters.mutated_clusters,
    )
    logger.debug(
        "step %d: healthy=%d mutated=%d births=%d deaths=%d clusters=%d",
        step_number, events.healthy, events.mutated, events.births,
        events.age_deaths + events.starvation_deaths, clusters.total_clusters,
    )
    return StepResult(grid=next_grid, metrics=metrics, expanded=False, events=events)


# ============================================================
# HOST
# ============================================================

class ColonyModel:
    def __init__(self, params: Params | None = None):
        self.params = (params or Params()).validate()
        self.rng = Rng(self.params.seed)
        self.grid: Grid | None = None
        self.colonies: List[RootColony] = []
        self.current_step = 0
        self.history: List[StepMetrics] = []
        self.last_result: StepResult | None = None
        self.setup()

    def setup(self) -> None:
        """Fresh grid and founders; resets the step counter and history."""
        self.grid, self.colonies = initialize(self.params, self.rng)
        self.current_step = 0
        self.history = []
        self.last_result = None
        logger.info(
            "Initialized %dx%d grid with %d colonies.",
            self.grid.width, self.grid.height, len(self.colonies),
        )

    def go(self) -> StepResult:
        result = step(self.grid, self.params, self.rng, self.current_step + 1)
        self.grid = result.grid
        self.last_result = result
        if result.expanded:
            self.params = replace(self.params, width=self.grid.width, height=self.grid.height)
        else:
            self.current_step += 1
            self.history.append(result.metrics)
        return result

    def run(self, steps: int = 100) -> List[StepMetrics]:
        for _ in range(steps):
            self.go()
        return self.history

    # ---- Edits ----

    def place_colony(self, x: int, y: int) -> RootColony:
        """Put a founder of a brand-new colony at (x, y)."""
        colony = new_colony(self.rng, len(self.colonies))
        self.grid = place_cell(self.grid, x, y, self.params, colony)
        self.colonies.append(colony)
        return colony

    def remove_cell(self, x: int, y: int) -> None:
        self.grid = remove_cell(self.grid, x, y)

    def set_nutrient_level(self, x: int, y: int, resource: str, value: float) -> None:
        self.grid = set_nutrient_level(self.grid, x, y, resource, value)

    def update_params(self, **changes) -> Params:
        """Validate and apply changes; structural changes re-initialize."""
        candidate = build_params(self.params, changes)
        structural = candidate.structural_changes(self.params)
        self.params = candidate
        if structural:
            logger.info("Structural parameters changed (%s); re-initializing.", ", ".join(sorted(structural)))
            self.setup()
        return self.params

    # ---- Convenience ----

    def counts(self) -> Tuple[int, int, int]:
        """Return counts of (healthy, mutated, empty) sites."""
        states = self.grid.state_array()
        healthy = int(np.sum(states == 1))
        mutated = int(np.sum(states == 2))
        return healthy, mutated, self.grid.capacity - healthy - mutated

    def history_frame(self) -> pd.DataFrame:
        columns = list(StepMetrics.__dataclass_fields__)
        return pd.DataFrame([m.as_dict() for m in self.history], columns=columns)

    def save_history(self, path: str) -> None:
        self.history_frame().to_csv(path, index=False)

    def as_rgb(self) -> np.ndarray:
        """Return an (H,W,3) array: colony colors over a nutrient-shaded background."""
        o2 = self.grid.levels("oxygen")
        glu = self.grid.levels("glucose")
        ref = max(self.params.initial_oxygen_level, self.params.initial_glucose_level, 1e-9)
        shade = np.clip((o2 + glu) / (2.0 * ref), 0.0, 1.0)

        rgb = np.zeros((self.grid.height, self.grid.width, 3), dtype=np.float32)
        rgb[..., 2] = 0.35 * shade
        rgb[..., 1] = 0.15 * shade
        for cell in self.grid.living_cells():
            color = np.array(to_rgb(cell.color), dtype=np.float32)
            rgb[cell.y, cell.x] = color * MUTATED_SHADE if cell.is_mutated else color
        return rgb


# ============================================================
# CLI
# ============================================================

def format_metrics(m: StepMetrics) -> str:
    return (
        f"t={m.step:04d}  healthy={m.healthy:5d}  mutated={m.mutated:5d}  total={m.total:5d}  "
        f"clusters={m.total_clusters:4d} (healthy={m.healthy_clusters}, mutated={m.mutated_clusters})"
    )


def demo_plot(model: ColonyModel, steps: int = 200, interval: float | None = None):
    import matplotlib.pyplot as plt

    pause = interval if interval is not None else model.params.step_interval_ms / 1000.0
    plt.ion()
    fig, ax = plt.subplots()
    im = ax.imshow(model.as_rgb(), interpolation="nearest")
    ax.set_title("Colony growth - t=0")
    ax.set_axis_off()
    fig.tight_layout()
    for _ in range(steps):
        result = model.go()
        if result.expanded:
            # shape changed: a fresh image keeps the extent right
            ax.clear()
            ax.set_axis_off()
            im = ax.imshow(model.as_rgb(), interpolation="nearest")
        else:
            im.set_data(model.as_rgb())
        ax.set_title(f"Colony growth - t={model.current_step} ({model.grid.width}x{model.grid.height})")
        plt.pause(pause)
        if not plt.fignum_exists(fig.number):
            break
    plt.ioff()
    plt.show()
    plt.close(fig)


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    ap.add_argument("--config", type=str, default=None, help="JSON file of Params fields")
    ap.add_argument("--steps", type=int, default=200)
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--width", type=int, default=None)
    ap.add_argument("--height", type=int, default=None)
    ap.add_argument("--cells", type=int, default=None, help="initial founder count")
    ap.add_argument("--growth-rate", type=float, default=None)
    ap.add_argument("--mutation-chance", type=float, default=None)
    ap.add_argument("--same-step-offspring", action="store_true", default=False)
    ap.add_argument("--log-every", type=int, default=10)
    ap.add_argument("--log-level", type=str, default="WARNING")
    ap.add_argument("--csv", type=str, default=None, help="write the step history here")
    ap.add_argument("--history-plot", type=str, default=None, help="save a history chart (PNG)")
    ap.add_argument("--plot", action="store_true", default=False, help="show live visualization")
    args = ap.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    overrides = {
        "seed": args.seed,
        "width": args.width,
        "height": args.height,
        "initial_cell_count": args.cells,
        "initial_growth_rate": args.growth_rate,
        "initial_mutation_chance": args.mutation_chance,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if args.same_step_offspring:
        overrides["offspring_act_same_step"] = True

    try:
        base = load_params(args.config) if args.config else Params()
        params = build_params(base, overrides)
    except InvalidParameter as exc:
        ap.error(str(exc))

    model = ColonyModel(params)
    print(f"Seeded {len(model.colonies)} colonies on a {model.grid.width}x{model.grid.height} grid.")

    if args.plot:
        demo_plot(model, steps=args.steps)
    else:
        for _ in range(args.steps):
            result = model.go()
            if result.expanded:
                print(f"Grid expanded to {model.grid.width}x{model.grid.height}")
                continue
            m = result.metrics
            if args.log_every > 0 and (m.step % args.log_every == 0 or m.step == 1):
                print(format_metrics(m))

    healthy, mutated, empty = model.counts()
    o2 = np.mean(model.grid.levels("oxygen"))
    glu = np.mean(model.grid.levels("glucose"))
    print(f"Final: healthy={healthy} mutated={mutated} empty={empty} mean O2={o2:.2f} mean glucose={glu:.2f}")

    if args.csv:
        model.save_history(args.csv)
        print(f"History saved to {args.csv}")
    if args.history_plot:
        from .plot_history import plot_history

        plot_history(model.history_frame(), args.history_plot)
        print(f"Saved history chart to {args.history_plot}")


if __name__ == "__main__":
    main()
