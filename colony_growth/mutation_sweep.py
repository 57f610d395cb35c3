"""
Parameter sweep over founder mutation chance and growth rate.

- Runs `reps` seeded simulations for each (mutation chance, growth rate)
- Records the mean final mutated fraction and mean cluster count
- Writes a CSV row per grid cell and a heatmap of the mutated fraction

Run:
  python -m colony_growth.mutation_sweep --reps 3 --steps 150 --workers 4
"""

from __future__ import annotations

import argparse
import csv
import os
import statistics as stats
from concurrent.futures import ProcessPoolExecutor
from dataclasses import asdict, dataclass
from typing import List, Tuple

import numpy as np

from .colony_model import ColonyModel
from .params import Params, build_params


def frange(start: float, stop: float, step: float) -> List[float]:
    """Inclusive float range, rounded so CSV values stay readable."""
    return [round(float(v), 10) for v in np.arange(start, stop + step / 2, step)]


@dataclass(frozen=True)
class SweepResult:
    i: int
    j: int
    mutation_chance: float
    growth_rate: float
    reps: int
    mutated_fraction: float
    clusters: float
    final_width: int


def _run_cell(
    i: int,
    j: int,
    mutation_chance: float,
    growth_rate: float,
    reps: int,
    steps: int,
    size: int,
    founders: int,
    seed_base: int,
) -> SweepResult:
    fractions: List[float] = []
    clusters: List[float] = []
    widths: List[int] = []

    for rep in range(reps):
        params = build_params(
            Params(),
            {
                "width": size,
                "height": size,
                "initial_cell_count": founders,
                "initial_mutation_chance": mutation_chance,
                "initial_growth_rate": growth_rate,
                "seed": seed_base + rep,
            },
        )
        model = ColonyModel(params)
        model.run(steps)
        healthy, mutated, _ = model.counts()
        alive = healthy + mutated
        fractions.append(mutated / alive if alive else 0.0)
        clusters.append(model.history[-1].total_clusters if model.history else 0.0)
        widths.append(model.grid.width)

    return SweepResult(
        i=i,
        j=j,
        mutation_chance=mutation_chance,
        growth_rate=growth_rate,
        reps=reps,
        mutated_fraction=stats.mean(fractions) if fractions else float("nan"),
        clusters=stats.mean(clusters) if clusters else float("nan"),
        final_width=max(widths, default=size),
    )


def run_grid(
    mutation_vals: List[float],
    growth_vals: List[float],
    args: argparse.Namespace,
) -> Tuple[List[SweepResult], np.ndarray]:
    heat = np.full((len(mutation_vals), len(growth_vals)), np.nan, dtype=float)

    worker_args = [
        (i, j, mut, growth, args.reps, args.steps, args.size, args.founders, args.seed + i * 1000 + j * 100)
        for i, mut in enumerate(mutation_vals)
        for j, growth in enumerate(growth_vals)
    ]

    if args.workers == 1:
        results = [_run_cell(*a) for a in worker_args]
    else:
        with ProcessPoolExecutor(max_workers=args.workers) as ex:
            results = list(ex.map(_run_cell, *zip(*worker_args)))

    for r in results:
        heat[r.i, r.j] = r.mutated_fraction
        print(
            f"mutation={r.mutation_chance:.4f} growth={r.growth_rate:.3f} "
            f"mutated_fraction={r.mutated_fraction:.3f} clusters={r.clusters:.1f}"
        )
    return results, heat


def write_results(results: List[SweepResult], path: str) -> None:
    fieldnames = list(SweepResult.__dataclass_fields__)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for r in results:
            writer.writerow(asdict(r))


def save_heatmap(
    heat: np.ndarray,
    mutation_vals: List[float],
    growth_vals: List[float],
    title: str,
    outfile: str,
) -> None:
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(7.5, 5.2))
    cmap = plt.get_cmap("viridis").copy()
    cmap.set_bad(color="#cccccc")
    im = ax.imshow(
        heat,
        origin="lower",
        aspect="auto",
        interpolation="nearest",
        extent=[min(growth_vals), max(growth_vals), min(mutation_vals), max(mutation_vals)],
        cmap=cmap,
    )
    ax.set_xlabel("Growth rate")
    ax.set_ylabel("Mutation chance")
    ax.set_title(title)
    cbar = fig.colorbar(im, ax=ax)
    cbar.set_label("Mutated fraction")

    fig.tight_layout()
    fig.savefig(outfile, dpi=150)
    plt.close(fig)
    print(f"Saved heatmap to {outfile}")


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--mut-min", type=float, default=0.0)
    ap.add_argument("--mut-max", type=float, default=0.01)
    ap.add_argument("--mut-step", type=float, default=0.002)
    ap.add_argument("--growth-min", type=float, default=0.05)
    ap.add_argument("--growth-max", type=float, default=0.5)
    ap.add_argument("--growth-step", type=float, default=0.05)
    ap.add_argument("--reps", type=int, default=5)
    ap.add_argument("--steps", type=int, default=200)
    ap.add_argument("--size", type=int, default=30)
    ap.add_argument("--founders", type=int, default=5)
    ap.add_argument("--seed", type=int, default=4000)
    ap.add_argument("--workers", type=int, default=max(1, (os.cpu_count() or 2) - 1))
    ap.add_argument("--csv", type=str, default="mutation_sweep.csv")
    ap.add_argument("--outfile", type=str, default="mutation_sweep.png")
    args = ap.parse_args()

    mutation_vals = frange(args.mut_min, args.mut_max, args.mut_step)
    growth_vals = frange(args.growth_min, args.growth_max, args.growth_step)

    print(
        "\n=== Sweep ===\n"
        f"mutation chance: [{args.mut_min:.4f}, {args.mut_max:.4f}] step {args.mut_step:.4f}\n"
        f"growth rate:     [{args.growth_min:.4f}, {args.growth_max:.4f}] step {args.growth_step:.4f}\n"
    )

    results, heat = run_grid(mutation_vals, growth_vals, args)
    if args.csv:
        write_results(results, args.csv)
        print(f"Saved results to {args.csv}")
    if args.outfile:
        title = f"Mutated fraction after {args.steps} steps (mean of {args.reps} runs)"
        save_heatmap(heat, mutation_vals, growth_vals, title, args.outfile)


if __name__ == "__main__":
    main()
