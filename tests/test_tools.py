from __future__ import annotations

import argparse
import csv

import matplotlib

matplotlib.use("Agg")

import pandas as pd

from colony_growth.colony_model import ColonyModel
from colony_growth.mutation_sweep import SweepResult, _run_cell, frange, run_grid, write_results
from colony_growth.params import Params
from colony_growth.plot_history import plot_history


def test_plot_history_writes_png(tmp_path):
    model = ColonyModel(Params(width=10, height=10, seed=3))
    model.run(6)
    out = tmp_path / "history.png"

    plot_history(model.history_frame(), str(out))

    assert out.exists()
    assert out.stat().st_size > 0


def test_plot_history_skips_empty_frame(tmp_path, capsys):
    out = tmp_path / "empty.png"
    plot_history(pd.DataFrame(), str(out))
    assert not out.exists()
    assert "No history" in capsys.readouterr().out


def test_frange_includes_stop():
    assert frange(0.0, 0.01, 0.005) == [0.0, 0.005, 0.01]


def test_run_cell_summarizes_replicates():
    r = _run_cell(0, 1, 0.5, 0.3, reps=2, steps=4, size=6, founders=2, seed_base=10)

    assert isinstance(r, SweepResult)
    assert (r.i, r.j, r.reps) == (0, 1, 2)
    assert 0.0 <= r.mutated_fraction <= 1.0
    assert r.clusters >= 0.0
    assert r.final_width >= 6


def test_run_grid_serial_and_csv(tmp_path, capsys):
    args = argparse.Namespace(reps=1, steps=2, size=5, founders=1, seed=1, workers=1)

    results, heat = run_grid([0.0, 1.0], [0.2], args)

    assert heat.shape == (2, 1)
    assert [(r.i, r.j) for r in results] == [(0, 0), (1, 0)]
    # a mutation chance of 1 flips every surviving cell on its first step
    assert results[1].mutated_fraction in (0.0, 1.0)
    assert results[0].mutated_fraction == 0.0

    path = tmp_path / "sweep.csv"
    write_results(results, str(path))
    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 2
    assert float(rows[1]["mutation_chance"]) == 1.0
    assert "mutation=" in capsys.readouterr().out
