"""
Plot a colony run's step history.

Run:
  python -m colony_growth.plot_history --csv run.csv --outfile run.png
"""

from __future__ import annotations

import argparse

import matplotlib.pyplot as plt
import pandas as pd


def plot_history(df: pd.DataFrame, outfile: str | None = None) -> None:
    if df.empty:
        print("No history to plot.")
        return

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(10.0, 7.0), sharex=True)

    ax1.plot(df["step"], df["healthy"], label="Healthy", color="#22c55e")
    ax1.plot(df["step"], df["mutated"], label="Mutated", color="#ef4444")
    ax1.plot(df["step"], df["total"], label="Total", color="#3b82f6", linestyle="--")
    ax1.set_ylabel("Cells")
    ax1.set_title("Colony growth")
    ax1.grid(alpha=0.25)
    ax1.legend(loc="upper left")

    ax2.plot(df["step"], df["total_clusters"], label="All clusters", color="#3b82f6")
    ax2.plot(df["step"], df["healthy_clusters"], label="Healthy clusters", color="#22c55e")
    ax2.plot(df["step"], df["mutated_clusters"], label="Mutated clusters", color="#ef4444")
    ax2.set_xlabel("Time step")
    ax2.set_ylabel("Clusters")
    ax2.grid(alpha=0.25)
    ax2.legend(loc="upper left")

    fig.tight_layout()
    if outfile:
        fig.savefig(outfile, dpi=150)
        plt.close(fig)
    else:
        plt.show()


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--csv", type=str, required=True)
    ap.add_argument("--outfile", type=str, default=None)
    args = ap.parse_args()

    df = pd.read_csv(args.csv)
    plot_history(df, args.outfile)
    if args.outfile:
        print(f"Saved history chart to {args.outfile}")


if __name__ == "__main__":
    main()
