"""Margin charts for the profit & competitiveness report."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Sequence

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import seaborn as sns  # noqa: E402

from Profit_analytics.profit import ProfitRow, chart_points, top_rows  # noqa: E402

sns.set_theme(style="whitegrid")

POSITIVE_COLOR = "#10B981"
NEGATIVE_COLOR = "#EF4444"


def _save_plot(fig: plt.Figure, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)


def ranking_plot(rows: Sequence[ProfitRow], *, which: str, output_dir: Path) -> Path | None:
    ranked = top_rows(rows, which)
    if not ranked:
        return None
    frame = pd.DataFrame(chart_points(ranked))
    color = POSITIVE_COLOR if which == "best" else NEGATIVE_COLOR
    fig, ax = plt.subplots(figsize=(8, 5))
    sns.barplot(data=frame, x="value", y="label", color=color, ax=ax)
    ax.set_ylabel("Product")
    ax.set_xlabel("Margin shown (|value|)")
    ax.set_title("Best margin" if which == "best" else "Worst margin")
    output_path = output_dir / "figures" / f"{which}_margin.png"
    _save_plot(fig, output_path)
    return output_path


def all_products_plot(rows: Sequence[ProfitRow], output_dir: Path) -> Path | None:
    if not rows:
        return None
    points = chart_points(rows)
    positions = np.arange(len(points))
    colors = [NEGATIVE_COLOR if point["negative"] else POSITIVE_COLOR for point in points]
    fig, ax = plt.subplots(figsize=(max(6.0, len(points) * 0.6), 5))
    ax.bar(positions, [point["value"] for point in points], color=colors)
    ax.set_xticks(positions)
    ax.set_xticklabels([point["label"] for point in points], rotation=45, ha="right")
    ax.set_ylabel("Margin shown (|value|)")
    ax.set_title("All products (green = margin ≥ 0, red = margin < 0)")
    output_path = output_dir / "figures" / "all_margin.png"
    _save_plot(fig, output_path)
    return output_path


def generate_visuals(rows: Sequence[ProfitRow], output_dir: Path) -> Dict[str, str]:
    figures: Dict[str, str] = {}

    for which in ("best", "worst"):
        path = ranking_plot(rows, which=which, output_dir=output_dir)
        if path:
            figures[f"{which}_margin"] = path.name

    path = all_products_plot(rows, output_dir)
    if path:
        figures["all_margin"] = path.name

    return figures
