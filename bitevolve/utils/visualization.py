"""
Visualization utilities for bitevolve.

Plots are written to files; missing data renders a placeholder figure
instead of raising, so a run can always emit its plots.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Sequence, Union

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402

from ..evolutionary.gene import Gene  # noqa: E402


def _prepare_output_path(output_path: Union[str, Path]) -> Path:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _save_figure(fig: plt.Figure, output_path: Union[str, Path]) -> Path:
    path = _prepare_output_path(output_path)
    fig.tight_layout()
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path


def _placeholder(ax: plt.Axes, message: str) -> None:
    ax.text(0.5, 0.5, message, ha="center", va="center")
    ax.set_axis_off()


def plot_fitness_vs_generation(
    history: Union[pd.DataFrame, Sequence[Dict[str, Any]]],
    output_path: Union[str, Path],
) -> Path:
    """Plot average and best fitness by generation."""
    frame = history if isinstance(history, pd.DataFrame) else pd.DataFrame(list(history or []))
    fig, ax = plt.subplots(figsize=(10, 5))

    if frame.empty or "generation" not in frame:
        _placeholder(ax, "No generation history")
        return _save_figure(fig, output_path)

    if "average_fitness" in frame:
        ax.plot(frame["generation"], frame["average_fitness"], label="Average Fitness", linewidth=2)
    if "best_fitness" in frame:
        ax.plot(frame["generation"], frame["best_fitness"], label="Best Fitness", linewidth=2)
    ax.set_title("Fitness vs Generation")
    ax.set_xlabel("Generation")
    ax.set_ylabel("Fitness")
    ax.legend()
    ax.grid(alpha=0.2)
    return _save_figure(fig, output_path)


def plot_gene_bitmap(
    gene: Gene,
    output_path: Union[str, Path],
    width: int = 64,
) -> Path:
    """Render a gene's bits as a black and white image, ``width`` bits per row."""
    fig, ax = plt.subplots(figsize=(8, 6))

    if gene is None or gene.size == 0:
        _placeholder(ax, "Empty gene")
        return _save_figure(fig, output_path)

    bits = np.fromiter(iter(gene.bits), dtype=np.uint8, count=gene.size)
    rows = -(-gene.size // width)
    grid = np.zeros(rows * width, dtype=np.uint8)
    grid[:gene.size] = bits

    ax.imshow(grid.reshape(rows, width), cmap="Greys", interpolation="nearest", aspect="auto")
    ax.set_title(f"Gene bits (fitness={gene.fitness})")
    ax.set_xlabel("Bit (low to high)")
    ax.set_ylabel("Row")
    return _save_figure(fig, output_path)
