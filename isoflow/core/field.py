from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from .noise import PermutationTable, noise3_grid

# (spatial frequency, time multiplier, weight): coarse shape plus finer detail
OCTAVES: Tuple[Tuple[float, float, float], ...] = (
    (1.0, 1.0, 0.6),
    (2.1, 1.3, 0.3),
    (4.3, 1.7, 0.1),
)


def grid_shape(width: float, height: float, cell_size: float) -> Tuple[int, int]:
    """Return (cols, rows) of grid points covering a width x height surface."""
    if cell_size <= 0:
        raise ValueError(f"cell_size must be positive, got {cell_size}")
    cols = max(2, math.ceil(max(0.0, width) / cell_size) + 1)
    rows = max(2, math.ceil(max(0.0, height) / cell_size) + 1)
    return cols, rows


def build_field(
    table: PermutationTable,
    cols: int,
    rows: int,
    cell_size: float,
    scale: float,
    time: float,
) -> np.ndarray:
    yy, xx = np.mgrid[0:rows, 0:cols].astype(np.float64)
    nx = (xx * cell_size) / scale
    ny = (yy * cell_size) / scale
    out = np.zeros((rows, cols), dtype=np.float64)
    for freq, time_mul, weight in OCTAVES:
        out += noise3_grid(table, nx * freq, ny * freq, time * time_mul) * weight
    return out
