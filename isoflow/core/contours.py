"""Marching squares over a regular grid.

Each cell is classified by which of its corners sit at or above the iso-level
(tl=8, tr=4, br=2, bl=1). The case index picks which cell edges the contour
crosses; crossing points are linearly interpolated along those edges. Cells
are independent, so segments are emitted one cell at a time without stitching.

Saddle cells (cases 5 and 10) always connect the same edge pairs; the cell
centre value is not consulted to pick between the two diagonal splits.
"""
from __future__ import annotations

from enum import IntEnum
from typing import List, Sequence, Tuple

import numpy as np

Point = Tuple[float, float]
Segment = Tuple[Point, Point]

DEGENERATE_EPS = 1e-6


class Edge(IntEnum):
    TOP = 0
    RIGHT = 1
    BOTTOM = 2
    LEFT = 3


_T, _R, _B, _L = Edge.TOP, Edge.RIGHT, Edge.BOTTOM, Edge.LEFT

# Indexed by case; each entry is the ordered edge pairs to connect.
SEGMENT_TABLE: Tuple[Tuple[Tuple[Edge, Edge], ...], ...] = (
    (),                      # 0
    ((_L, _B),),             # 1
    ((_B, _R),),             # 2
    ((_L, _R),),             # 3
    ((_R, _T),),             # 4
    ((_L, _T), (_R, _B)),    # 5 saddle
    ((_B, _T),),             # 6
    ((_L, _T),),             # 7
    ((_T, _L),),             # 8
    ((_T, _B),),             # 9
    ((_R, _B), (_T, _L)),    # 10 saddle
    ((_T, _R),),             # 11
    ((_R, _L),),             # 12
    ((_B, _R),),             # 13
    ((_L, _B),),             # 14
    (),                      # 15
)


def case_index(tl: float, tr: float, br: float, bl: float, level: float) -> int:
    return (
        (8 if tl >= level else 0)
        + (4 if tr >= level else 0)
        + (2 if br >= level else 0)
        + (1 if bl >= level else 0)
    )


def interpolate(v0: float, v1: float, level: float) -> float:
    """Fraction along v0 -> v1 where the level is crossed (0 on a flat edge)."""
    if abs(v1 - v0) < DEGENERATE_EPS:
        return 0.0
    return (level - v0) / (v1 - v0)


def edge_point(
    edge: Edge,
    tl: float,
    tr: float,
    br: float,
    bl: float,
    level: float,
    x: float,
    y: float,
    cell_w: float,
    cell_h: float,
) -> Point:
    if edge == Edge.TOP:
        return (x + interpolate(tl, tr, level) * cell_w, y)
    if edge == Edge.RIGHT:
        return (x + cell_w, y + interpolate(tr, br, level) * cell_h)
    if edge == Edge.BOTTOM:
        return (x + interpolate(bl, br, level) * cell_w, y + cell_h)
    return (x, y + interpolate(tl, bl, level) * cell_h)


def cell_segments(
    tl: float,
    tr: float,
    br: float,
    bl: float,
    level: float,
    x: float = 0.0,
    y: float = 0.0,
    cell_w: float = 1.0,
    cell_h: float | None = None,
) -> List[Segment]:
    if cell_h is None:
        cell_h = cell_w
    pairs = SEGMENT_TABLE[case_index(tl, tr, br, bl, level)]
    return [
        (
            edge_point(a, tl, tr, br, bl, level, x, y, cell_w, cell_h),
            edge_point(b, tl, tr, br, bl, level, x, y, cell_w, cell_h),
        )
        for a, b in pairs
    ]


def _fractions(v0: np.ndarray, v1: np.ndarray, level: float) -> np.ndarray:
    d = v1 - v0
    flat = np.abs(d) < DEGENERATE_EPS
    return np.where(flat, 0.0, (level - v0) / np.where(flat, 1.0, d))


def extract_contours(
    field: Sequence[float] | np.ndarray,
    cols: int,
    rows: int,
    cell_size: float,
    level: float,
) -> List[Segment]:
    """Return the contour segments of `field` at `level`, cells in row-major order.

    `field` may be flat (length cols*rows, row-major) or shaped (rows, cols).
    """
    if cols < 2 or rows < 2:
        raise ValueError(f"Grid must be at least 2x2, got {cols}x{rows}")
    f = np.asarray(field, dtype=np.float64)
    if f.size != cols * rows:
        raise ValueError(f"Field has {f.size} values, expected {cols}x{rows}")
    f = f.reshape(rows, cols)

    tl = f[:-1, :-1]
    tr = f[:-1, 1:]
    bl = f[1:, :-1]
    br = f[1:, 1:]
    idx = (
        (tl >= level).astype(np.int8) * 8
        + (tr >= level).astype(np.int8) * 4
        + (br >= level).astype(np.int8) * 2
        + (bl >= level).astype(np.int8)
    )
    rr, cc = np.nonzero((idx != 0) & (idx != 15))
    if rr.size == 0:
        return []

    tl, tr, bl, br = tl[rr, cc], tr[rr, cc], bl[rr, cc], br[rr, cc]
    x = cc * cell_size
    y = rr * cell_size
    xs = [None] * 4
    ys = [None] * 4
    xs[Edge.TOP], ys[Edge.TOP] = x + _fractions(tl, tr, level) * cell_size, y
    xs[Edge.RIGHT], ys[Edge.RIGHT] = x + cell_size, y + _fractions(tr, br, level) * cell_size
    xs[Edge.BOTTOM], ys[Edge.BOTTOM] = x + _fractions(bl, br, level) * cell_size, y + cell_size
    xs[Edge.LEFT], ys[Edge.LEFT] = x, y + _fractions(tl, bl, level) * cell_size
    xs = [np.asarray(a, dtype=np.float64).tolist() for a in xs]
    ys = [np.asarray(a, dtype=np.float64).tolist() for a in ys]

    segments: List[Segment] = []
    for k, case in enumerate(idx[rr, cc].tolist()):
        for a, b in SEGMENT_TABLE[case]:
            segments.append(((xs[a][k], ys[a][k]), (xs[b][k], ys[b][k])))
    return segments
