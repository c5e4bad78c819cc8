"""3D gradient noise over a shuffled permutation table.

`noise3` evaluates a single point; `noise3_grid` evaluates the same function
element-wise over numpy arrays and is what the field sampler uses per frame.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class PermutationTable:
    values: Tuple[int, ...]
    array: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(self.values) != 512:
            raise ValueError(f"Permutation table needs 512 entries, got {len(self.values)}")
        arr = np.asarray(self.values, dtype=np.int64)
        arr.flags.writeable = False
        object.__setattr__(self, "array", arr)

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, i: int) -> int:
        return self.values[i]


def build_permutation(rng: np.random.Generator | None = None, seed: int | None = None) -> PermutationTable:
    if rng is None:
        rng = np.random.default_rng(seed)
    p = list(range(256))
    for i in range(255, 0, -1):
        j = int(math.floor(rng.random() * (i + 1)))
        p[i], p[j] = p[j], p[i]
    return PermutationTable(tuple(p[i & 255] for i in range(512)))


def fade(t):
    return t * t * t * (t * (t * 6 - 15) + 10)


def lerp(a, b, t):
    return a + t * (b - a)


def grad(hash_value: int, x: float, y: float, z: float) -> float:
    h = hash_value & 15
    u = x if h < 8 else y
    v = y if h < 4 else (x if h in (12, 14) else z)
    return (u if (h & 1) == 0 else -u) + (v if (h & 2) == 0 else -v)


def noise3(table: PermutationTable, x: float, y: float, z: float) -> float:
    p = table.values
    fx, fy, fz = math.floor(x), math.floor(y), math.floor(z)
    X, Y, Z = fx & 255, fy & 255, fz & 255
    x, y, z = x - fx, y - fy, z - fz
    u, v, w = fade(x), fade(y), fade(z)

    A = p[X] + Y
    AA = p[A] + Z
    AB = p[A + 1] + Z
    B = p[X + 1] + Y
    BA = p[B] + Z
    BB = p[B + 1] + Z

    x1 = lerp(grad(p[AA], x, y, z), grad(p[BA], x - 1, y, z), u)
    x2 = lerp(grad(p[AB], x, y - 1, z), grad(p[BB], x - 1, y - 1, z), u)
    x3 = lerp(grad(p[AA + 1], x, y, z - 1), grad(p[BA + 1], x - 1, y, z - 1), u)
    x4 = lerp(grad(p[AB + 1], x, y - 1, z - 1), grad(p[BB + 1], x - 1, y - 1, z - 1), u)
    return float(lerp(lerp(x1, x2, v), lerp(x3, x4, v), w))


def _grad_grid(hash_value: np.ndarray, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
    h = hash_value & 15
    u = np.where(h < 8, x, y)
    v = np.where(h < 4, y, np.where((h == 12) | (h == 14), x, z))
    return np.where((h & 1) == 0, u, -u) + np.where((h & 2) == 0, v, -v)


def noise3_grid(table: PermutationTable, x, y, z) -> np.ndarray:
    x, y, z = np.broadcast_arrays(
        np.asarray(x, dtype=np.float64),
        np.asarray(y, dtype=np.float64),
        np.asarray(z, dtype=np.float64),
    )
    p = table.array
    fx, fy, fz = np.floor(x), np.floor(y), np.floor(z)
    X = fx.astype(np.int64) & 255
    Y = fy.astype(np.int64) & 255
    Z = fz.astype(np.int64) & 255
    x, y, z = x - fx, y - fy, z - fz
    u, v, w = fade(x), fade(y), fade(z)

    A = p[X] + Y
    AA = p[A] + Z
    AB = p[A + 1] + Z
    B = p[X + 1] + Y
    BA = p[B] + Z
    BB = p[B + 1] + Z

    x1 = lerp(_grad_grid(p[AA], x, y, z), _grad_grid(p[BA], x - 1, y, z), u)
    x2 = lerp(_grad_grid(p[AB], x, y - 1, z), _grad_grid(p[BB], x - 1, y - 1, z), u)
    x3 = lerp(_grad_grid(p[AA + 1], x, y, z - 1), _grad_grid(p[BA + 1], x - 1, y, z - 1), u)
    x4 = lerp(_grad_grid(p[AB + 1], x, y - 1, z - 1), _grad_grid(p[BB + 1], x - 1, y - 1, z - 1), u)
    return lerp(lerp(x1, x2, v), lerp(x3, x4, v), w)
