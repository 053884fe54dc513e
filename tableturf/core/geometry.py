from __future__ import annotations

from enum import IntEnum
from typing import Iterable, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

BoolArray = NDArray[np.bool_]
Offset = Tuple[int, int]  # (row, col)

NEIGHBOURS_4: Tuple[Offset, ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))
NEIGHBOURS_8: Tuple[Offset, ...] = NEIGHBOURS_4 + ((-1, -1), (-1, 1), (1, -1), (1, 1))


class Rotation(IntEnum):
    """Clockwise quarter turns."""

    R0 = 0
    R90 = 1
    R180 = 2
    R270 = 3

    @property
    def degrees(self) -> int:
        return int(self) * 90


def neighbourhood(adjacency: int) -> Tuple[Offset, ...]:
    if adjacency == 4:
        return NEIGHBOURS_4
    if adjacency == 8:
        return NEIGHBOURS_8
    raise ValueError(f"Unsupported adjacency: {adjacency} (expected 4 or 8).")


def rotate_offset(offset: Offset, rotation: Rotation) -> Offset:
    row, col = offset
    for _ in range(int(rotation)):
        row, col = col, -row
    return row, col


def normalise(offsets: Sequence[Offset]) -> Tuple[Offset, ...]:
    """Translate offsets so the bounding box starts at (0, 0)."""
    if not offsets:
        return ()
    min_row = min(r for r, _ in offsets)
    min_col = min(c for _, c in offsets)
    return tuple((r - min_row, c - min_col) for r, c in offsets)


def rotate_offsets(offsets: Sequence[Offset], rotation: Rotation) -> Tuple[Offset, ...]:
    return normalise([rotate_offset(offset, rotation) for offset in offsets])


def bounding_size(offsets: Iterable[Offset]) -> Tuple[int, int]:
    offsets = list(offsets)
    if not offsets:
        return 0, 0
    return max(r for r, _ in offsets) + 1, max(c for _, c in offsets) + 1


def translate(offsets: Iterable[Offset], row: int, col: int) -> Tuple[Offset, ...]:
    return tuple((row + r, col + c) for r, c in offsets)


def in_bounds(shape: Tuple[int, int], row: int, col: int) -> bool:
    return 0 <= row < shape[0] and 0 <= col < shape[1]


def dilate(mask: BoolArray, adjacency: int = 4) -> BoolArray:
    """Return ``mask`` grown by one step in the given neighbourhood."""
    height, width = mask.shape
    grown = mask.copy()
    for dr, dc in neighbourhood(adjacency):
        r0, r1 = max(0, -dr), height - max(0, dr)
        c0, c1 = max(0, -dc), width - max(0, dc)
        if r0 >= r1 or c0 >= c1:
            continue
        grown[r0:r1, c0:c1] |= mask[r0 + dr : r1 + dr, c0 + dc : c1 + dc]
    return grown


def anchor_windows(
    mask: BoolArray,
    offsets: Sequence[Offset],
    size: Tuple[int, int],
    *,
    reduce: str,
) -> BoolArray:
    """Combine ``mask`` over every anchor at which a footprint fits the grid.

    Entry ``[r, c]`` of the result covers the footprint anchored at ``(r, c)``;
    ``reduce`` is ``"all"`` or ``"any"`` over the footprint cells.
    """
    height, width = mask.shape
    rows = height - size[0] + 1
    cols = width - size[1] + 1
    if rows <= 0 or cols <= 0:
        return np.zeros((max(rows, 0), max(cols, 0)), dtype=bool)
    if reduce == "all":
        out = np.ones((rows, cols), dtype=bool)
        for dr, dc in offsets:
            out &= mask[dr : dr + rows, dc : dc + cols]
    elif reduce == "any":
        out = np.zeros((rows, cols), dtype=bool)
        for dr, dc in offsets:
            out |= mask[dr : dr + rows, dc : dc + cols]
    else:
        raise ValueError(f"Unknown reduction: {reduce}")
    return out
