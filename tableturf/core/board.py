from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Mapping, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .errors import BoardLoadError
from .geometry import BoolArray, Offset

BoardArray = NDArray[np.int8]


class Player(IntEnum):
    A = 1
    B = 2

    @property
    def other(self) -> "Player":
        return Player.B if self == Player.A else Player.A

    @property
    def index(self) -> int:
        return int(self) - 1


class Cell(IntEnum):
    OUT_OF_BOUNDS = -2
    WALL = -1
    EMPTY = 0
    INK_A = 1
    INK_B = 2
    SPECIAL_A = 3
    SPECIAL_B = 4

    @staticmethod
    def ink(player: Player) -> "Cell":
        return Cell.INK_A if player == Player.A else Cell.INK_B

    @staticmethod
    def special(player: Player) -> "Cell":
        return Cell.SPECIAL_A if player == Player.A else Cell.SPECIAL_B

    @property
    def owner(self) -> Player | None:
        if self in (Cell.INK_A, Cell.SPECIAL_A):
            return Player.A
        if self in (Cell.INK_B, Cell.SPECIAL_B):
            return Player.B
        return None

    @property
    def is_special(self) -> bool:
        return self in (Cell.SPECIAL_A, Cell.SPECIAL_B)

    @property
    def is_fixed(self) -> bool:
        return self in (Cell.WALL, Cell.OUT_OF_BOUNDS)


CELL_CHARS: Dict[str, Cell] = {
    ".": Cell.EMPTY,
    "#": Cell.WALL,
    " ": Cell.OUT_OF_BOUNDS,
    "a": Cell.INK_A,
    "A": Cell.SPECIAL_A,
    "b": Cell.INK_B,
    "B": Cell.SPECIAL_B,
}
START_CHARS: Dict[str, Player] = {"1": Player.A, "2": Player.B}
CHAR_FOR_CELL: Dict[Cell, str] = {cell: ch for ch, cell in CELL_CHARS.items()}


@dataclass(frozen=True, eq=False)
class BoardLayout:
    """Named starting board. ``cells`` is read-only and shared by every match."""

    name: str
    cells: BoardArray
    starts: Mapping[Player, Offset] = field(default_factory=dict)

    def __post_init__(self) -> None:
        cells = np.array(self.cells, dtype=np.int8, copy=True)
        if cells.ndim != 2 or 0 in cells.shape:
            raise BoardLoadError(f"Board {self.name!r} must be a non-empty 2D grid.")
        cells.setflags(write=False)
        object.__setattr__(self, "cells", cells)
        object.__setattr__(self, "starts", dict(self.starts))
        for player, (row, col) in self.starts.items():
            if not (0 <= row < cells.shape[0] and 0 <= col < cells.shape[1]):
                raise BoardLoadError(f"Board {self.name!r}: start of {player.name} is outside the grid.")
            if cells[row, col] in (Cell.WALL, Cell.OUT_OF_BOUNDS):
                raise BoardLoadError(f"Board {self.name!r}: start of {player.name} is not a playable cell.")

    @property
    def shape(self) -> Tuple[int, int]:
        return int(self.cells.shape[0]), int(self.cells.shape[1])

    def new_board(self) -> BoardArray:
        return self.cells.copy()

    def start_mask(self, player: Player) -> BoolArray:
        mask = np.zeros(self.shape, dtype=bool)
        if player in self.starts:
            mask[self.starts[player]] = True
        return mask


def board_from_lines(name: str, lines: Sequence[str]) -> BoardLayout:
    rows = [line.rstrip("\n") for line in lines]
    while rows and not rows[-1].strip():
        rows.pop()
    if not rows:
        raise BoardLoadError(f"Board {name!r} is empty.")
    width = max(len(row) for row in rows)
    cells = np.full((len(rows), width), Cell.OUT_OF_BOUNDS, dtype=np.int8)
    starts: Dict[Player, Offset] = {}
    for r, row in enumerate(rows):
        for c, ch in enumerate(row):
            if ch in START_CHARS:
                player = START_CHARS[ch]
                if player in starts:
                    raise BoardLoadError(f"Board {name!r}: duplicated start for {player.name}.")
                starts[player] = (r, c)
                cells[r, c] = Cell.EMPTY
            elif ch in CELL_CHARS:
                cells[r, c] = CELL_CHARS[ch]
            else:
                raise BoardLoadError(f"Board {name!r}: invalid character {ch!r} at ({r}, {c}).")
    return BoardLayout(name=name, cells=cells, starts=starts)


def format_board(board: BoardArray, *, starts: Mapping[Player, Offset] | None = None) -> str:
    lines = []
    start_at = {pos: str(int(player)) for player, pos in (starts or {}).items()}
    for r, row in enumerate(board):
        chars = []
        for c, value in enumerate(row):
            cell = Cell(int(value))
            if cell == Cell.EMPTY and (r, c) in start_at:
                chars.append(start_at[(r, c)])
            else:
                chars.append(CHAR_FOR_CELL[cell])
        lines.append("".join(chars))
    return "\n".join(lines)


def owned_mask(board: BoardArray, player: Player, *, special_only: bool = False) -> BoolArray:
    if special_only:
        return board == Cell.special(player)
    return (board == Cell.ink(player)) | (board == Cell.special(player))


def count_cells(board: BoardArray, player: Player) -> int:
    return int(np.count_nonzero(owned_mask(board, player)))


def swap_owners(board: BoardArray) -> BoardArray:
    """Return a copy of ``board`` with the ink of A and B exchanged."""
    swapped = board.copy()
    for first, second in ((Cell.INK_A, Cell.INK_B), (Cell.SPECIAL_A, Cell.SPECIAL_B)):
        swapped[board == first] = second
        swapped[board == second] = first
    return swapped


def fixed_cells(board: BoardArray) -> BoolArray:
    return (board == Cell.WALL) | (board == Cell.OUT_OF_BOUNDS)

