from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Iterator, Mapping, Sequence, Tuple

from .errors import CardLoadError
from .geometry import Offset, Rotation, bounding_size, rotate_offsets

INK_CHAR = "="
SPECIAL_CHAR = "*"
EMPTY_CHAR = " "


@dataclass(frozen=True)
class Footprint:
    """Card cells for a single rotation, anchored at the bounding-box top-left."""

    rotation: Rotation
    offsets: Tuple[Offset, ...]
    special: FrozenSet[Offset]
    height: int
    width: int

    @property
    def size(self) -> Tuple[int, int]:
        return self.height, self.width

    def is_special(self, offset: Offset) -> bool:
        return offset in self.special


@dataclass(frozen=True)
class CardDefinition:
    card_id: int
    name: str
    cost: int
    ink: FrozenSet[Offset]
    special: FrozenSet[Offset] = frozenset()
    footprints: Tuple[Footprint, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.ink and not self.special:
            raise CardLoadError(f"Card {self.card_id} has no cells.")
        if self.cost < 0:
            raise CardLoadError(f"Card {self.card_id} has a negative cost.")
        cells = sorted(self.ink | self.special)
        kinds = [cell in self.special for cell in cells]
        footprints = []
        for rotation in Rotation:
            rotated = rotate_offsets(cells, rotation)
            order = sorted(range(len(rotated)), key=lambda i: rotated[i])
            offsets = tuple(rotated[i] for i in order)
            special = frozenset(rotated[i] for i in order if kinds[i])
            height, width = bounding_size(offsets)
            footprints.append(Footprint(rotation, offsets, special, height, width))
        object.__setattr__(self, "footprints", tuple(footprints))

    @property
    def cells(self) -> FrozenSet[Offset]:
        return self.ink | self.special

    @property
    def cell_count(self) -> int:
        return len(self.cells)

    def footprint(self, rotation: Rotation) -> Footprint:
        return self.footprints[int(rotation)]

    def __str__(self) -> str:
        fp = self.footprint(Rotation.R0)
        rows = []
        for r in range(fp.height):
            row = []
            for c in range(fp.width):
                if (r, c) in fp.special:
                    row.append(SPECIAL_CHAR)
                elif (r, c) in fp.offsets:
                    row.append(INK_CHAR)
                else:
                    row.append(EMPTY_CHAR)
            rows.append("".join(row).rstrip())
        header = f"{self.card_id}: {self.name} (cells={self.cell_count}, cost={self.cost})"
        return "\n".join([header, *rows])


def card_from_lines(card_id: int, name: str, cost: int, lines: Sequence[str]) -> CardDefinition:
    ink = set()
    special = set()
    for row, line in enumerate(lines):
        for col, ch in enumerate(line.rstrip("\n")):
            if ch == EMPTY_CHAR:
                continue
            if ch == INK_CHAR:
                ink.add((row, col))
            elif ch == SPECIAL_CHAR:
                special.add((row, col))
            else:
                raise CardLoadError(f"Card {card_id}: invalid cell character {ch!r}.")
    if not ink and not special:
        raise CardLoadError(f"Card {card_id} has no cells.")
    top = min(r for r, _ in ink | special)
    left = min(c for _, c in ink | special)
    ink_norm = frozenset((r - top, c - left) for r, c in ink)
    special_norm = frozenset((r - top, c - left) for r, c in special)
    return CardDefinition(card_id=int(card_id), name=name, cost=int(cost), ink=ink_norm, special=special_norm)


class CardTable(Mapping[int, CardDefinition]):
    """Read-only lookup of card definitions shared by a whole run."""

    def __init__(self, cards: Iterable[CardDefinition]) -> None:
        table: Dict[int, CardDefinition] = {}
        for card in cards:
            if card.card_id in table:
                raise CardLoadError(f"Duplicated card id: {card.card_id}")
            table[card.card_id] = card
        self._cards = table

    def __getitem__(self, card_id: int) -> CardDefinition:
        return self._cards[card_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._cards)

    def __len__(self) -> int:
        return len(self._cards)
