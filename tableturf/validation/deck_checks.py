from __future__ import annotations

from collections import Counter
from typing import Iterable, List, Mapping

import numpy as np

from tableturf.core.board import BoardLayout, Cell, Player
from tableturf.core.cards import CardDefinition
from tableturf.core.config import DECK_SIZE
from tableturf.core.errors import BoardLoadError, MalformedDeck


def validate_deck(
    card_ids: Iterable[int],
    cards: Mapping[int, CardDefinition],
    *,
    deck_size: int = DECK_SIZE,
    max_copies: int = 1,
) -> List[int]:
    deck = [int(card_id) for card_id in card_ids]
    if len(deck) != deck_size:
        raise MalformedDeck(f"deck must contain {deck_size} cards, got {len(deck)}")
    unknown = sorted({card_id for card_id in deck if card_id not in cards})
    if unknown:
        raise MalformedDeck(f"deck references unknown card ids: {unknown}")
    over = sorted(card_id for card_id, copies in Counter(deck).items() if copies > max_copies)
    if over:
        raise MalformedDeck(f"deck holds more than {max_copies} copies of: {over}")
    return deck


def validate_layout(layout: BoardLayout) -> None:
    for player in Player:
        if player not in layout.starts and not np.any(
            (layout.cells == Cell.ink(player)) | (layout.cells == Cell.special(player))
        ):
            raise BoardLoadError(f"board {layout.name!r} gives player {player.name} no starting point")
    if not np.any(layout.cells == Cell.EMPTY):
        raise BoardLoadError(f"board {layout.name!r} has no empty cells")
