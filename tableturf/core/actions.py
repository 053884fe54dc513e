from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

import numpy as np

from .board import Cell, Player, owned_mask
from .cards import CardDefinition, Footprint
from .config import RuleConfig
from .geometry import BoolArray, anchor_windows, dilate, in_bounds, translate
from .state import PASS, Action, GameState


@dataclass(frozen=True)
class PlacementGroup:
    """Legal anchors for one (card, rotation, special) combination."""

    card: CardDefinition
    footprint: Footprint
    special: bool
    anchors: BoolArray  # [row, col] -> placement anchored there is legal

    @property
    def count(self) -> int:
        return int(np.count_nonzero(self.anchors))

    def actions(self) -> List[Action]:
        return [
            Action.put(self.card.card_id, int(r), int(c), self.footprint.rotation, self.special)
            for r, c in np.argwhere(self.anchors)
        ]


class ActionGenerator:
    """Enumerates and samples legal actions for one side of a match."""

    def __init__(self, cards: Mapping[int, CardDefinition], config: Optional[RuleConfig] = None) -> None:
        self.cards = cards
        self.config = config or RuleConfig()

    # Masks -----------------------------------------------------------------

    def touch_sources(self, state: GameState, player: Player) -> BoolArray:
        """Cells a plain placement must touch.

        The starting corner counts while the player owns no cells at all, on any
        turn: a side whose first placements all lost their cells still plays from it.
        """
        own = owned_mask(state.board, player)
        if not own.any():
            own = own | state.layout.start_mask(player)
        return own

    def special_sources(self, state: GameState, player: Player) -> BoolArray:
        if self.config.special_anchor == "any":
            return owned_mask(state.board, player)
        return owned_mask(state.board, player, special_only=True)

    def landable(self, state: GameState, *, special: bool) -> BoolArray:
        board = state.board
        mask = board == Cell.EMPTY
        if special and self.config.special_overwrites_ink:
            mask |= (board == Cell.INK_A) | (board == Cell.INK_B)
        return mask

    def _reach(self, sources: BoolArray) -> BoolArray:
        return dilate(sources, self.config.adjacency) | sources

    def placement_groups(self, state: GameState, player: Player) -> List[PlacementGroup]:
        if state.is_terminal:
            return []
        player_state = state.player(player)
        hand = list(dict.fromkeys(player_state.hand))
        if not hand:
            return []

        plain_fit = self.landable(state, special=False)
        plain_touch = self._reach(self.touch_sources(state, player))
        special_fit: Optional[BoolArray] = None
        special_touch: Optional[BoolArray] = None

        groups: List[PlacementGroup] = []
        for card_id in hand:
            card = self.cards[card_id]
            can_special = player_state.gauge >= card.cost
            if can_special and special_fit is None:
                special_fit = self.landable(state, special=True)
                special_touch = self._reach(self.special_sources(state, player))
            for footprint in card.footprints:
                variants: List[Tuple[bool, BoolArray, BoolArray]] = [(False, plain_fit, plain_touch)]
                if can_special:
                    variants.append((True, special_fit, special_touch))
                for special, fit, touch in variants:
                    fits = anchor_windows(fit, footprint.offsets, footprint.size, reduce="all")
                    if not fits.any():
                        continue
                    anchors = fits & anchor_windows(touch, footprint.offsets, footprint.size, reduce="any")
                    if anchors.any():
                        groups.append(PlacementGroup(card, footprint, special, anchors))
        return groups

    # Public API ------------------------------------------------------------

    def legal_actions(self, state: GameState, player: Player) -> List[Action]:
        """Return Pass followed by every legal placement in a stable order."""
        puts: List[Action] = []
        for group in self.placement_groups(state, player):
            puts.extend(group.actions())
        puts.sort(key=Action.sort_key)
        return [PASS, *puts]

    def count(self, state: GameState, player: Player) -> int:
        return 1 + sum(group.count for group in self.placement_groups(state, player))

    def sample(self, state: GameState, player: Player, rng: np.random.Generator) -> Action:
        """Draw uniformly from the same set ``legal_actions`` returns."""
        groups = self.placement_groups(state, player)
        counts = [group.count for group in groups]
        pick = int(rng.integers(1 + sum(counts)))
        if pick == 0:
            return PASS
        pick -= 1
        for group, count in zip(groups, counts):
            if pick < count:
                flat = int(np.flatnonzero(group.anchors)[pick])
                row, col = divmod(flat, group.anchors.shape[1])
                return Action.put(group.card.card_id, row, col, group.footprint.rotation, group.special)
            pick -= count
        raise AssertionError("sample index exceeded the legal action count")

    def is_legal(self, state: GameState, player: Player, action: Action) -> bool:
        return self.explain(state, player, action) is None

    def explain(self, state: GameState, player: Player, action: Action) -> Optional[str]:
        """Return why ``action`` is illegal for ``player``, or None when it is legal."""
        if action.is_pass:
            return None
        if state.is_terminal:
            return "the match is over"
        player_state = state.player(player)
        if action.card_id not in player_state.hand:
            return f"card {action.card_id} is not in hand"
        card = self.cards[action.card_id]
        if action.special and player_state.gauge < card.cost:
            return f"gauge {player_state.gauge} is below cost {card.cost}"

        footprint = card.footprint(action.rotation)
        fit = self.landable(state, special=action.special)
        if action.special:
            touch = self._reach(self.special_sources(state, player))
        else:
            touch = self._reach(self.touch_sources(state, player))
        touching = False
        for row, col in translate(footprint.offsets, action.row, action.col):
            if not in_bounds(state.board.shape, row, col):
                return f"cell ({row}, {col}) is outside the board"
            if not fit[row, col]:
                return f"cell ({row}, {col}) is not free"
            touching = touching or bool(touch[row, col])
        if not touching:
            if action.special:
                return "special placement does not touch own special ink"
            return "placement does not touch own ink"
        return None
