from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from tableturf.validation.deck_checks import validate_deck, validate_layout

from .actions import ActionGenerator
from .board import BoardArray, BoardLayout, Cell, Player
from .cards import CardDefinition
from .config import RuleConfig
from .errors import IllegalActionRequested, RuleViolation
from .geometry import BoolArray, NEIGHBOURS_8, Offset, in_bounds, translate
from .state import Action, GameState, PlayerState, result_for_scores

logger = logging.getLogger(__name__)

# (cell kind rank, size rank); lower wins a contested cell.
Priority = Tuple[int, int]


class RulesEngine:
    """Owns turn resolution for one card table and rule set."""

    def __init__(self, cards: Mapping[int, CardDefinition], config: Optional[RuleConfig] = None) -> None:
        self.cards = cards
        self.config = config or RuleConfig()
        self.actions = ActionGenerator(cards, self.config)

    def new_game(
        self,
        layout: BoardLayout,
        deck_a: Sequence[int],
        deck_b: Sequence[int],
        *,
        rng: Optional[np.random.Generator] = None,
        shuffle: bool = True,
    ) -> GameState:
        validate_layout(layout)
        rng = rng if rng is not None else np.random.default_rng()
        players: List[PlayerState] = []
        for deck in (deck_a, deck_b):
            order = validate_deck(
                deck, self.cards, deck_size=self.config.deck_size, max_copies=self.config.max_copies
            )
            if shuffle:
                order = [order[int(i)] for i in rng.permutation(len(order))]
            hand_size = self.config.hand_size
            players.append(PlayerState(hand=order[:hand_size], draw_pile=order[hand_size:]))
        return GameState(
            layout=layout,
            board=layout.new_board(),
            players=(players[0], players[1]),
            turn=1,
            max_turns=self.config.max_turns,
        )

    def legal_actions(self, state: GameState, player: Player) -> List[Action]:
        return self.actions.legal_actions(state, player)

    def validate(self, state: GameState, player: Player, action: Action) -> None:
        reason = self.actions.explain(state, player, action)
        if reason is not None:
            raise IllegalActionRequested(
                f"Illegal action for player {player.name}: {action} ({reason})",
                player=player,
                action=action,
            )

    def apply(
        self,
        state: GameState,
        action_a: Action,
        action_b: Action,
        *,
        in_place: bool = False,
        strict: bool = True,
    ) -> GameState:
        if state.is_terminal:
            raise ValueError("Cannot apply actions to a terminal state.")
        if strict:
            # Both sides are judged against the board as it was before the turn.
            self.validate(state, Player.A, action_a)
            self.validate(state, Player.B, action_b)

        next_state = state if in_place else state.copy()
        board = next_state.board
        surrounded_before = None
        if self.config.gauge_rule == "surrounded":
            surrounded_before = [_surrounded_special(board, player) for player in Player]

        claims: Dict[Offset, List[Tuple[Priority, Player, bool]]] = {}
        overwrites = {Player.A: False, Player.B: False}
        for player, action in ((Player.A, action_a), (Player.B, action_b)):
            if action.is_pass:
                continue
            card = self.cards[action.card_id]
            footprint = card.footprint(action.rotation)
            overwrites[player] = action.special and self.config.special_overwrites_ink
            size_rank = card.cell_count if self.config.conflict_priority == "smaller" else -card.cell_count
            cells = translate(footprint.offsets, action.row, action.col)
            for offset, (row, col) in zip(footprint.offsets, cells):
                if not in_bounds(board.shape, row, col):
                    raise RuleViolation(f"Player {player.name} wrote outside the board at ({row}, {col}).")
                is_special = footprint.is_special(offset)
                priority = (0 if is_special else 1, size_rank)
                claims.setdefault((row, col), []).append((priority, player, is_special))

        # Every claim is checked before the first write.
        for (row, col), contenders in claims.items():
            current = Cell(int(board[row, col]))
            if current.is_fixed:
                raise RuleViolation(f"Claim on ({row}, {col}) hits {current.name}.")
            for _, player, _ in contenders:
                if current == Cell.EMPTY:
                    continue
                if overwrites[player] and current in (Cell.INK_A, Cell.INK_B):
                    continue
                raise RuleViolation(f"Player {player.name} wrote onto ({row}, {col}) holding {current.name}.")

        placed = [0, 0]
        for (row, col), contenders in claims.items():
            cell = self._resolve(contenders)
            board[row, col] = cell
            owner = cell.owner
            if owner is not None:
                placed[owner.index] += 1

        for player, action in ((Player.A, action_a), (Player.B, action_b)):
            player_state = next_state.player(player)
            gauge = player_state.gauge
            if action.is_pass:
                gauge += self.config.pass_gauge_bonus
            else:
                if self.config.gauge_rule == "placed":
                    gauge += placed[player.index]
                player_state.hand.remove(action.card_id)
                player_state.used.append(action.card_id)
                while len(player_state.hand) < self.config.hand_size and player_state.draw_pile:
                    player_state.hand.append(player_state.draw_pile.pop(0))
            if surrounded_before is not None:
                after = _surrounded_special(board, player)
                gauge += int(np.count_nonzero(after & ~surrounded_before[player.index]))
            gauge = min(gauge, self.config.gauge_cap)
            # The activation cost is paid from the capped gauge.
            if not action.is_pass and action.special:
                gauge -= self.cards[action.card_id].cost
                if gauge < 0:
                    raise RuleViolation(f"Gauge of player {player.name} went negative.")
            player_state.gauge = gauge

        next_state.last_actions = (action_a, action_b)
        next_state.turn += 1
        both_empty = not next_state.players[0].hand and not next_state.players[1].hand
        if next_state.turn > next_state.max_turns or both_empty:
            next_state.result = result_for_scores(*next_state.scores())
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "turn %d resolved: A=%s B=%s scores=%s",
                next_state.turn - 1,
                action_a,
                action_b,
                next_state.scores(),
            )
        return next_state

    def _resolve(self, contenders: List[Tuple[Priority, Player, bool]]) -> Cell:
        if len(contenders) == 1:
            _, player, is_special = contenders[0]
            return Cell.special(player) if is_special else Cell.ink(player)
        contenders = sorted(contenders)
        best, runner_up = contenders[0], contenders[1]
        if best[0] == runner_up[0]:
            if self.config.conflict_tie == "wall":
                return Cell.WALL
            is_special = next(c[2] for c in contenders if c[1] == Player.A)
            return Cell.special(Player.A) if is_special else Cell.ink(Player.A)
        _, player, is_special = best
        return Cell.special(player) if is_special else Cell.ink(player)

    def play_out(
        self,
        state: GameState,
        rng: np.random.Generator,
        *,
        in_place: bool = False,
    ) -> GameState:
        """Finish the match with both sides drawing uniformly from their legal actions."""
        current = state if in_place else state.copy()
        while not current.is_terminal:
            action_a = self.actions.sample(current, Player.A, rng)
            action_b = self.actions.sample(current, Player.B, rng)
            self.apply(current, action_a, action_b, in_place=True, strict=False)
        return current


def _surrounded_special(board: BoardArray, player: Player) -> BoolArray:
    """Own special cells whose eight neighbours are all filled; the edge counts as filled."""
    filled = np.pad(board != Cell.EMPTY, 1, constant_values=True)
    height, width = board.shape
    mask = board == Cell.special(player)
    for dr, dc in NEIGHBOURS_8:
        mask &= filled[1 + dr : 1 + dr + height, 1 + dc : 1 + dc + width]
    return mask
