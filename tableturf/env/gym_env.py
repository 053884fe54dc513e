from __future__ import annotations

from typing import Dict, Mapping, Optional, Sequence, Union

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from tableturf.agents import Policy, RandomPolicy, make_policy
from tableturf.core import (
    PASS,
    Action,
    BoardLayout,
    CardDefinition,
    Cell,
    GameState,
    Player,
    Rotation,
    RuleConfig,
    RulesEngine,
)
from tableturf.data import load_board, load_cards, load_deck

N_ROTATIONS = len(Rotation)


class TableturfEnv(gym.Env):
    """One side of a match against a fixed opponent policy.

    Action ``0`` is Pass; every other index encodes
    ``(hand slot, rotation, row, col, special)`` of a placement.
    """

    metadata = {"render_modes": ["ansi"], "render_fps": 4}

    def __init__(
        self,
        *,
        cards: Optional[Mapping[int, CardDefinition]] = None,
        board: Union[str, BoardLayout] = "starter",
        deck: Union[str, Sequence[int]] = "starter",
        opponent_deck: Union[str, Sequence[int], None] = None,
        opponent: Union[str, Policy, None] = None,
        player: Player = Player.A,
        rule_config: Optional[RuleConfig] = None,
        render_mode: Optional[str] = None,
    ) -> None:
        super().__init__()
        self.engine = RulesEngine(cards if cards is not None else load_cards(), rule_config)
        self.layout = board if isinstance(board, BoardLayout) else load_board(board)
        self.deck = load_deck(deck) if isinstance(deck, str) else list(deck)
        if opponent_deck is None:
            self.opponent_deck = list(self.deck)
        elif isinstance(opponent_deck, str):
            self.opponent_deck = load_deck(opponent_deck)
        else:
            self.opponent_deck = list(opponent_deck)
        if isinstance(opponent, str):
            opponent = make_policy(opponent, self.engine)
        self.opponent: Policy = opponent or RandomPolicy(self.engine)
        self.player = Player(player)
        self.render_mode = render_mode

        config = self.engine.config
        height, width = self.layout.shape
        self._shape = (height, width)
        self.observation_space = spaces.Dict(
            {
                "board": spaces.Box(
                    low=int(Cell.OUT_OF_BOUNDS), high=int(Cell.SPECIAL_B), shape=(height, width), dtype=np.int8
                ),
                "gauges": spaces.Box(low=0, high=config.gauge_cap, shape=(2,), dtype=np.int64),
                "hand": spaces.Box(low=-1, high=np.iinfo(np.int32).max, shape=(config.hand_size,), dtype=np.int64),
                "turn": spaces.Box(low=1, high=config.max_turns + 1, shape=(), dtype=np.int64),
            }
        )
        self.action_space = spaces.Discrete(1 + config.hand_size * N_ROTATIONS * height * width * 2)
        self._state: Optional[GameState] = None

    # ------------------------------------------------------------------
    @property
    def state(self) -> GameState:
        if self._state is None:
            raise RuntimeError("Call reset() before using the environment.")
        return self._state

    def reset(self, *, seed: Optional[int] = None, options: Optional[Dict] = None):
        super().reset(seed=seed)
        decks = (self.deck, self.opponent_deck)
        if self.player == Player.B:
            decks = decks[::-1]
        self._state = self.engine.new_game(self.layout, decks[0], decks[1], rng=self.np_random)
        self.opponent = self.opponent.spawn(int(self.np_random.integers(2**32)))
        return self._build_observation(), self._build_info()

    def step(self, action_index: int):
        if not self.action_space.contains(action_index):
            raise ValueError(f"Action index {action_index} out of bounds.")
        state = self.state
        if state.is_terminal:
            raise ValueError("Episode is over; call reset().")
        action = self.decode_action(int(action_index))
        # Raises IllegalActionRequested and leaves the match untouched.
        self.engine.validate(state, self.player, action)

        reply = self.opponent.act(state.copy(), self.player.other)
        pair = (action, reply) if self.player == Player.A else (reply, action)
        self._state = self.engine.apply(state, *pair)

        terminated = self._state.is_terminal
        reward = self._compute_reward() if terminated else 0.0
        return self._build_observation(), reward, terminated, False, self._build_info()

    def legal_action_mask(self) -> np.ndarray:
        mask = np.zeros(self.action_space.n, dtype=np.int8)
        for action in self.engine.legal_actions(self.state, self.player):
            mask[self.encode_action(action)] = 1
        return mask

    def encode_action(self, action: Action) -> int:
        if action.is_pass:
            return 0
        hand = self.state.player(self.player).hand
        if action.card_id not in hand:
            raise ValueError(f"Card {action.card_id} is not in hand.")
        height, width = self._shape
        index = hand.index(action.card_id)
        index = index * N_ROTATIONS + int(action.rotation)
        index = index * height + action.row
        index = index * width + action.col
        return 1 + index * 2 + int(action.special)

    def decode_action(self, index: int) -> Action:
        if index == 0:
            return PASS
        height, width = self._shape
        index -= 1
        special = bool(index % 2)
        index //= 2
        col = index % width
        index //= width
        row = index % height
        index //= height
        rotation = Rotation(index % N_ROTATIONS)
        slot = index // N_ROTATIONS
        hand = self.state.player(self.player).hand
        if slot >= len(hand):
            raise ValueError(f"Hand slot {slot} is empty.")
        return Action.put(hand[slot], row, col, rotation, special)

    def render(self):
        if self.render_mode != "ansi":
            raise NotImplementedError("Only 'ansi' render mode is supported.")
        return self.state.view().render()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _build_observation(self) -> Dict[str, np.ndarray]:
        state = self.state
        hand_size = self.engine.config.hand_size
        hand = np.full(hand_size, -1, dtype=np.int64)
        own_hand = state.player(self.player).hand
        hand[: len(own_hand)] = own_hand
        return {
            "board": state.board.copy(),
            "gauges": np.array([p.gauge for p in state.players], dtype=np.int64),
            "hand": hand,
            "turn": np.array(state.turn, dtype=np.int64),
        }

    def _build_info(self) -> Dict[str, object]:
        scores = self.state.scores()
        return {"legal_action_mask": self.legal_action_mask(), "scores": scores}

    def _compute_reward(self) -> float:
        winner = self.state.winner()
        if winner is None:
            return 0.0
        return 1.0 if winner == self.player else -1.0
