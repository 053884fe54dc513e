from __future__ import annotations

import re
from copy import deepcopy
from typing import Optional, Union

import numpy as np

from tableturf.core import Action, GameState, Player, RulesEngine
from tableturf.mcts import MCTS, MCTSConfig

_MCTS_PATTERN = re.compile(r"^mcts-(\d+)$")


class Policy:
    """Chooses one action per turn for a given side."""

    name = "policy"

    def act(self, state: GameState, player: Player) -> Action:
        raise NotImplementedError

    def spawn(self, seed: Optional[int] = None) -> "Policy":
        """Return an independent copy of this policy for another match or thread."""
        return self


class RandomPolicy(Policy):
    name = "random"

    def __init__(self, engine: RulesEngine, rng: Optional[np.random.Generator] = None) -> None:
        self.engine = engine
        self.rng = rng or np.random.default_rng()

    def act(self, state: GameState, player: Player) -> Action:
        return self.engine.actions.sample(state, player, self.rng)

    def spawn(self, seed: Optional[int] = None) -> "RandomPolicy":
        return RandomPolicy(self.engine, np.random.default_rng(seed))


class MCTSPolicy(Policy):
    def __init__(
        self,
        engine: RulesEngine,
        config: Optional[MCTSConfig] = None,
        *,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.engine = engine
        self._config = deepcopy(config) if config else MCTSConfig()
        self.mcts = MCTS(engine, config=self._config, rng=rng or np.random.default_rng())
        self.name = f"mcts-{self._config.iterations}"

    @property
    def config(self) -> MCTSConfig:
        return self._config

    def act(self, state: GameState, player: Player) -> Action:
        return self.mcts.select_action(state, player)

    def spawn(self, seed: Optional[int] = None) -> "MCTSPolicy":
        return MCTSPolicy(self.engine, config=self._config, rng=np.random.default_rng(seed))


def parse_policy_name(identifier: str) -> Optional[int]:
    """Return the iteration budget of an ``mcts-<N>`` identifier, None for ``random``."""
    name = identifier.strip().lower()
    if name == "random":
        return None
    match = _MCTS_PATTERN.match(name)
    if match is None:
        raise ValueError(f"Unknown AI identifier: {identifier!r} (expected 'random' or 'mcts-<N>').")
    return int(match.group(1))


def make_policy(
    identifier: Union[str, MCTSConfig],
    engine: RulesEngine,
    seed: Optional[int] = None,
    *,
    base_config: Optional[MCTSConfig] = None,
) -> Policy:
    rng = np.random.default_rng(seed)
    if isinstance(identifier, MCTSConfig):
        return MCTSPolicy(engine, identifier, rng=rng)
    iterations = parse_policy_name(identifier)
    if iterations is None:
        return RandomPolicy(engine, rng)
    config = deepcopy(base_config) if base_config else MCTSConfig()
    config.iterations = iterations
    return MCTSPolicy(engine, config, rng=rng)
