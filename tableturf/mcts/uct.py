from __future__ import annotations

import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np

from tableturf.core import PASS, Action, GameState, Player, RulesEngine

logger = logging.getLogger(__name__)

REWARD_MODES = ("outcome", "margin")


@dataclass
class MCTSConfig:
    iterations: int = 100
    exploration: float = math.sqrt(2.0)
    reward: str = "outcome"  # "outcome" (+1/0/-1) or "margin" (score difference share)
    workers: int = 1
    time_limit: Optional[float] = None  # seconds, checked between iterations

    def __post_init__(self) -> None:
        if self.reward not in REWARD_MODES:
            raise ValueError(f"reward must be one of {REWARD_MODES}, got {self.reward!r}.")
        if self.workers < 1:
            raise ValueError("workers must be at least 1.")
        if self.exploration < 0:
            raise ValueError("exploration must be non-negative.")


class NodeStatus(Enum):
    UNVISITED = "unvisited"
    EXPANDING = "expanding"
    VISITED = "visited"
    FULLY_EXPANDED = "fully_expanded"


class Node:
    __slots__ = ("parent", "action", "state", "children", "untried", "visit_count", "reward_sum")

    def __init__(self, parent: int, action: Optional[Action], state: GameState) -> None:
        self.parent: int = parent
        self.action: Optional[Action] = action
        self.state: GameState = state
        self.children: Dict[Action, int] = {}
        self.untried: Optional[List[Action]] = None  # filled on first visit
        self.visit_count: int = 0
        self.reward_sum: float = 0.0

    @property
    def status(self) -> NodeStatus:
        if self.untried is None:
            return NodeStatus.UNVISITED
        if not self.untried:
            return NodeStatus.FULLY_EXPANDED
        if not self.children:
            return NodeStatus.EXPANDING
        return NodeStatus.VISITED

    def mean_reward(self) -> float:
        if self.visit_count == 0:
            return 0.0
        return self.reward_sum / self.visit_count


class SearchTree:
    """Arena of nodes; parents and children refer to each other by index."""

    ROOT = 0

    def __init__(self, root_state: GameState) -> None:
        self.nodes: List[Node] = [Node(-1, None, root_state)]

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def root(self) -> Node:
        return self.nodes[self.ROOT]

    def add_child(self, parent: int, action: Action, state: GameState) -> int:
        index = len(self.nodes)
        self.nodes.append(Node(parent, action, state))
        self.nodes[parent].children[action] = index
        return index


@dataclass
class MCTSResult:
    action: Action
    actions: List[Action]  # root actions in legal order
    visit_counts: np.ndarray
    mean_rewards: np.ndarray
    iterations: int

    def stats(self) -> Dict[Action, Tuple[int, float]]:
        return {
            action: (int(visits), float(mean))
            for action, visits, mean in zip(self.actions, self.visit_counts, self.mean_rewards)
        }


RootStats = Dict[Action, Tuple[int, float]]  # action -> (visits, reward sum)


class MCTS:
    """UCT search for one side; the opponent is sampled, not searched."""

    def __init__(
        self,
        engine: RulesEngine,
        config: Optional[MCTSConfig] = None,
        *,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.engine = engine
        self.config = config or MCTSConfig()
        self.rng = rng or np.random.default_rng()

    # ------------------------------------------------------------------
    def select_action(self, state: GameState, player: Player, iteration_budget: Optional[int] = None) -> Action:
        return self.search(state, player, iteration_budget).action

    def search(self, state: GameState, player: Player, iteration_budget: Optional[int] = None) -> MCTSResult:
        budget = self.config.iterations if iteration_budget is None else iteration_budget
        legal = [] if state.is_terminal else self.engine.legal_actions(state, player)
        if not legal:
            return MCTSResult(PASS, [], np.zeros(0, dtype=np.int64), np.zeros(0), 0)
        if budget <= 0 and self.config.time_limit is None:
            logger.warning("Empty search budget (%d iterations); returning Pass.", budget)
            return self._empty_result(legal)
        if len(legal) == 1:
            return self._empty_result(legal)

        deadline = None
        if self.config.time_limit is not None:
            deadline = time.monotonic() + self.config.time_limit

        workers = self.config.workers
        if workers == 1:
            stats, done = self._run_tree(state.copy(), player, legal, budget, deadline, self.rng)
        else:
            stats, done = self._run_parallel(state, player, legal, budget, deadline, workers)
        result = self._decide(legal, stats, done)
        logger.debug(
            "search for %s finished after %d iterations: %s (visits=%d)",
            player.name,
            done,
            result.action,
            int(result.visit_counts.max()) if len(result.visit_counts) else 0,
        )
        return result

    # ------------------------------------------------------------------
    def _run_parallel(
        self,
        state: GameState,
        player: Player,
        legal: List[Action],
        budget: int,
        deadline: Optional[float],
        workers: int,
    ) -> Tuple[RootStats, int]:
        seeds = self.rng.integers(0, 2**32 - 1, size=workers, dtype=np.uint64)
        shares = [budget // workers + (1 if i < budget % workers else 0) for i in range(workers)]
        if budget <= 0:
            shares = [0] * workers
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(
                    self._run_tree,
                    state.copy(),
                    player,
                    legal,
                    share,
                    deadline,
                    np.random.default_rng(int(seed)),
                )
                for share, seed in zip(shares, seeds)
            ]
            results = [future.result() for future in futures]

        merged: RootStats = {}
        total = 0
        for stats, done in results:
            total += done
            for action, (visits, reward_sum) in stats.items():
                prev_visits, prev_sum = merged.get(action, (0, 0.0))
                merged[action] = (prev_visits + visits, prev_sum + reward_sum)
        return merged, total

    def _run_tree(
        self,
        root_state: GameState,
        player: Player,
        legal: List[Action],
        budget: int,
        deadline: Optional[float],
        rng: np.random.Generator,
    ) -> Tuple[RootStats, int]:
        tree = SearchTree(root_state)
        tree.root.untried = list(legal)
        done = 0
        while True:
            if budget > 0 and done >= budget:
                break
            if deadline is not None and time.monotonic() >= deadline:
                break
            if budget <= 0 and deadline is None:
                break
            self._iterate(tree, player, rng)
            done += 1

        stats: RootStats = {}
        for action, index in tree.root.children.items():
            child = tree[index]
            stats[action] = (child.visit_count, child.reward_sum)
        return stats, done

    def _iterate(self, tree: SearchTree, player: Player, rng: np.random.Generator) -> None:
        index = SearchTree.ROOT
        node = tree[index]
        # Selection
        while not node.state.is_terminal:
            if node.untried is None:
                node.untried = self.engine.legal_actions(node.state, player)
            if node.untried:
                break
            index = self._select_child(tree, node)
            node = tree[index]

        # Expansion
        if not node.state.is_terminal and node.untried:
            action = node.untried.pop(int(rng.integers(len(node.untried))))
            reply = self.engine.actions.sample(node.state, player.other, rng)
            pair = (action, reply) if player == Player.A else (reply, action)
            child_state = self.engine.apply(node.state, *pair, strict=False)
            index = tree.add_child(index, action, child_state)
            node = tree[index]

        # Simulation
        final = self.engine.play_out(node.state, rng)
        reward = self._reward(final, player)

        # Backpropagation
        while index != -1:
            node = tree[index]
            node.visit_count += 1
            node.reward_sum += reward
            index = node.parent

    def _select_child(self, tree: SearchTree, node: Node) -> int:
        log_parent = math.log(max(node.visit_count, 1))
        best_score = -math.inf
        best_index = -1
        for index in node.children.values():
            child = tree[index]
            if child.visit_count == 0:
                return index
            score = child.mean_reward() + self.config.exploration * math.sqrt(log_parent / child.visit_count)
            if score > best_score:
                best_score = score
                best_index = index
        if best_index < 0:
            raise RuntimeError("Failed to select child node.")
        return best_index

    def _reward(self, state: GameState, player: Player) -> float:
        mine = state.score(player)
        theirs = state.score(player.other)
        if self.config.reward == "margin":
            return (mine - theirs) / max(mine + theirs, 1)
        if mine > theirs:
            return 1.0
        if mine < theirs:
            return -1.0
        return 0.0

    # ------------------------------------------------------------------
    def _decide(self, legal: List[Action], stats: RootStats, iterations: int) -> MCTSResult:
        visits = np.zeros(len(legal), dtype=np.int64)
        means = np.zeros(len(legal), dtype=np.float64)
        for i, action in enumerate(legal):
            count, reward_sum = stats.get(action, (0, 0.0))
            visits[i] = count
            means[i] = reward_sum / count if count else 0.0
        best = 0
        for i in range(1, len(legal)):
            if (visits[i], means[i]) > (visits[best], means[best]):
                best = i
        # Nothing explored: fall back to Pass.
        action = legal[best] if visits[best] > 0 else PASS
        return MCTSResult(action, list(legal), visits, means, iterations)

    def _empty_result(self, legal: List[Action]) -> MCTSResult:
        return MCTSResult(
            PASS,
            list(legal),
            np.zeros(len(legal), dtype=np.int64),
            np.zeros(len(legal), dtype=np.float64),
            0,
        )
