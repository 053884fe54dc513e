"""Tableturf rules engine and Monte Carlo tree search."""

from . import core, data, mcts, agents, evaluation, env, validation
from .core import (
    PASS,
    Action,
    BoardLayout,
    CardDefinition,
    CardTable,
    Cell,
    GameResult,
    GameState,
    Player,
    Rotation,
    RuleConfig,
    RulesEngine,
)
from .data import load_board, load_boards, load_cards, load_deck
from .mcts import MCTS, MCTSConfig, MCTSResult
from .agents import MCTSPolicy, Policy, RandomPolicy, make_policy
from .evaluation import EvaluationResult, MatchOutcome, evaluate_policies, run_match, simulate_match
from .env import TableturfEnv

__all__ = [
    "core",
    "data",
    "mcts",
    "agents",
    "evaluation",
    "env",
    "validation",
    "PASS",
    "Action",
    "BoardLayout",
    "CardDefinition",
    "CardTable",
    "Cell",
    "GameResult",
    "GameState",
    "Player",
    "Rotation",
    "RuleConfig",
    "RulesEngine",
    "load_board",
    "load_boards",
    "load_cards",
    "load_deck",
    "MCTS",
    "MCTSConfig",
    "MCTSResult",
    "MCTSPolicy",
    "Policy",
    "RandomPolicy",
    "make_policy",
    "EvaluationResult",
    "MatchOutcome",
    "evaluate_policies",
    "run_match",
    "simulate_match",
    "TableturfEnv",
]
