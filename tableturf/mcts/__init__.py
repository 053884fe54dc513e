"""Monte Carlo Tree Search over the rules engine."""

from .uct import MCTS, MCTSConfig, MCTSResult, Node, NodeStatus, SearchTree

__all__ = ["MCTS", "MCTSConfig", "MCTSResult", "Node", "NodeStatus", "SearchTree"]
