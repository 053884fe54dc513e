import logging

import numpy as np
import pytest

from tableturf.agents import MCTSPolicy, RandomPolicy
from tableturf.core import (
    PASS,
    CardTable,
    GameState,
    Player,
    PlayerState,
    RulesEngine,
    board_from_lines,
    card_from_lines,
)
from tableturf.data import load_boards, load_cards, load_deck
from tableturf.evaluation import evaluate_policies
from tableturf.mcts import MCTS, MCTSConfig, Node, NodeStatus, SearchTree

TRIPLE, DOT = 3, 1


def final_turn_state() -> GameState:
    """A trails 1-3 on the last turn; only the three-cell card overtakes B."""
    layout = board_from_lines("endgame", ["bbb.", "....", "a..."])
    players = (
        PlayerState(hand=[DOT, TRIPLE], draw_pile=[]),
        PlayerState(hand=[], draw_pile=[]),
    )
    return GameState(layout=layout, board=layout.new_board(), players=players, turn=1, max_turns=1)


def endgame_engine() -> RulesEngine:
    return RulesEngine(
        CardTable([card_from_lines(DOT, "Dot", 1, ["="]), card_from_lines(TRIPLE, "Triple", 1, ["==="])])
    )


def opening_state():
    engine = RulesEngine(load_cards())
    deck = load_deck("starter")
    state = engine.new_game(load_boards()["starter"], deck, deck, rng=np.random.default_rng(0))
    return engine, state


@pytest.mark.parametrize("reward", ["outcome", "margin"])
def test_mcts_finds_the_only_winning_card(reward: str) -> None:
    engine = endgame_engine()
    state = final_turn_state()
    mcts = MCTS(engine, MCTSConfig(iterations=300, reward=reward), rng=np.random.default_rng(0))
    result = mcts.search(state, Player.A)
    assert result.action.card_id == TRIPLE
    after = engine.apply(state, result.action, PASS)
    assert after.winner() == Player.A


def test_empty_budget_returns_pass(caplog) -> None:
    engine, state = opening_state()
    mcts = MCTS(engine, MCTSConfig(iterations=0), rng=np.random.default_rng(0))
    with caplog.at_level(logging.WARNING, logger="tableturf.mcts.uct"):
        assert mcts.select_action(state, Player.A) == PASS
    assert "Empty search budget" in caplog.text
    assert mcts.select_action(state, Player.A, iteration_budget=-5) == PASS


def test_terminal_root_returns_pass() -> None:
    engine = endgame_engine()
    state = engine.apply(final_turn_state(), PASS, PASS)
    assert state.is_terminal
    mcts = MCTS(engine, MCTSConfig(iterations=10), rng=np.random.default_rng(0))
    assert mcts.select_action(state, Player.A) == PASS


def test_visit_counts_add_up_to_iterations() -> None:
    engine, state = opening_state()
    mcts = MCTS(engine, MCTSConfig(iterations=25), rng=np.random.default_rng(1))
    result = mcts.search(state, Player.B)
    assert result.iterations == 25
    assert int(result.visit_counts.sum()) == 25
    assert result.action in engine.legal_actions(state, Player.B)
    assert len(result.actions) == len(result.visit_counts) == len(result.mean_rewards)
    best = result.actions.index(result.action)
    assert result.visit_counts[best] == result.visit_counts.max()
    stats = result.stats()
    assert stats[result.action][0] == int(result.visit_counts[best])
    assert sum(visits for visits, _ in stats.values()) == 25


def test_root_parallel_workers_merge_visit_counts() -> None:
    engine, state = opening_state()
    snapshot = state.copy()
    mcts = MCTS(engine, MCTSConfig(iterations=41, workers=4), rng=np.random.default_rng(2))
    result = mcts.search(state, Player.A)
    assert result.iterations == 41
    assert int(result.visit_counts.sum()) == 41
    assert np.array_equal(state.board, snapshot.board)
    assert state.player(Player.A).hand == snapshot.player(Player.A).hand


def test_search_is_reproducible_with_seed() -> None:
    engine, state = opening_state()
    first = MCTS(engine, MCTSConfig(iterations=20), rng=np.random.default_rng(9)).search(state, Player.A)
    second = MCTS(engine, MCTSConfig(iterations=20), rng=np.random.default_rng(9)).search(state, Player.A)
    assert first.action == second.action
    assert np.array_equal(first.visit_counts, second.visit_counts)


def test_time_limit_without_iteration_budget() -> None:
    engine, state = opening_state()
    mcts = MCTS(engine, MCTSConfig(iterations=0, time_limit=0.05), rng=np.random.default_rng(3))
    result = mcts.search(state, Player.A)
    assert result.iterations >= 1
    assert result.action in engine.legal_actions(state, Player.A)


def test_node_status_transitions() -> None:
    engine = endgame_engine()
    tree = SearchTree(final_turn_state())
    root = tree.root
    assert root.status == NodeStatus.UNVISITED
    root.untried = engine.legal_actions(root.state, Player.A)
    assert root.status == NodeStatus.EXPANDING
    action = root.untried.pop()
    child = tree.add_child(SearchTree.ROOT, action, engine.apply(root.state, action, PASS))
    assert root.status == NodeStatus.VISITED
    assert tree[child].parent == SearchTree.ROOT
    root.untried.clear()
    assert root.status == NodeStatus.FULLY_EXPANDED
    assert isinstance(tree[child], Node)


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        MCTSConfig(reward="score")
    with pytest.raises(ValueError):
        MCTSConfig(workers=0)


def test_mcts_beats_random_in_short_series() -> None:
    engine, _ = opening_state()
    deck = load_deck("starter")
    mcts_policy = MCTSPolicy(engine, MCTSConfig(iterations=60, reward="margin"))
    result = evaluate_policies(
        engine,
        load_boards()["starter"],
        deck,
        deck,
        mcts_policy,
        RandomPolicy(engine),
        matches=6,
        seed=2024,
    )
    assert result.games_played == 6
    assert result.policy_a_wins > result.policy_b_wins
    assert result.average_margin > 0


@pytest.mark.slow
def test_mcts_1000_wins_most_matches_against_random() -> None:
    engine, _ = opening_state()
    deck = load_deck("starter")
    result = evaluate_policies(
        engine,
        load_boards()["starter"],
        deck,
        deck,
        MCTSPolicy(engine, MCTSConfig(iterations=1000)),
        RandomPolicy(engine),
        matches=100,
        seed=0,
        workers=4,
    )
    assert result.winrate_policy_a() >= 0.8
