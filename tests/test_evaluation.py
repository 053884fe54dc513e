import logging
from typing import List

import numpy as np
import pytest

from tableturf.agents import MCTSPolicy, Policy, RandomPolicy, make_policy
from tableturf.core import PASS, Action, GameState, IllegalActionRequested, Player, RulesEngine, TurnView
from tableturf.core.state import result_for_scores
from tableturf.data import load_boards, load_cards, load_deck
from tableturf.evaluation import MatchConfig, evaluate_policies, run_match, simulate_match
from tableturf.mcts import MCTSConfig


class BadThenPass(Policy):
    name = "bad-then-pass"

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    def act(self, state: GameState, player: Player) -> Action:
        self.calls += 1
        if self.calls <= self.failures:
            return Action.put(999, 0, 0)
        return PASS


def setup():
    engine = RulesEngine(load_cards())
    return engine, load_boards()["starter"], load_deck("starter")


def test_simulate_match_is_deterministic() -> None:
    deck = load_deck("starter")
    first = simulate_match(deck, deck, "starter", "mcts-5", "random", seed=7)
    second = simulate_match(deck, deck, "starter", "mcts-5", "random", seed=7)
    assert first == second
    assert first.turns == 12
    assert first.result == result_for_scores(first.score_a, first.score_b)
    if first.score_a > first.score_b:
        assert first.winner == Player.A
    elif first.score_b > first.score_a:
        assert first.winner == Player.B
    else:
        assert first.winner is None


def test_simulate_match_accepts_search_config() -> None:
    deck = load_deck("starter")
    outcome = simulate_match(deck, deck, "crossroads", MCTSConfig(iterations=3, reward="margin"), "random", seed=1)
    assert outcome.score_a + outcome.score_b > 0


def test_run_match_reports_every_turn() -> None:
    engine, layout, deck = setup()
    views: List[TurnView] = []
    state = run_match(
        engine,
        layout,
        deck,
        deck,
        RandomPolicy(engine, np.random.default_rng(0)),
        RandomPolicy(engine, np.random.default_rng(1)),
        rng=np.random.default_rng(2),
        on_turn=views.append,
    )
    assert len(views) == 12
    assert [view.turn for view in views] == list(range(2, 14))
    assert views[-1].scores == state.scores()
    assert views[-1].result == state.result
    with pytest.raises(ValueError):
        views[0].board[0, 0] = 1
    assert "turn 12/12" in views[-1].render()


def test_run_match_reprompts_after_illegal_action(caplog) -> None:
    engine, layout, deck = setup()
    flaky = BadThenPass(failures=1)
    with caplog.at_level(logging.WARNING, logger="tableturf.evaluation.match"):
        state = run_match(engine, layout, deck, deck, flaky, RandomPolicy(engine), rng=np.random.default_rng(0))
    assert state.is_terminal
    assert flaky.calls == 13
    assert "Rejected action" in caplog.text


def test_run_match_gives_up_on_persistent_illegal_actions() -> None:
    engine, layout, deck = setup()
    with pytest.raises(IllegalActionRequested):
        run_match(engine, layout, deck, deck, BadThenPass(failures=10), RandomPolicy(engine), max_retries=2)


def test_evaluate_random_vs_random_small() -> None:
    engine, layout, deck = setup()
    result = evaluate_policies(
        engine, layout, deck, deck, RandomPolicy(engine), RandomPolicy(engine), matches=4, seed=0
    )
    assert result.games_played == 4
    assert result.policy_a_wins + result.policy_b_wins + result.draws == 4
    assert 0.0 <= result.winrate_policy_a() <= 1.0
    draw_share = result.draws / result.games_played
    assert result.winrate_policy_a() + result.winrate_policy_b() + draw_share == pytest.approx(1.0)


def test_evaluate_is_independent_of_worker_count() -> None:
    engine, layout, deck = setup()
    kwargs = dict(matches=4, seed=5)
    serial = evaluate_policies(engine, layout, deck, deck, RandomPolicy(engine), RandomPolicy(engine), **kwargs)
    threaded = evaluate_policies(
        engine, layout, deck, deck, RandomPolicy(engine), RandomPolicy(engine), workers=2, **kwargs
    )
    assert serial == threaded


def test_make_policy_identifiers() -> None:
    engine, _, _ = setup()
    assert isinstance(make_policy("random", engine, seed=0), RandomPolicy)
    policy = make_policy("mcts-10", engine, seed=0)
    assert isinstance(policy, MCTSPolicy)
    assert policy.config.iterations == 10
    assert policy.name == "mcts-10"
    with pytest.raises(ValueError):
        make_policy("greedy", engine)


def test_match_config_from_dict() -> None:
    config = MatchConfig.from_dict({"ai_a": "mcts-20", "mcts": {"reward": "margin"}, "rules": {"adjacency": 8}})
    assert config.rules.adjacency == 8
    spec = config.ai_spec("mcts-20")
    assert isinstance(spec, MCTSConfig)
    assert spec.iterations == 20 and spec.reward == "margin"
    assert config.ai_spec("random") == "random"
    with pytest.raises(ValueError):
        MatchConfig.from_dict({"rules": {"colours": 3}})
