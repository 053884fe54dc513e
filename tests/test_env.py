import numpy as np
import pytest

from tableturf import TableturfEnv
from tableturf.core import PASS, IllegalActionRequested, Player


def test_reset_returns_valid_observation():
    env = TableturfEnv()
    obs, info = env.reset(seed=0)

    assert obs["board"].shape == (10, 10)
    assert obs["gauges"].tolist() == [0, 0]
    assert obs["hand"].shape == (4,)
    assert int(obs["turn"]) == 1
    assert info["legal_action_mask"].shape == (env.action_space.n,)
    assert info["legal_action_mask"][0] == 1
    assert env.observation_space.contains(obs)


def test_legal_mask_matches_enumeration():
    env = TableturfEnv()
    env.reset(seed=1)
    mask = env.legal_action_mask()
    legal = env.engine.legal_actions(env.state, Player.A)
    assert np.count_nonzero(mask) == len(legal)
    for action in legal:
        index = env.encode_action(action)
        assert mask[index] == 1
        assert env.decode_action(index) == action


def test_step_places_ink_and_advances_turn():
    env = TableturfEnv(opponent="random")
    obs, info = env.reset(seed=2)
    placements = np.flatnonzero(info["legal_action_mask"])[1:]
    next_obs, reward, terminated, truncated, next_info = env.step(int(placements[0]))

    assert reward == 0.0
    assert not terminated
    assert not truncated
    assert int(next_obs["turn"]) == 2
    assert next_info["scores"][0] > 0
    assert np.any(next_obs["board"] != obs["board"])


def test_illegal_step_is_rejected_without_side_effects():
    env = TableturfEnv()
    _, info = env.reset(seed=3)
    illegal = int(np.flatnonzero(info["legal_action_mask"] == 0)[0])
    board_before = env.state.board.copy()
    with pytest.raises(IllegalActionRequested):
        env.step(illegal)
    assert env.state.turn == 1
    assert np.array_equal(env.state.board, board_before)
    with pytest.raises(ValueError):
        env.step(env.action_space.n)


def test_episode_of_passes_terminates_with_outcome_reward():
    env = TableturfEnv(player=Player.B, render_mode="ansi")
    env.reset(seed=4)
    terminated = False
    steps = 0
    while not terminated:
        _, reward, terminated, _, _ = env.step(0)
        steps += 1
    assert steps == 12
    assert reward in (-1.0, 0.0, 1.0)
    assert env.decode_action(0) == PASS
    assert "turn 12/12" in env.render()
