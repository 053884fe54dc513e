import numpy as np

from tableturf.core import (
    PASS,
    Action,
    CardTable,
    GameResult,
    GameState,
    Player,
    PlayerState,
    RulesEngine,
    board_from_lines,
    card_from_lines,
)
from tableturf.data import load_boards, load_cards, load_deck


def small_state(hand_a, hand_b=()) -> GameState:
    layout = board_from_lines("small", ["...", ".a.", "..."])
    players = (PlayerState(hand=list(hand_a), draw_pile=[]), PlayerState(hand=list(hand_b), draw_pile=[]))
    return GameState(layout=layout, board=layout.new_board(), players=players)


def dot_engine() -> RulesEngine:
    return RulesEngine(CardTable([card_from_lines(1, "Dot", 1, ["="])]))


def test_empty_hand_only_passes() -> None:
    engine = dot_engine()
    state = small_state([])
    assert engine.legal_actions(state, Player.A) == [PASS]
    assert engine.actions.count(state, Player.A) == 1
    rng = np.random.default_rng(0)
    assert all(engine.actions.sample(state, Player.A, rng) == PASS for _ in range(10))


def test_terminal_state_only_passes() -> None:
    engine = dot_engine()
    state = small_state([1])
    state.turn = state.max_turns + 1
    state.result = GameResult.DRAW
    assert engine.legal_actions(state, Player.A) == [PASS]


def test_legal_actions_are_ordered_and_stable() -> None:
    engine = dot_engine()
    state = small_state([1])
    actions = engine.legal_actions(state, Player.A)
    assert actions[0] == PASS
    # Four neighbours, each reachable with any of the four rotations.
    assert len(actions) == 1 + 4 * 4
    assert [a.sort_key() for a in actions] == sorted(a.sort_key() for a in actions)
    assert actions == engine.legal_actions(state.copy(), Player.A)
    assert {(a.row, a.col) for a in actions[1:]} == {(0, 1), (1, 0), (1, 2), (2, 1)}


def test_sample_draws_from_the_legal_set() -> None:
    engine = dot_engine()
    state = small_state([1])
    legal = set(engine.legal_actions(state, Player.A))
    rng = np.random.default_rng(5)
    drawn = {engine.actions.sample(state, Player.A, rng) for _ in range(3000)}
    assert drawn == legal


def test_count_matches_enumeration_on_opening() -> None:
    cards = load_cards()
    engine = RulesEngine(cards)
    deck = load_deck("starter")
    state = engine.new_game(load_boards()["starter"], deck, deck, rng=np.random.default_rng(1))
    for player in Player:
        legal = engine.legal_actions(state, player)
        assert engine.actions.count(state, player) == len(legal)
        assert len(set(legal)) == len(legal)
        for action in legal[1:]:
            assert engine.actions.explain(state, player, action) is None
            assert not action.special


def test_explain_reports_reason() -> None:
    engine = dot_engine()
    state = small_state([1], [1])
    assert "not in hand" in engine.actions.explain(state, Player.A, Action.put(2, 0, 1))
    assert "touch" in engine.actions.explain(state, Player.B, Action.put(1, 0, 1))


def test_starting_corner_counts_until_the_player_owns_ink() -> None:
    engine = dot_engine()
    layout = board_from_lines("corner", ["1..", "...", "..b"])
    players = (PlayerState(hand=[1], draw_pile=[]), PlayerState(hand=[], draw_pile=[]))
    state = GameState(layout=layout, board=layout.new_board(), players=players, turn=5)
    cells = {(a.row, a.col) for a in engine.legal_actions(state, Player.A)[1:]}
    assert cells == {(0, 0), (0, 1), (1, 0)}

    state.board[2, 0] = 1  # A now owns a cell far from its corner
    cells = {(a.row, a.col) for a in engine.legal_actions(state, Player.A)[1:]}
    assert cells == {(1, 0), (2, 1)}
