from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

import numpy as np

from tableturf.agents import Policy, make_policy, parse_policy_name
from tableturf.core import (
    Action,
    BoardLayout,
    CardDefinition,
    GameResult,
    GameState,
    IllegalActionRequested,
    Player,
    RuleConfig,
    RulesEngine,
    TurnView,
)
from tableturf.data import load_boards, load_cards
from tableturf.mcts import MCTSConfig

logger = logging.getLogger(__name__)

TurnCallback = Callable[[TurnView], None]
AISpec = Union[str, MCTSConfig]


@dataclass(frozen=True)
class MatchOutcome:
    score_a: int
    score_b: int
    winner: Optional[Player]
    turns: int = 0

    @property
    def result(self) -> GameResult:
        if self.winner == Player.A:
            return GameResult.A_WIN
        if self.winner == Player.B:
            return GameResult.B_WIN
        return GameResult.DRAW

    @classmethod
    def from_state(cls, state: GameState) -> "MatchOutcome":
        score_a, score_b = state.scores()
        return cls(score_a=score_a, score_b=score_b, winner=state.winner(), turns=state.turn - 1)


@dataclass
class EvaluationResult:
    games_played: int
    policy_a_wins: int
    policy_b_wins: int
    draws: int
    average_margin: float  # policy_a score minus policy_b score

    def winrate_policy_a(self) -> float:
        return self.policy_a_wins / max(1, self.games_played)

    def winrate_policy_b(self) -> float:
        return self.policy_b_wins / max(1, self.games_played)


def _ask(
    engine: RulesEngine,
    policy: Policy,
    state: GameState,
    player: Player,
    max_retries: int,
) -> Action:
    for attempt in range(max_retries + 1):
        # Policies get their own copy so they can never touch the live board.
        action = policy.act(state.copy(), player)
        try:
            engine.validate(state, player, action)
        except IllegalActionRequested as exc:
            logger.warning("Rejected action from %s (attempt %d): %s", policy.name, attempt + 1, exc)
            continue
        return action
    raise IllegalActionRequested(
        f"{policy.name} produced no legal action for player {player.name} after {max_retries + 1} attempts",
        player=player,
    )


def run_match(
    engine: RulesEngine,
    layout: BoardLayout,
    deck_a: Sequence[int],
    deck_b: Sequence[int],
    policy_a: Policy,
    policy_b: Policy,
    *,
    rng: Optional[np.random.Generator] = None,
    on_turn: Optional[TurnCallback] = None,
    max_retries: int = 2,
) -> GameState:
    """Play one match to the end and return the terminal state."""
    state = engine.new_game(layout, deck_a, deck_b, rng=rng)
    while not state.is_terminal:
        action_a = _ask(engine, policy_a, state, Player.A, max_retries)
        action_b = _ask(engine, policy_b, state, Player.B, max_retries)
        state = engine.apply(state, action_a, action_b, in_place=True)
        if on_turn is not None:
            on_turn(state.view())
    logger.info(
        "match on %s finished: %s %d - %d %s",
        layout.name,
        policy_a.name,
        state.score(Player.A),
        state.score(Player.B),
        policy_b.name,
    )
    return state


def _resolve_board(board: Union[str, BoardLayout]) -> BoardLayout:
    if isinstance(board, BoardLayout):
        return board
    boards = load_boards()
    if board not in boards:
        raise KeyError(f"Unknown board: {board!r}")
    return boards[board]


def simulate_match(
    deck_a: Sequence[int],
    deck_b: Sequence[int],
    board: Union[str, BoardLayout],
    ai_a: AISpec,
    ai_b: AISpec,
    seed: int,
    *,
    cards: Optional[Mapping[int, CardDefinition]] = None,
    rule_config: Optional[RuleConfig] = None,
    on_turn: Optional[TurnCallback] = None,
) -> MatchOutcome:
    """Play one fully seeded match; identical arguments give an identical outcome."""
    if cards is None:
        cards = load_cards()
    engine = RulesEngine(cards, rule_config)
    layout = _resolve_board(board)
    deal_seed, seed_a, seed_b = np.random.SeedSequence(seed).spawn(3)
    policy_a = make_policy(ai_a, engine, seed=_as_int(seed_a))
    policy_b = make_policy(ai_b, engine, seed=_as_int(seed_b))
    state = run_match(
        engine,
        layout,
        deck_a,
        deck_b,
        policy_a,
        policy_b,
        rng=np.random.default_rng(deal_seed),
        on_turn=on_turn,
    )
    return MatchOutcome.from_state(state)


def _as_int(sequence: np.random.SeedSequence) -> int:
    return int(sequence.generate_state(1)[0])


def evaluate_policies(
    engine: RulesEngine,
    layout: BoardLayout,
    deck_a: Sequence[int],
    deck_b: Sequence[int],
    policy_a: Policy,
    policy_b: Policy,
    *,
    matches: int,
    seed: int = 0,
    swap_sides: bool = True,
    workers: int = 1,
    on_match: Optional[Callable[[MatchOutcome], None]] = None,
) -> EvaluationResult:
    """Play ``matches`` matches; on odd matches the policies swap seats when ``swap_sides``.

    Decks travel with their policy, so ``deck_a`` is always played by ``policy_a``.
    """
    match_seeds = [int(s) for s in np.random.default_rng(seed).integers(2**32, size=max(matches, 0))]

    def play(index: int) -> float:
        swapped = swap_sides and index % 2 == 1
        base = match_seeds[index]
        first = policy_a.spawn(base + 1)
        second = policy_b.spawn(base + 2)
        if swapped:
            state = run_match(
                engine, layout, deck_b, deck_a, second, first, rng=np.random.default_rng(base)
            )
            margin = state.score(Player.B) - state.score(Player.A)
        else:
            state = run_match(
                engine, layout, deck_a, deck_b, first, second, rng=np.random.default_rng(base)
            )
            margin = state.score(Player.A) - state.score(Player.B)
        if on_match is not None:
            on_match(MatchOutcome.from_state(state))
        return float(margin)

    if workers <= 1:
        margins: List[float] = [play(i) for i in range(matches)]
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            margins = list(executor.map(play, range(matches)))

    wins = sum(1 for m in margins if m > 0)
    losses = sum(1 for m in margins if m < 0)
    return EvaluationResult(
        games_played=len(margins),
        policy_a_wins=wins,
        policy_b_wins=losses,
        draws=len(margins) - wins - losses,
        average_margin=float(np.mean(margins)) if margins else 0.0,
    )


@dataclass
class MatchConfig:
    board: str = "starter"
    deck_a: str = "starter"
    deck_b: str = "starter"
    ai_a: str = "mcts-100"
    ai_b: str = "random"
    battles: int = 10
    seed: int = 0
    rules: RuleConfig = field(default_factory=RuleConfig)
    mcts: MCTSConfig = field(default_factory=MCTSConfig)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "MatchConfig":
        data = dict(data or {})
        rules = RuleConfig.from_dict(data.pop("rules", None))
        mcts = MCTSConfig(**(data.pop("mcts", None) or {}))
        return cls(rules=rules, mcts=mcts, **data)

    def ai_spec(self, identifier: str) -> AISpec:
        """Turn an ``mcts-<N>`` name into a config carrying the shared search settings."""
        iterations = parse_policy_name(identifier)
        if iterations is None:
            return identifier
        return replace(self.mcts, iterations=iterations)
