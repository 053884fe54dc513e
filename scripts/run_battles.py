#!/usr/bin/env python3
"""Run a batch of Tableturf battles between two AIs and print a JSON summary."""

import argparse
import json
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

import yaml
from tqdm.auto import tqdm

from tableturf.core import GameResult, TurnView
from tableturf.data import load_board, load_cards, load_deck
from tableturf.evaluation import MatchConfig, MatchOutcome, simulate_match

logger = logging.getLogger("run_battles")


def load_config(path: Optional[str]) -> Dict:
    if not path:
        return {}
    cfg_path = Path(path)
    if not cfg_path.exists():
        return {}
    return yaml.safe_load(cfg_path.read_text()) or {}


def step_printer(pause: Callable[[str], object] = input) -> Callable[[TurnView], None]:
    """Return a playback callback that prints each turn and waits for Enter."""

    def on_turn(view: TurnView) -> None:
        print(view.render())
        print()
        pause("-- press Enter for the next turn --")

    return on_turn


def run_battles(
    config: MatchConfig,
    *,
    on_turn: Optional[Callable[[TurnView], None]] = None,
    progress: bool = False,
) -> Dict[str, object]:
    cards = load_cards()
    layout = load_board(config.board)
    deck_a = load_deck(config.deck_a)
    deck_b = load_deck(config.deck_b)
    ai_a = config.ai_spec(config.ai_a)
    ai_b = config.ai_spec(config.ai_b)

    outcomes: List[MatchOutcome] = []
    battles = range(config.battles)
    for index in tqdm(battles, desc="Battles", disable=not progress):
        outcome = simulate_match(
            deck_a,
            deck_b,
            layout,
            ai_a,
            ai_b,
            config.seed + index,
            cards=cards,
            rule_config=config.rules,
            on_turn=on_turn,
        )
        logger.info("battle %d: %d - %d", index + 1, outcome.score_a, outcome.score_b)
        outcomes.append(outcome)

    played = len(outcomes)
    a_wins = sum(1 for o in outcomes if o.result == GameResult.A_WIN)
    b_wins = sum(1 for o in outcomes if o.result == GameResult.B_WIN)
    return {
        "board": config.board,
        "ai_a": config.ai_a,
        "ai_b": config.ai_b,
        "battles": played,
        "a_wins": a_wins,
        "b_wins": b_wins,
        "draws": played - a_wins - b_wins,
        "a_winrate": a_wins / max(1, played),
        "mean_score_a": sum(o.score_a for o in outcomes) / max(1, played),
        "mean_score_b": sum(o.score_b for o in outcomes) / max(1, played),
        "scores": [[o.score_a, o.score_b] for o in outcomes],
        "rules": config.rules.to_dict(),
    }


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--config", type=str, default="configs/battle.yaml")
    parser.add_argument("--board")
    parser.add_argument("--deck-a")
    parser.add_argument("--deck-b")
    parser.add_argument("--ai-a", help="random or mcts-<N>")
    parser.add_argument("--ai-b", help="random or mcts-<N>")
    parser.add_argument("--battles", type=int)
    parser.add_argument("--seed", type=int)
    parser.add_argument("--workers", type=int, help="search threads per MCTS decision")
    parser.add_argument("--step", action="store_true", help="print every turn and wait for Enter")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = load_config(args.config)
    for key in ("board", "deck_a", "deck_b", "ai_a", "ai_b", "battles", "seed"):
        value = getattr(args, key)
        if value is not None:
            cfg[key] = value
    if args.workers is not None:
        cfg.setdefault("mcts", {})["workers"] = args.workers
    config = MatchConfig.from_dict(cfg)

    on_turn = step_printer() if args.step else None
    summary = run_battles(config, on_turn=on_turn, progress=not args.step)
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
