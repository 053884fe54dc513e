"""Bundled card, board and deck definitions and their loaders."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from tableturf.core.board import BoardLayout, board_from_lines
from tableturf.core.cards import CardDefinition, CardTable, card_from_lines
from tableturf.core.errors import BoardLoadError, CardLoadError, MalformedDeck

DATA_DIR = Path(__file__).resolve().parent
CARDS_PATH = DATA_DIR / "cards.yaml"
BOARDS_PATH = DATA_DIR / "boards.yaml"
DECKS_DIR = DATA_DIR / "decks"

PathLike = Union[str, Path]


def _read_yaml(path: Path, error: type) -> Any:
    try:
        return yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as exc:
        raise error(f"Cannot read {path}: {exc}") from exc


def _lines(shape: Any) -> List[str]:
    if isinstance(shape, str):
        return shape.split("\n")
    if isinstance(shape, list) and all(isinstance(line, str) for line in shape):
        return list(shape)
    raise TypeError("shape must be a string or a list of strings")


def parse_card(entry: Dict[str, Any]) -> CardDefinition:
    try:
        card_id = int(entry["id"])
        name = str(entry.get("name", f"card-{card_id}"))
        cost = int(entry["cost"])
        lines = _lines(entry["shape"])
    except (KeyError, TypeError, ValueError) as exc:
        raise CardLoadError(f"Malformed card entry {entry!r}: {exc}") from exc
    return card_from_lines(card_id, name, cost, lines)


def load_cards(path: Optional[PathLike] = None) -> CardTable:
    if path is None:
        return _bundled_cards()
    return _load_cards(Path(path))


def _load_cards(path: Path) -> CardTable:
    data = _read_yaml(path, CardLoadError)
    entries = data.get("cards") if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise CardLoadError(f"{path} must hold a list of cards.")
    return CardTable(parse_card(entry) for entry in entries)


@lru_cache(maxsize=1)
def _bundled_cards() -> CardTable:
    return _load_cards(CARDS_PATH)


def load_boards(path: Optional[PathLike] = None) -> Dict[str, BoardLayout]:
    if path is None:
        return dict(_bundled_boards())
    return _load_boards(Path(path))


def _load_boards(path: Path) -> Dict[str, BoardLayout]:
    data = _read_yaml(path, BoardLoadError)
    if not isinstance(data, dict):
        raise BoardLoadError(f"{path} must map board names to layouts.")
    boards: Dict[str, BoardLayout] = {}
    for name, entry in data.items():
        rows = entry.get("rows") if isinstance(entry, dict) else entry
        try:
            lines = _lines(rows)
        except TypeError as exc:
            raise BoardLoadError(f"Board {name!r}: {exc}") from exc
        boards[str(name)] = board_from_lines(str(name), lines)
    return boards


@lru_cache(maxsize=1)
def _bundled_boards() -> Dict[str, BoardLayout]:
    return _load_boards(BOARDS_PATH)


def load_board(name: str, path: Optional[PathLike] = None) -> BoardLayout:
    boards = load_boards(path)
    if name not in boards:
        raise BoardLoadError(f"Unknown board {name!r}; available: {sorted(boards)}")
    return boards[name]


def load_deck(path: PathLike) -> List[int]:
    """Read a deck file: one card id per line, ``#`` starts a comment.

    A bare name such as ``"starter"`` resolves to a bundled deck.
    """
    deck_path = Path(path)
    if not deck_path.exists() and not deck_path.suffix:
        deck_path = DECKS_DIR / f"{path}.txt"
    try:
        text = deck_path.read_text()
    except OSError as exc:
        raise MalformedDeck(f"Cannot read deck {deck_path}: {exc}") from exc
    deck: List[int] = []
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        token = line.split()[0]
        try:
            deck.append(int(token))
        except ValueError as exc:
            raise MalformedDeck(f"{deck_path}:{number}: {token!r} is not a card id") from exc
    return deck


__all__ = [
    "BOARDS_PATH",
    "CARDS_PATH",
    "DECKS_DIR",
    "load_board",
    "load_boards",
    "load_cards",
    "load_deck",
    "parse_card",
]
