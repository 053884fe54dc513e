"""Board, cards and turn resolution for Tableturf battles."""

from .board import BoardLayout, Cell, Player, board_from_lines, format_board
from .cards import CardDefinition, CardTable, Footprint, card_from_lines
from .config import DECK_SIZE, GAUGE_CAP, HAND_SIZE, MAX_TURNS, RuleConfig
from .errors import (
    BoardLoadError,
    CardLoadError,
    IllegalActionRequested,
    MalformedDeck,
    RuleViolation,
    TableturfError,
)
from .geometry import Rotation
from .actions import ActionGenerator
from .state import PASS, Action, ActionKind, GameResult, GameState, PlayerState, TurnView, mirror_state
from .rules import RulesEngine

__all__ = [
    "Action",
    "ActionGenerator",
    "ActionKind",
    "BoardLayout",
    "BoardLoadError",
    "CardDefinition",
    "CardLoadError",
    "CardTable",
    "Cell",
    "DECK_SIZE",
    "Footprint",
    "GAUGE_CAP",
    "GameResult",
    "GameState",
    "HAND_SIZE",
    "IllegalActionRequested",
    "MAX_TURNS",
    "MalformedDeck",
    "PASS",
    "Player",
    "PlayerState",
    "Rotation",
    "RuleConfig",
    "RuleViolation",
    "RulesEngine",
    "TableturfError",
    "TurnView",
    "board_from_lines",
    "card_from_lines",
    "format_board",
    "mirror_state",
]
