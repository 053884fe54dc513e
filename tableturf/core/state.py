from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np

from .board import BoardArray, BoardLayout, Player, count_cells, format_board, swap_owners
from .geometry import Rotation


class GameResult(Enum):
    ONGOING = "ongoing"
    A_WIN = "a_win"
    B_WIN = "b_win"
    DRAW = "draw"


class ActionKind(Enum):
    PASS = "pass"
    PUT = "put"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    card_id: Optional[int] = None
    row: int = 0
    col: int = 0
    rotation: Rotation = Rotation.R0
    special: bool = False

    @staticmethod
    def put(card_id: int, row: int, col: int, rotation: Rotation = Rotation.R0, special: bool = False) -> "Action":
        return Action(ActionKind.PUT, int(card_id), int(row), int(col), Rotation(rotation), bool(special))

    @property
    def is_pass(self) -> bool:
        return self.kind == ActionKind.PASS

    def sort_key(self) -> Tuple[int, int, int, int, int, int]:
        if self.is_pass:
            return (0, 0, 0, 0, 0, 0)
        return (1, self.row, self.col, int(self.rotation), int(self.special), int(self.card_id))

    def __str__(self) -> str:
        if self.is_pass:
            return "Pass"
        flag = " special" if self.special else ""
        return f"Put(card={self.card_id}, at=({self.row}, {self.col}), rot={self.rotation.degrees}{flag})"


PASS = Action(ActionKind.PASS)


@dataclass
class PlayerState:
    hand: List[int]
    draw_pile: List[int]
    used: List[int] = field(default_factory=list)
    gauge: int = 0

    def copy(self) -> "PlayerState":
        return PlayerState(
            hand=list(self.hand),
            draw_pile=list(self.draw_pile),
            used=list(self.used),
            gauge=self.gauge,
        )


@dataclass(frozen=True)
class TurnView:
    """Read-only snapshot handed to renderers after each resolved turn."""

    board: BoardArray
    turn: int
    max_turns: int
    scores: Tuple[int, int]
    gauges: Tuple[int, int]
    last_actions: Tuple[Action, Action]
    result: GameResult

    def render(self) -> str:
        header = (
            f"turn {min(self.turn - 1, self.max_turns)}/{self.max_turns}  "
            f"A: {self.scores[0]} (gauge {self.gauges[0]})  "
            f"B: {self.scores[1]} (gauge {self.gauges[1]})"
        )
        moves = f"A played {self.last_actions[0]}; B played {self.last_actions[1]}"
        return "\n".join([header, moves, format_board(self.board)])


@dataclass
class GameState:
    layout: BoardLayout
    board: BoardArray  # same shape as layout.cells, values are Cell
    players: Tuple[PlayerState, PlayerState]
    turn: int = 1
    max_turns: int = 12
    result: GameResult = GameResult.ONGOING
    last_actions: Optional[Tuple[Action, Action]] = None

    def copy(self) -> "GameState":
        return GameState(
            layout=self.layout,
            board=self.board.copy(),
            players=(self.players[0].copy(), self.players[1].copy()),
            turn=self.turn,
            max_turns=self.max_turns,
            result=self.result,
            last_actions=self.last_actions,
        )

    def player(self, player: Player) -> PlayerState:
        return self.players[player.index]

    @property
    def is_terminal(self) -> bool:
        return self.result != GameResult.ONGOING

    def score(self, player: Player) -> int:
        return count_cells(self.board, player)

    def scores(self) -> Tuple[int, int]:
        return self.score(Player.A), self.score(Player.B)

    def winner(self) -> Optional[Player]:
        score_a, score_b = self.scores()
        if score_a > score_b:
            return Player.A
        if score_b > score_a:
            return Player.B
        return None

    def view(self) -> TurnView:
        board = self.board.copy()
        board.setflags(write=False)
        return TurnView(
            board=board,
            turn=self.turn,
            max_turns=self.max_turns,
            scores=self.scores(),
            gauges=(self.players[0].gauge, self.players[1].gauge),
            last_actions=self.last_actions or (PASS, PASS),
            result=self.result,
        )

    def __repr__(self) -> str:
        return (
            f"GameState(board={self.layout.name!r}, turn={self.turn}, result={self.result}, "
            f"scores={self.scores()})\n{format_board(self.board)}"
        )


def result_for_scores(score_a: int, score_b: int) -> GameResult:
    if score_a > score_b:
        return GameResult.A_WIN
    if score_b > score_a:
        return GameResult.B_WIN
    return GameResult.DRAW


_SWAPPED_RESULT = {
    GameResult.ONGOING: GameResult.ONGOING,
    GameResult.A_WIN: GameResult.B_WIN,
    GameResult.B_WIN: GameResult.A_WIN,
    GameResult.DRAW: GameResult.DRAW,
}


def mirror_state(state: GameState) -> GameState:
    """Return a copy of ``state`` with the roles of A and B exchanged."""
    layout = BoardLayout(
        name=state.layout.name,
        cells=swap_owners(np.asarray(state.layout.cells)),
        starts={player.other: pos for player, pos in state.layout.starts.items()},
    )
    last = None
    if state.last_actions is not None:
        last = (state.last_actions[1], state.last_actions[0])
    return GameState(
        layout=layout,
        board=swap_owners(state.board),
        players=(state.players[1].copy(), state.players[0].copy()),
        turn=state.turn,
        max_turns=state.max_turns,
        result=_SWAPPED_RESULT[state.result],
        last_actions=last,
    )
