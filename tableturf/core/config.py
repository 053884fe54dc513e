from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping

HAND_SIZE = 4
DECK_SIZE = 15
MAX_TURNS = 12
GAUGE_CAP = 5


@dataclass(frozen=True)
class RuleConfig:
    hand_size: int = HAND_SIZE
    deck_size: int = DECK_SIZE
    max_turns: int = MAX_TURNS
    gauge_cap: int = GAUGE_CAP
    max_copies: int = 1
    adjacency: int = 4
    special_anchor: str = "special"  # "special" | "any"
    special_overwrites_ink: bool = False
    conflict_priority: str = "smaller"  # "smaller" | "larger"
    conflict_tie: str = "wall"  # "wall" | "player_a"
    gauge_rule: str = "placed"  # "placed" | "surrounded"
    pass_gauge_bonus: int = 1

    def __post_init__(self) -> None:
        if self.hand_size <= 0:
            raise ValueError("hand_size must be positive.")
        if self.deck_size < self.hand_size:
            raise ValueError("deck_size must be at least hand_size.")
        if self.max_turns <= 0:
            raise ValueError("max_turns must be positive.")
        if self.gauge_cap < 0 or self.pass_gauge_bonus < 0:
            raise ValueError("gauge_cap and pass_gauge_bonus must be non-negative.")
        if self.max_copies <= 0:
            raise ValueError("max_copies must be positive.")
        if self.adjacency not in (4, 8):
            raise ValueError("adjacency must be 4 or 8.")
        _check_choice("special_anchor", self.special_anchor, ("special", "any"))
        _check_choice("conflict_priority", self.conflict_priority, ("smaller", "larger"))
        _check_choice("conflict_tie", self.conflict_tie, ("wall", "player_a"))
        _check_choice("gauge_rule", self.gauge_rule, ("placed", "surrounded"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "RuleConfig":
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown rule options: {', '.join(unknown)}")
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _check_choice(name: str, value: str, choices: tuple) -> None:
    if value not in choices:
        raise ValueError(f"{name} must be one of {choices}, got {value!r}.")
