from __future__ import annotations


class TableturfError(ValueError):
    """Base class for errors surfaced to callers of the engine."""


class CardLoadError(TableturfError):
    pass


class BoardLoadError(TableturfError):
    pass


class MalformedDeck(TableturfError):
    pass


class IllegalActionRequested(TableturfError):
    """An externally supplied action failed validation; the state is unchanged."""

    def __init__(self, message: str, *, player=None, action=None) -> None:
        super().__init__(message)
        self.player = player
        self.action = action


class RuleViolation(RuntimeError):
    """Internal invariant of the rules engine was broken."""
