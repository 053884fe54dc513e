from .deck_checks import validate_deck, validate_layout

__all__ = ["validate_deck", "validate_layout"]
