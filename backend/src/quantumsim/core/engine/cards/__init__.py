from .definitions import CardDefinition, CardInstance
from .library import build_deck, cards_by_category, cards_by_type, get_card

__all__ = [
    "CardDefinition",
    "CardInstance",
    "build_deck",
    "cards_by_category",
    "cards_by_type",
    "get_card",
]
