from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

CardType = Literal["command", "gambit"]

CardCategory = Literal[
    "combat",
    "dominance",
    "research",
    "movement",
    "action",
    "configuration",
    "construct",
    "ability",
]

CommandCardId = Literal[
    "dangerous",
    "brilliant",
    "flexible",
    "eager",
    "resourceful",
    "stealthy",
    "clever",
    "stubborn",
    "curious",
    "righteous",
    "intelligent",
    "ferocious",
    "cunning",
    "cruel",
    "relentless",
    "tactical",
    "agile",
    "precocious",
    "strategic",
    "energetic",
    "arrogant",
    "warlike",
    "conformist",
    "ravenous",
    "scrappy",
    "ingenious",
    "rational",
    "plundering",
    "tyrannical",
    "nomadic",
    "cerebral",
]

GambitCardId = Literal[
    "expansion",
    "aggression",
    "momentum",
    "relocation",
    "reorganization",
    "sabotage",
]


class CardDefinition(BaseModel):
    """Статичное описание карты из каталога (не меняется во время игры)."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: CardType
    categories: tuple[CardCategory, ...]
    description: str
    effect: str
    count: int = 1


class CardInstance(BaseModel):
    """
    Конкретная копия карты в колоде/на рынке/у игрока.

    card_id: стабильный id определения (по нему ищем эффект),
    instance_id: уникален в пределах партии.
    """

    model_config = ConfigDict(frozen=True)

    card_id: str
    instance_id: str
    gained_on_turn: Optional[int] = None
