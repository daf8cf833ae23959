from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

CancelPolicy = Literal["free", "charge"]


class EngineConfig(BaseModel):
    """
    Числа правил, которые не зависят от карт.

    cancel_policy:
      free  : отмена боя без последствий (восстановление после дисконнекта)
      charge: атакующий платит действие, корабль считается походившим
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_actions: int = 3
    construct_cost: int = 2
    breakthrough_threshold: int = 6
    precocious_threshold: int = 4
    fixed_roll: int = 3
    max_command_cards: int = 3
    market_size: int = 3

    cancel_policy: CancelPolicy = "free"


DEFAULT_CONFIG = EngineConfig()
