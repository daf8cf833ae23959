# backend/src/quantumsim/core/engine/commands.py

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Pos = tuple[int, int]


class CommandBase(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: str
    player_id: str


# --- базовые действия хода ---


class Reconfigure(CommandBase):
    type: Literal["Reconfigure"] = "Reconfigure"
    ship_id: str


class Deploy(CommandBase):
    type: Literal["Deploy"] = "Deploy"
    ship_index: int  # индекс в scrapyard
    position: Pos


class Move(CommandBase):
    type: Literal["Move"] = "Move"
    ship_id: str
    target: Pos
    tactical: bool = False


class Attack(CommandBase):
    type: Literal["Attack"] = "Attack"
    ship_id: str
    target: Pos
    # ход картой Tactical: бесплатно, до 2 клеток
    tactical: bool = False


class Construct(CommandBase):
    type: Literal["Construct"] = "Construct"
    tile_id: str


class Research(CommandBase):
    type: Literal["Research"] = "Research"


class EndTurn(CommandBase):
    type: Literal["EndTurn"] = "EndTurn"


# --- способности кораблей ---


class UseAbility(CommandBase):
    type: Literal["UseAbility"] = "UseAbility"
    ship_id: str
    ability: Literal["strike", "warp", "modify", "free_reconfigure"]

    target: Optional[Pos] = None  # strike
    target_ship_id: Optional[str] = None  # warp
    new_value: Optional[int] = None  # modify: 3 или 5


# --- карты ---


class SelectAdvanceCard(CommandBase):
    type: Literal["SelectAdvanceCard"] = "SelectAdvanceCard"
    instance_id: str
    # если уже 3 command-карты, какую сбросить
    discard_instance_id: Optional[str] = None


class FreeDeploy(CommandBase):
    type: Literal["FreeDeploy"] = "FreeDeploy"
    ship_index: int
    position: Pos


class RelocateCube(CommandBase):
    type: Literal["RelocateCube"] = "RelocateCube"
    from_tile_id: str
    to_tile_id: str


class ReorganizeShips(CommandBase):
    type: Literal["ReorganizeShips"] = "ReorganizeShips"
    reroll_ship_ids: list[str] = []
    reroll_scrapyard_indices: list[int] = []


class SabotageDiscard(CommandBase):
    # player_id: тот, кто сбрасывает (оппонент владельца Sabotage)
    type: Literal["SabotageDiscard"] = "SabotageDiscard"
    instance_id: str


class FlexibleAdjust(CommandBase):
    type: Literal["FlexibleAdjust"] = "FlexibleAdjust"
    ship_id: str
    delta: Literal[1, -1]


class TradeResources(CommandBase):
    type: Literal["TradeResources"] = "TradeResources"
    trade: Literal["tyrannical", "cerebral"]


class Sacrifice(CommandBase):
    type: Literal["Sacrifice"] = "Sacrifice"
    ship_id: str


# --- бой ---


class DangerousInput(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: Literal["dangerous"] = "dangerous"
    activate: bool


class RerollInput(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: Literal["reroll"] = "reroll"
    reroll_type: Literal["cruel", "relentless", "scrappy"]
    player_id: str


class SkipRerollsInput(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: Literal["skipRerolls"] = "skipRerolls"
    # None = отказывается отправитель команды
    player_id: Optional[str] = None


class FinalizeInput(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: Literal["finalize"] = "finalize"
    move_to_target: bool


CombatInput = Annotated[
    Union[DangerousInput, RerollInput, SkipRerollsInput, FinalizeInput],
    Field(discriminator="type"),
]


class AdvanceCombat(CommandBase):
    type: Literal["AdvanceCombat"] = "AdvanceCombat"
    input: Optional[CombatInput] = None


class CancelCombat(CommandBase):
    type: Literal["CancelCombat"] = "CancelCombat"


Command = Union[
    Reconfigure,
    Deploy,
    Move,
    Attack,
    Construct,
    Research,
    EndTurn,
    UseAbility,
    SelectAdvanceCard,
    FreeDeploy,
    RelocateCube,
    ReorganizeShips,
    SabotageDiscard,
    FlexibleAdjust,
    TradeResources,
    Sacrifice,
    AdvanceCombat,
    CancelCombat,
]

AnyCommand = Annotated[Command, Field(discriminator="type")]
