from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class PlayerSetupDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    faction_id: str
    kind: Literal["human", "ai"] = "human"


class GameCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    map_id: str
    players: List[PlayerSetupDTO] = Field(min_length=2, max_length=4)
    # None = недетерминированные кубики
    seed: Optional[int] = None
    cubes_override: Optional[int] = Field(default=None, ge=1)
    label: str = "init"


class GameRuntimeResponse(BaseModel):
    game_id: str
    save_id: int
    state: Dict[str, Any]
    events_delta: List[Dict[str, Any]] = Field(default_factory=list)

    # бой остановлен и ждёт ответа игрока
    needs_input: Optional[Dict[str, Any]] = None
    combat_result: Optional[Dict[str, Any]] = None


class ApplyCommandRequest(BaseModel):
    command: Dict[str, Any]
    label: str = "cmd"


class GetGameStateResponse(BaseModel):
    game_id: str
    save_id: int
    state: Dict[str, Any]


class MapOut(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    player_counts: List[int]
    cubes_per_player: int
    factions: List[str]
