from __future__ import annotations

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from quantumsim.api.schemas import (
    ApplyCommandRequest,
    GameCreateRequest,
    GameRuntimeResponse,
    GetGameStateResponse,
    MapOut,
)
from quantumsim.core.engine.commands import AnyCommand
from quantumsim.core.engine.dice import Dice, SeededDice
from quantumsim.core.engine.errors import UnknownMapError
from quantumsim.core.engine.rules.apply import apply_command as engine_apply
from quantumsim.core.engine.rules.validator import (
    AvailableActions,
    get_available_actions,
)
from quantumsim.core.engine.setup import MAPS, PlayerSetup, create_game
from quantumsim.core.persistence.runtime_store import (
    load_latest_snapshot,
    save_snapshot,
)
from quantumsim.core.persistence.state_codec import game_state_to_dict
from quantumsim.db.deps import get_db
from quantumsim.db.models import Game

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/games", tags=["games"])

_command_adapter: TypeAdapter = TypeAdapter(AnyCommand)


def _require_game(db: Session, game_id: str) -> Game:
    game = db.get(Game, game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="Game not found")
    return game


# /maps объявлен раньше /{game_id}, иначе его перехватит параметр
@router.get("/maps", response_model=List[MapOut])
def list_maps():
    return [
        MapOut(
            id=m.id,
            name=m.name,
            player_counts=list(m.player_counts),
            cubes_per_player=m.cubes_per_player,
            factions=list(m.starting_planets.keys()),
        )
        for m in MAPS
    ]


@router.post("", response_model=GameRuntimeResponse)
def create(req: GameCreateRequest, db: Session = Depends(get_db)):
    dice = SeededDice(req.seed) if req.seed is not None else Dice()

    game_id = str(uuid.uuid4())
    try:
        state = create_game(
            req.map_id,
            [PlayerSetup(**p.model_dump()) for p in req.players],
            dice=dice,
            cubes_override=req.cubes_override,
            game_id=game_id,
        )
    except UnknownMapError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())

    game = Game(id=game_id, map_id=req.map_id, label=req.label)
    db.add(game)
    db.commit()

    row = save_snapshot(
        db, game_id=game.id, label=req.label, state=state, events_delta=[]
    )
    logger.info("Game %s created on map %s", game.id, req.map_id)

    return GameRuntimeResponse(
        game_id=game.id,
        save_id=row.id,
        state=game_state_to_dict(state),
        events_delta=[],
    )


@router.get("/{game_id}", response_model=GetGameStateResponse)
def get_state(game_id: str, db: Session = Depends(get_db)):
    _require_game(db, game_id)

    save_id, state, _events = load_latest_snapshot(db, game_id)
    if save_id is None or state is None:
        raise HTTPException(status_code=404, detail="No saved state for game")

    return GetGameStateResponse(
        game_id=game_id, save_id=save_id, state=game_state_to_dict(state)
    )


@router.get("/{game_id}/available-actions", response_model=AvailableActions)
def available_actions(game_id: str, db: Session = Depends(get_db)):
    _require_game(db, game_id)

    save_id, state, _events = load_latest_snapshot(db, game_id)
    if save_id is None or state is None:
        raise HTTPException(status_code=404, detail="No saved state for game")

    return get_available_actions(state)


@router.post("/{game_id}/commands:apply", response_model=GameRuntimeResponse)
def apply_command(
    game_id: str, req: ApplyCommandRequest, db: Session = Depends(get_db)
):
    _require_game(db, game_id)

    save_id, state, _events = load_latest_snapshot(db, game_id)
    if save_id is None or state is None:
        raise HTTPException(status_code=409, detail="Game has no saved state")

    try:
        cmd = _command_adapter.validate_python(req.command)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=f"Bad command: {e}")

    res = engine_apply(state, cmd)
    if not res.ok:
        assert res.error is not None
        logger.info("Game %s: %s rejected (%s)", game_id, cmd.type, res.error.code)
        raise HTTPException(
            status_code=409,
            detail={
                "code": res.error.code,
                "message": res.error.message,
                "meta": res.error.meta,
            },
        )

    row = save_snapshot(
        db, game_id=game_id, label=req.label, state=res.state, events_delta=res.events
    )

    return GameRuntimeResponse(
        game_id=game_id,
        save_id=row.id,
        state=game_state_to_dict(res.state),
        events_delta=res.events,
        needs_input=(
            res.needs_input.model_dump(mode="json") if res.needs_input else None
        ),
        combat_result=(
            res.combat_result.model_dump(mode="json") if res.combat_result else None
        ),
    )
