from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from quantumsim.core.engine.state import GameState
from quantumsim.core.persistence.state_codec import (
    game_state_from_dict,
    game_state_to_dict,
)
from quantumsim.db.models import GameSnapshot

logger = logging.getLogger(__name__)


def save_snapshot(
    db: Session,
    *,
    game_id: str,
    label: Optional[str],
    state: GameState,
    events_delta: List[Dict[str, Any]],
) -> GameSnapshot:
    row = GameSnapshot(
        game_id=game_id,
        label=label,
        seq=state.seq,
        state_json=game_state_to_dict(state),
        events_json=list(events_delta),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.debug("Saved snapshot %s for game %s (seq=%s)", row.id, game_id, state.seq)
    return row


def load_latest_snapshot(
    db: Session, game_id: str
) -> Tuple[Optional[int], Optional[GameState], List[Dict[str, Any]]]:
    """(save_id, state, events последнего шага) или (None, None, [])."""
    row = db.scalars(
        select(GameSnapshot)
        .where(GameSnapshot.game_id == game_id)
        .order_by(GameSnapshot.id.desc())
        .limit(1)
    ).first()
    if row is None:
        return None, None, []

    state = game_state_from_dict(row.state_json)
    return row.id, state, list(row.events_json or [])
