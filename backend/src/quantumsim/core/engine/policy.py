from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from quantumsim.core.engine.commands import Command, Construct, Research
from quantumsim.core.engine.engine import ActionResult, GameEngine
from quantumsim.core.engine.rules.validator import AvailableActions
from quantumsim.core.engine.state import GameState

logger = logging.getLogger(__name__)


class Policy(Protocol):
    def choose_action(
        self, state: GameState, available: AvailableActions
    ) -> Optional[Command]:
        """None = закончить ход."""
        ...


class FirstAvailablePolicy:
    """Простейшая политика: строить, если можно, иначе исследовать."""

    def choose_action(
        self, state: GameState, available: AvailableActions
    ) -> Optional[Command]:
        pid = available.player_id
        if pid is None:
            return None
        if available.can_construct:
            return Construct(player_id=pid, tile_id=available.can_construct[0])
        if available.can_research:
            return Research(player_id=pid)
        return None


def run_policy_turn(
    engine: GameEngine, policy: Policy, max_actions: int = 20
) -> List[ActionResult]:
    """
    Один ход автоматического игрока: спрашиваем доступные действия,
    выполняем по одному, пока политика не вернёт None или ход не сменится.
    Если бой ждёт решения человека, останавливаемся (ход не завершаем).
    """
    results: List[ActionResult] = []
    state = engine.get_state()
    pid = state.current_player_id
    if pid is None or state.status != "in_progress":
        return results

    for _ in range(max_actions):
        state = engine.get_state()
        if state.status != "in_progress" or state.current_player_id != pid:
            return results

        available = engine.get_available_actions()
        if available.combat_pending:
            logger.info("Policy turn for %s paused: combat awaits input", pid)
            return results

        cmd = policy.choose_action(state, available)
        if cmd is None:
            break

        res = engine.execute(cmd)
        results.append(res)
        if not res.success:
            logger.warning("Policy for %s chose invalid %s: %s", pid, cmd.type, res.error)
            break
        if res.needs_input is not None:
            return results

    state = engine.get_state()
    if state.status == "in_progress" and state.current_player_id == pid:
        results.append(engine.end_turn(pid))
    return results
