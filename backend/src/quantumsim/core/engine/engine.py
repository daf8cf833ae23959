from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Literal, Optional

from quantumsim.core.engine.commands import (
    AdvanceCombat,
    Attack,
    CancelCombat,
    Command,
    CombatInput,
    Construct,
    Deploy,
    EndTurn,
    FlexibleAdjust,
    FreeDeploy,
    Move,
    Reconfigure,
    RelocateCube,
    ReorganizeShips,
    Research,
    SabotageDiscard,
    Sacrifice,
    SelectAdvanceCard,
    TradeResources,
    UseAbility,
)
from quantumsim.core.engine.config import DEFAULT_CONFIG, EngineConfig
from quantumsim.core.engine.errors import InvariantViolation
from quantumsim.core.engine.rules.apply import CommandResult, apply_command
from quantumsim.core.engine.rules.combat import (
    CombatInputRequest,
    CombatResult,
    Deciders,
    default_deciders,
)
from quantumsim.core.engine.rules.validator import (
    AvailableActions,
    get_available_actions,
)
from quantumsim.core.engine.state import (
    GameState,
    Player,
    Pos,
    check_combat_invariant,
    current_player,
)

logger = logging.getLogger(__name__)

EventObserver = Callable[[dict], None]


@dataclass
class ActionResult:
    success: bool
    state: Optional[GameState] = None
    error: Optional[str] = None
    code: Optional[str] = None
    events: List[dict] = field(default_factory=list)

    needs_input: Optional[CombatInputRequest] = None
    combat_result: Optional[CombatResult] = None

    @property
    def completed(self) -> bool:
        return self.combat_result is not None


class GameEngine:
    """
    Тонкая оболочка над apply_command: держит одну партию,
    отдаёт наружу только копии и пересылает события наблюдателю.
    """

    def __init__(
        self,
        state: GameState,
        on_event: Optional[EventObserver] = None,
        deciders: Optional[Deciders] = None,
        config: Optional[EngineConfig] = None,
    ):
        check_combat_invariant(state)
        self._state = copy.deepcopy(state)
        self._on_event = on_event
        self._deciders = deciders
        self.config = config or DEFAULT_CONFIG

    # --- чтение ---

    def get_state(self) -> GameState:
        return copy.deepcopy(self._state)

    def get_available_actions(self) -> AvailableActions:
        return get_available_actions(self._state, self.config)

    def current_player(self) -> Player:
        return copy.deepcopy(current_player(self._state))

    @property
    def deciders(self) -> Deciders:
        if self._deciders is not None:
            return self._deciders
        return default_deciders(self._state)

    # --- общий путь ---

    def execute(self, cmd: Command) -> ActionResult:
        try:
            res: CommandResult = apply_command(
                self._state, cmd, deciders=self.deciders, config=self.config
            )
        except InvariantViolation as e:
            logger.error("Engine invariant broken on %s: %s", cmd.type, e)
            raise
        self._emit(res.events)

        if not res.ok:
            assert res.error is not None
            logger.debug(
                "Command %s rejected for %s: %s", cmd.type, cmd.player_id, res.reason
            )
            return ActionResult(
                success=False,
                error=res.reason,
                code=res.error.code,
                events=res.events,
            )

        check_combat_invariant(res.state)
        self._state = res.state
        logger.debug("Command %s applied for %s", cmd.type, cmd.player_id)

        return ActionResult(
            success=True,
            state=self.get_state(),
            events=res.events,
            needs_input=res.needs_input,
            combat_result=res.combat_result,
        )

    def _emit(self, events: List[dict]) -> None:
        if self._on_event is None:
            return
        for ev in events:
            self._on_event(ev)

    # --- действия ---

    def reconfigure(self, player_id: str, ship_id: str) -> ActionResult:
        return self.execute(Reconfigure(player_id=player_id, ship_id=ship_id))

    def deploy(self, player_id: str, ship_index: int, position: Pos) -> ActionResult:
        return self.execute(
            Deploy(player_id=player_id, ship_index=ship_index, position=position)
        )

    def move(
        self, player_id: str, ship_id: str, target: Pos, *, tactical: bool = False
    ) -> ActionResult:
        return self.execute(
            Move(player_id=player_id, ship_id=ship_id, target=target, tactical=tactical)
        )

    def initiate_attack(
        self, player_id: str, ship_id: str, target: Pos, *, tactical: bool = False
    ) -> ActionResult:
        return self.execute(
            Attack(player_id=player_id, ship_id=ship_id, target=target, tactical=tactical)
        )

    # короткое имя для политик
    attack = initiate_attack

    def advance_combat(
        self, player_id: str, combat_input: Optional[CombatInput] = None
    ) -> ActionResult:
        return self.execute(AdvanceCombat(player_id=player_id, input=combat_input))

    def cancel_combat(self, player_id: str) -> ActionResult:
        return self.execute(CancelCombat(player_id=player_id))

    def construct(self, player_id: str, tile_id: str) -> ActionResult:
        return self.execute(Construct(player_id=player_id, tile_id=tile_id))

    def research(self, player_id: str) -> ActionResult:
        return self.execute(Research(player_id=player_id))

    def end_turn(self, player_id: str) -> ActionResult:
        return self.execute(EndTurn(player_id=player_id))

    def use_ability(
        self,
        player_id: str,
        ship_id: str,
        ability: Literal["strike", "warp", "modify", "free_reconfigure"],
        *,
        target: Optional[Pos] = None,
        target_ship_id: Optional[str] = None,
        new_value: Optional[int] = None,
    ) -> ActionResult:
        return self.execute(
            UseAbility(
                player_id=player_id,
                ship_id=ship_id,
                ability=ability,
                target=target,
                target_ship_id=target_ship_id,
                new_value=new_value,
            )
        )

    def select_advance_card(
        self,
        player_id: str,
        instance_id: str,
        discard_instance_id: Optional[str] = None,
    ) -> ActionResult:
        return self.execute(
            SelectAdvanceCard(
                player_id=player_id,
                instance_id=instance_id,
                discard_instance_id=discard_instance_id,
            )
        )

    def free_deploy(self, player_id: str, ship_index: int, position: Pos) -> ActionResult:
        return self.execute(
            FreeDeploy(player_id=player_id, ship_index=ship_index, position=position)
        )

    def relocate_cube(
        self, player_id: str, from_tile_id: str, to_tile_id: str
    ) -> ActionResult:
        return self.execute(
            RelocateCube(
                player_id=player_id, from_tile_id=from_tile_id, to_tile_id=to_tile_id
            )
        )

    def reorganize_ships(
        self,
        player_id: str,
        reroll_ship_ids: List[str],
        reroll_scrapyard_indices: List[int],
    ) -> ActionResult:
        return self.execute(
            ReorganizeShips(
                player_id=player_id,
                reroll_ship_ids=reroll_ship_ids,
                reroll_scrapyard_indices=reroll_scrapyard_indices,
            )
        )

    def sabotage_discard(self, player_id: str, instance_id: str) -> ActionResult:
        return self.execute(SabotageDiscard(player_id=player_id, instance_id=instance_id))

    def flexible_adjust(self, player_id: str, ship_id: str, delta: int) -> ActionResult:
        return self.execute(
            FlexibleAdjust(player_id=player_id, ship_id=ship_id, delta=delta)
        )

    def trade_resources(
        self, player_id: str, trade: Literal["tyrannical", "cerebral"]
    ) -> ActionResult:
        return self.execute(TradeResources(player_id=player_id, trade=trade))

    def sacrifice(self, player_id: str, ship_id: str) -> ActionResult:
        return self.execute(Sacrifice(player_id=player_id, ship_id=ship_id))
