import json

import pytest

from quantumsim.core.engine.commands import Attack, Research
from quantumsim.core.engine.errors import SnapshotError
from quantumsim.core.engine.rules.apply import apply_command
from quantumsim.core.persistence.state_codec import (
    game_state_from_dict,
    game_state_to_dict,
)

from factories import add_ship, give, make_state


def _through_json(state):
    return game_state_from_dict(json.loads(json.dumps(game_state_to_dict(state))))


def test_roundtrip_restores_tuples_cards_and_pending_combat():
    state = make_state(dice=[3, 2])
    give(state, "B", "dangerous")
    a = add_ship(state, "A", 2, (2, 1))
    add_ship(state, "B", 3, (3, 1))
    halted = apply_command(
        state, Attack(player_id="A", ship_id=a.id, target=(3, 1))
    ).state

    restored = _through_json(halted)

    assert restored.combat_phase == "pre-combat"
    pc = restored.pending_combat
    assert pc.target_position == (3, 1)
    assert pc.attacker_launch_position == (2, 1)
    assert pc.rerolls_used == {"cruel": False, "relentless": False, "scrappy": False}
    assert restored.ships[0].position == (2, 1)
    assert restored.tiles[0].position == (0, 0)
    assert restored.players[1].active_command_cards[0].card_id == "dangerous"
    assert restored.action_log[0].type == "Attack"
    assert restored.seq == halted.seq
    assert game_state_to_dict(restored) == game_state_to_dict(halted)


def test_seeded_dice_continue_after_restore():
    state = make_state(seed=99)
    restored = _through_json(state)

    rolls_a = [state.dice.roll_die() for _ in range(10)]
    rolls_b = [restored.dice.roll_die() for _ in range(10)]
    assert rolls_a == rolls_b


def test_restored_state_replays_identically():
    state = make_state(seed=7)
    add_ship(state, "A", 2, (2, 2))
    restored = _through_json(state)

    one = apply_command(state, Research(player_id="A")).state
    two = apply_command(restored, Research(player_id="A")).state
    assert json.dumps(game_state_to_dict(one), sort_keys=True) == json.dumps(
        game_state_to_dict(two), sort_keys=True
    )


def test_broken_snapshot_raises():
    data = game_state_to_dict(make_state())
    data["combat_phase"] = "rolls"

    with pytest.raises(SnapshotError):
        game_state_from_dict(data)

    data = game_state_to_dict(make_state())
    data["tiles"][0].pop("planet_number")
    with pytest.raises(SnapshotError):
        game_state_from_dict(data)
