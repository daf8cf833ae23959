from __future__ import annotations

from typing import Dict, List

from quantumsim.core.engine.cards.definitions import (
    CardCategory,
    CardDefinition,
    CardInstance,
    CardType,
)
from quantumsim.core.engine.dice import Dice


def _command(id_: str, name: str, categories: tuple, description: str, effect: str):
    return CardDefinition(
        id=id_,
        name=name,
        type="command",
        categories=categories,
        description=description,
        effect=effect,
        count=1,
    )


def _gambit(
    id_: str, name: str, categories: tuple, description: str, effect: str, count: int
):
    return CardDefinition(
        id=id_,
        name=name,
        type="gambit",
        categories=categories,
        description=description,
        effect=effect,
        count=count,
    )


# --- Command cards (31, по одной копии) ---

COMMAND_CARDS: List[CardDefinition] = [
    _command(
        "dangerous",
        "Dangerous",
        ("combat", "dominance"),
        "Mutual destruction option",
        "If attacked, you may choose to destroy both your ship and the attacker "
        "with no change to dominance for either player.",
    ),
    _command(
        "brilliant",
        "Brilliant",
        ("research",),
        "Faster research",
        "Each research action advances your research counter by 2.",
    ),
    _command(
        "flexible",
        "Flexible",
        ("configuration",),
        "Adjust ship value",
        "Once per turn, you may adjust one of your ships by +/-1 (free action).",
    ),
    _command(
        "eager",
        "Eager",
        ("action",),
        "Free deployment",
        "Deploying ships from your scrapyard does not cost an action.",
    ),
    _command(
        "resourceful",
        "Resourceful",
        ("action",),
        "Sacrifice for actions",
        "You may sacrifice one of your ships (return to scrapyard) to gain 1 action.",
    ),
    _command(
        "stealthy",
        "Stealthy",
        ("movement",),
        "Deploy anywhere",
        "You may deploy ships to any empty orbital position on the map, "
        "except adjacent to another ship.",
    ),
    _command(
        "clever",
        "Clever",
        ("configuration",),
        "Control die rolls",
        "When any of your ships would be rolled (reconfigure or destroyed), "
        "you choose the result instead of rolling.",
    ),
    _command(
        "stubborn",
        "Stubborn",
        ("combat",),
        "Defensive advantage",
        "When defending, you win ties. If the attacker loses, their ship is destroyed.",
    ),
    _command(
        "curious",
        "Curious",
        ("action",),
        "Bonus peaceful move",
        "Once per turn, you may move one ship without spending an action. "
        "This move cannot be used to attack.",
    ),
    _command(
        "righteous",
        "Righteous",
        ("dominance",),
        "Irreducible dominance",
        "Your dominance counter cannot be reduced.",
    ),
    _command(
        "intelligent",
        "Intelligent",
        ("construct",),
        "Flexible construction",
        "When constructing, you may treat planets as +/-1 their actual number.",
    ),
    _command(
        "ferocious",
        "Ferocious",
        ("combat",),
        "Combat bonus",
        "Subtract 1 from your combat die rolls (minimum 1; lower is better).",
    ),
    _command(
        "cunning",
        "Cunning",
        ("ability", "combat"),
        "Extra ship ability",
        "You may use one additional ship ability per turn.",
    ),
    _command(
        "cruel",
        "Cruel",
        ("combat",),
        "Force opponent reroll",
        "In combat, you may force your opponent to re-roll their die.",
    ),
    _command(
        "relentless",
        "Relentless",
        ("combat",),
        "Reroll your die",
        "In combat, you may re-roll your own die.",
    ),
    _command(
        "tactical",
        "Tactical",
        ("movement", "action"),
        "Bonus short move",
        "Once per turn, you may move one ship up to 2 spaces (free action). "
        "This can be used to attack.",
    ),
    _command(
        "agile",
        "Agile",
        ("movement",),
        "Movement bonus",
        "All your ships gain +1 to their movement range.",
    ),
    _command(
        "precocious",
        "Precocious",
        ("research",),
        "Accelerated research",
        "You gain an Advance card when your research reaches 4 instead of 6.",
    ),
    _command(
        "strategic",
        "Strategic",
        ("combat",),
        "Combat support",
        "In combat, subtract 1 from your total for each of your ships adjacent "
        "to the combat.",
    ),
    _command(
        "energetic",
        "Energetic",
        ("movement",),
        "Move multiple times",
        "Your ships may move more than once per turn (each move still costs an action).",
    ),
    _command(
        "arrogant",
        "Arrogant",
        ("action",),
        "Extra action for fleet size",
        "If you have the most ships on the board, gain +1 action per turn.",
    ),
    _command(
        "warlike",
        "Warlike",
        ("action",),
        "Extra action for destruction",
        "When you destroy an enemy ship, gain +1 action.",
    ),
    _command(
        "conformist",
        "Conformist",
        ("action",),
        "Extra action for matching",
        "If you have two or more ships with the same value, gain +1 action per turn.",
    ),
    _command(
        "ravenous",
        "Ravenous",
        ("dominance",),
        "Dominance amplification",
        "Gain +2 dominance when you destroy a ship, but lose -2 dominance when "
        "your ship is destroyed.",
    ),
    _command(
        "scrappy",
        "Scrappy",
        ("combat",),
        "Reroll your dice",
        "On your turn, you may re-roll your combat die.",
    ),
    _command(
        "ingenious",
        "Ingenious",
        ("construct",),
        "Construct from corners",
        "You may construct from diagonal (corner) positions adjacent to planets.",
    ),
    _command(
        "rational",
        "Rational",
        ("combat",),
        "Fixed combat rolls",
        "All combat die rolls (yours and opponents against you) are treated as 3.",
    ),
    _command(
        "plundering",
        "Plundering",
        ("research",),
        "Research from combat",
        "Gain +1 research each time you destroy an enemy ship.",
    ),
    _command(
        "tyrannical",
        "Tyrannical",
        ("dominance",),
        "Trade research for dominance",
        "Once per turn, you may spend 1 research to gain 1 dominance.",
    ),
    _command(
        "nomadic",
        "Nomadic",
        ("movement",),
        "Transport between planets",
        "As an action, you may move a ship from one orbital position to an "
        "orbital position on an adjacent planet.",
    ),
    _command(
        "cerebral",
        "Cerebral",
        ("research",),
        "Trade dominance for research",
        "Once per turn, you may spend 1 dominance to gain 3 research.",
    ),
]


# --- Gambit cards (22 копии) ---

GAMBIT_CARDS: List[CardDefinition] = [
    _gambit(
        "expansion",
        "Expansion",
        ("action",),
        "Add a ship to your fleet",
        "Immediately add 1 ship to your fleet. Roll for its value and place it "
        "in your scrapyard; you may deploy it for free.",
        8,
    ),
    _gambit(
        "aggression",
        "Aggression",
        ("dominance",),
        "Instant dominance",
        "Immediately increase your dominance by 2.",
        4,
    ),
    _gambit(
        "momentum",
        "Momentum",
        ("action",),
        "Bonus turn",
        "Immediately take a bonus turn with 2 actions. This does not count as "
        "ending your current turn.",
        4,
    ),
    _gambit(
        "relocation",
        "Relocation",
        ("action",),
        "Move opponent cube",
        "Immediately move one opponent's quantum cube to a different planet "
        "(must be a legal placement).",
        2,
    ),
    _gambit(
        "reorganization",
        "Reorganization",
        ("configuration",),
        "Reroll and deploy",
        "Immediately re-roll any or all of your ships. Then you may deploy any "
        "ships from your scrapyard for free.",
        2,
    ),
    _gambit(
        "sabotage",
        "Sabotage",
        ("action",),
        "Force discard",
        "All opponents must immediately discard one Advance card of their choice.",
        2,
    ),
]

ALL_CARDS: List[CardDefinition] = [*COMMAND_CARDS, *GAMBIT_CARDS]

_BY_ID: Dict[str, CardDefinition] = {c.id: c for c in ALL_CARDS}


def get_card(card_id: str) -> CardDefinition:
    return _BY_ID[card_id]


def cards_by_type(card_type: CardType) -> List[CardDefinition]:
    return [c for c in ALL_CARDS if c.type == card_type]


def cards_by_category(category: CardCategory) -> List[CardDefinition]:
    return [c for c in ALL_CARDS if category in c.categories]


def build_deck(card_type: CardType, dice: Dice) -> List[CardInstance]:
    """Все копии карт данного типа, перемешанные через dice."""
    deck: List[CardInstance] = []
    for card in cards_by_type(card_type):
        for i in range(card.count):
            deck.append(CardInstance(card_id=card.id, instance_id=f"{card.id}#{i}"))
    return dice.shuffle(deck)
