from __future__ import annotations

from random import Random
from typing import Any, List, Optional, Sequence, TypeVar

from quantumsim.core.engine.errors import InvariantViolation, SnapshotError

T = TypeVar("T")

DIE_FACES = 6


class Dice:
    """
    Источник случайности движка: d6, переброс "не как сейчас", перемешивание.

    Живёт внутри GameState (как rng в старом EncounterState), поэтому
    состояние генератора попадает в снапшот и бросает дальше так же.
    """

    kind: str = "random"

    def __init__(self, rng: Optional[Random] = None):
        self._rng = rng if rng is not None else Random()

    def roll_die(self) -> int:
        return self._rng.randint(1, DIE_FACES)

    def roll_different(self, current: int) -> int:
        while True:
            value = self.roll_die()
            if value != current:
                return value

    def shuffle(self, items: Sequence[T]) -> List[T]:
        out = list(items)
        # Fisher-Yates, как в исходной раздаче колод
        for i in range(len(out) - 1, 0, -1):
            j = self._rng.randint(0, i)
            out[i], out[j] = out[j], out[i]
        return out

    def getstate(self) -> Any:
        return self._rng.getstate()

    def setstate(self, st: Any) -> None:
        self._rng.setstate(st)

    def to_dict(self) -> dict[str, Any]:
        version, internal, gauss = self.getstate()
        return {
            "kind": self.kind,
            "state": [version, list(internal), gauss],
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Dice":
        kind = d.get("kind", "random")
        if kind == "fixed":
            return FixedDice(d.get("values") or [])

        dice: Dice = SeededDice(0) if kind == "seeded" else Dice()
        raw = d.get("state")
        if raw is not None:
            try:
                version, internal, gauss = raw
                dice.setstate((int(version), tuple(int(x) for x in internal), gauss))
            except (TypeError, ValueError) as e:
                raise SnapshotError("Cannot restore dice state", context={"error": str(e)})
        return dice


class SeededDice(Dice):
    """Детерминированный вариант для реплеев и тестов."""

    kind: str = "seeded"

    def __init__(self, seed: int):
        super().__init__(Random(seed))
        self.seed = seed


class FixedDice(Dice):
    """
    Заранее заданная последовательность бросков (для тестов).
    shuffle ничего не перемешивает.
    """

    kind: str = "fixed"

    def __init__(self, values: Sequence[int]):
        super().__init__(Random(0))
        self.values: List[int] = [int(v) for v in values]

    def roll_die(self) -> int:
        if not self.values:
            raise InvariantViolation("FixedDice exhausted")
        return self.values.pop(0)

    def shuffle(self, items: Sequence[T]) -> List[T]:
        return list(items)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "values": list(self.values)}
