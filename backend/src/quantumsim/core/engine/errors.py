from __future__ import annotations

from typing import Any


class QuantumError(Exception):
    """
    Базовое исключение движка.

    Это НЕ ошибки пользователя (их возвращает валидатор как ValidationResult),
    а нарушения инвариантов, которые означают баг в движке или битый снапшот.
    """

    code: str = "QUANTUM_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class InvariantViolation(QuantumError):
    """Состояние, которое не должно быть достижимо обычной игрой."""

    code: str = "INVARIANT_VIOLATION"


class UnknownMapError(QuantumError):
    code: str = "UNKNOWN_MAP"


class SnapshotError(QuantumError):
    """Снапшот не удалось восстановить."""

    code: str = "BAD_SNAPSHOT"
