from __future__ import annotations

from .base import Base
from .session import engine

# модели должны быть импортированы до create_all
from . import models  # noqa: F401


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
