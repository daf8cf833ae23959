from __future__ import annotations

from typing import Iterator

from sqlalchemy.orm import Session

from . import session as db_session


def get_db() -> Iterator[Session]:
    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()
