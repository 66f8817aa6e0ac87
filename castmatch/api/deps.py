import random
from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from castmatch.db.session import get_db


def db_session() -> Generator[Session, None, None]:
    yield from get_db()


def match_rng() -> random.Random:
    """Random source for jitter, portrait choice and fallback scores."""
    return random.Random()


DbSessionDep = Depends(db_session)
RngDep = Depends(match_rng)
