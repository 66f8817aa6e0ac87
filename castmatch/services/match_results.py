import logging
import uuid
from typing import Sequence

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from castmatch.core.attributes import CharacterAttributes, MatchedCandidate
from castmatch.core.exceptions import EntityNotFoundError, PersistenceError
from castmatch.db.models import MatchResult

logger = logging.getLogger(__name__)


def serialize_candidates(candidates: Sequence[MatchedCandidate]) -> list[dict]:
    return [candidate.model_dump(mode="json", by_alias=True) for candidate in candidates]


def save_match_results(
    db: Session,
    attrs: CharacterAttributes | None,
    character_image: str,
    candidates: Sequence[MatchedCandidate],
) -> MatchResult:
    """Persist one completed run.

    Raises:
        PersistenceError: If the row cannot be written.
    """
    row = MatchResult(
        character_data=attrs.model_dump(mode="json", by_alias=True, exclude_none=True) if attrs else {},
        character_image=character_image,
        matched_candidates=serialize_candidates(candidates),
    )
    db.add(row)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("match_result_save_failed error=%r", exc)
        raise PersistenceError("Failed to save match results", detail="match results were not saved") from exc
    db.refresh(row)
    logger.info("match_result_saved", extra={"result_id": str(row.result_id)})
    return row


def get_recent_match_results(db: Session, limit: int = 5) -> list[MatchResult]:
    stmt = select(MatchResult).order_by(desc(MatchResult.created_at)).limit(max(1, limit))
    return list(db.execute(stmt).scalars().all())


def get_match_result(db: Session, result_id: uuid.UUID) -> MatchResult:
    row = db.get(MatchResult, result_id)
    if row is None:
        raise EntityNotFoundError("Match result", result_id)
    return row
