"""
Casting API endpoints.

Character description, candidate photo upload, matching, and access to
stored match runs and their reports.
"""

import logging
import uuid

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.responses import PlainTextResponse

from castmatch.api.deps import DbSessionDep, RngDep
from castmatch.api.v1.schemas import (
    CandidateUploadResponse,
    CharacterGenerateRequest,
    CharacterGenerateResponse,
    MatchRequest,
    MatchResponse,
    MatchResultRead,
)
from castmatch.core.exceptions import PersistenceError
from castmatch.core.settings import settings
from castmatch.db.models import MatchResult
from castmatch.services.casting import generate_character, resolve_completion_client, run_casting_match
from castmatch.services.match_results import get_match_result, get_recent_match_results, save_match_results
from castmatch.services.report import build_report, render_report_text
from castmatch.services.storage import LocalMediaStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/casting", tags=["casting"])


def _build_result_read(row: MatchResult) -> MatchResultRead:
    return MatchResultRead(
        result_id=row.result_id,
        created_at=row.created_at,
        character_data=row.character_data or {},
        character_image=row.character_image,
        matched_candidates=row.matched_candidates or [],
    )


@router.post("/character", response_model=CharacterGenerateResponse)
def create_character(payload: CharacterGenerateRequest, rng=RngDep):
    """
    Describe a character and pick its stand-in portrait.

    The description comes from the completion service when it is configured;
    otherwise the response carries a warning and no description.
    """
    client, warnings = resolve_completion_client(payload.api_key)
    result = generate_character(payload.attributes, client, rng)
    return CharacterGenerateResponse(
        description=result["description"],
        image=result["image"],
        prompt=result["prompt"],
        warnings=[*warnings, *(w for w in result["warnings"] if w not in warnings)],
    )


@router.post("/candidates/upload", response_model=CandidateUploadResponse)
def upload_candidates(files: list[UploadFile] = File(...)):
    """Store uploaded candidate photos and return their media references."""
    store = LocalMediaStore(root_dir=settings.media_root, url_prefix=settings.media_url_prefix)
    images: list[str] = []
    for upload in files:
        data = upload.file.read(settings.max_upload_bytes + 1)
        if len(data) > settings.max_upload_bytes:
            raise HTTPException(status_code=413, detail=f"{upload.filename} is too large")
        if not data:
            raise HTTPException(status_code=400, detail=f"{upload.filename} is empty")
        _, url = store.save_candidate_image(data)
        images.append(url)
    return CandidateUploadResponse(images=images)


@router.post("/match", response_model=MatchResponse)
def match(payload: MatchRequest, db=DbSessionDep, rng=RngDep):
    """
    Score the candidate pool against the character.

    Candidates are returned in upload order; clients sort by ``matchScore``.
    Enrichment failures degrade to a fallback result set instead of an error.
    """
    client, warnings = resolve_completion_client(payload.api_key)
    run = run_casting_match(
        payload.attributes,
        payload.candidates,
        completion_client=client,
        strategy=payload.strategy or settings.matching_strategy,
        rng=rng,
        character_image=payload.character_image,
        warnings=warnings,
    )

    result_id = None
    saved = False
    run_warnings = list(run.warnings)
    if payload.save:
        try:
            row = save_match_results(db, payload.attributes, run.character_image, run.candidates)
        except PersistenceError as e:
            run_warnings.append(e.detail)
        else:
            result_id = row.result_id
            saved = True

    return MatchResponse(
        result_id=result_id,
        saved=saved,
        character_image=run.character_image,
        strategy=run.strategy,
        degraded=run.degraded,
        description=run.description,
        warnings=run_warnings,
        candidates=list(run.candidates),
    )


@router.get("/results", response_model=list[MatchResultRead])
def list_results(
    db=DbSessionDep,
    limit: int | None = Query(default=None, ge=1, le=100),
):
    rows = get_recent_match_results(db, limit=limit or settings.recent_results_limit)
    return [_build_result_read(row) for row in rows]


@router.get("/results/{result_id}", response_model=MatchResultRead)
def get_result(result_id: uuid.UUID, db=DbSessionDep):
    return _build_result_read(get_match_result(db, result_id))


@router.get("/results/{result_id}/report")
def get_result_report(
    result_id: uuid.UUID,
    db=DbSessionDep,
    format: str = Query(default="json", pattern="^(json|text)$"),
):
    """Export a stored run as a JSON manifest or a plain-text report."""
    report = build_report(get_match_result(db, result_id))
    if format == "text":
        return PlainTextResponse(
            render_report_text(report),
            headers={"Content-Disposition": f'attachment; filename="castmatch-{result_id}.txt"'},
        )
    return report
