"""Downloadable reports for stored match runs."""

from __future__ import annotations

from castmatch.core.attributes import CharacterAttributes
from castmatch.db.models import MatchResult
from castmatch.prompts.loader import render_prompt

_CHARACTER_LABELS = (
    ("gender", "Gender"),
    ("age", "Age"),
    ("ethnicity", "Ethnicity"),
    ("skin_tone", "Skin tone"),
    ("hairstyle", "Hairstyle"),
    ("hair_color", "Hair color"),
    ("facial_hair", "Facial hair"),
    ("eye_shape", "Eye shape"),
    ("eye_color", "Eye color"),
    ("face_shape", "Face shape"),
    ("nose_shape", "Nose shape"),
    ("lip_shape", "Lip shape"),
    ("cheekbone_prominence", "Cheekbone prominence"),
    ("jawline_definition", "Jawline definition"),
    ("skin_texture", "Skin texture"),
    ("jaw_shape", "Jaw shape"),
    ("body_type", "Body type"),
    ("special_features", "Special features"),
    ("vibe", "Vibe"),
    ("personality_vibe", "Personality"),
    ("character_description", "Description"),
)


def _character_lines(character_data: dict) -> list[tuple[str, str]]:
    attrs = CharacterAttributes.model_validate(character_data or {})
    lines: list[tuple[str, str]] = []
    for field, label in _CHARACTER_LABELS:
        value = getattr(attrs, field)
        if value is None:
            continue
        if isinstance(value, tuple):
            value = ", ".join(value)
        lines.append((label, str(value)))
    return lines


def build_report(record: MatchResult) -> dict:
    """Summarize a stored run with candidates ranked by descending score."""
    ranked = sorted(
        record.matched_candidates or [],
        key=lambda candidate: candidate.get("matchScore", 0),
        reverse=True,
    )
    candidates = [{"rank": rank, **candidate} for rank, candidate in enumerate(ranked, start=1)]
    scores = [candidate.get("matchScore", 0) for candidate in ranked]
    return {
        "result_id": str(record.result_id),
        "created_at": record.created_at.isoformat() if record.created_at else None,
        "character": record.character_data or {},
        "character_lines": _character_lines(record.character_data),
        "character_image": record.character_image,
        "candidates": candidates,
        "summary": {
            "count": len(scores),
            "best_score": max(scores) if scores else None,
            "average_score": round(sum(scores) / len(scores), 1) if scores else None,
        },
    }


def render_report_text(report: dict) -> str:
    return render_prompt("report_match_results", report=report) + "\n"
