"""
Candidate matching engine.

Scores every candidate photo against the character portrait. Scoring depends
on whether both images look like real photographs:

- both realistic: specificity band of the character record, explained traits
- both stylized: a mid band and a fixed "similar art style" explanation
- mismatched: a low band and a fixed "different visual styles" explanation

A bounded jitter is added and the result clamped to 0-100. All randomness
other than the trait shuffle comes from the ``rng`` argument.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Iterable, Sequence

from castmatch.core.attributes import CandidateImage, CharacterAttributes, MatchedCandidate
from castmatch.core.exceptions import MatchParseError
from castmatch.core.metrics import increment_match_parse_failure, record_candidate_score
from castmatch.services.image_source import classify_image, is_realistic_photo
from castmatch.services.json_payload import parse_json_array
from castmatch.services.scoring import MAX_TRAITS, MIN_TRAITS, base_score, select_traits

logger = logging.getLogger(__name__)

JITTER = 5
STYLIZED_BAND = (40, 70)
MISMATCH_BAND = (5, 20)
FALLBACK_SCORE_BAND = (60, 96)

STYLE_MATCH_TRAITS = (
    "Similar art style",
    "Matching stylized rendering",
    "Comparable character design",
)

STYLE_MISMATCH_TRAITS = (
    "Different visual styles",
    "Realistic vs. stylized imagery",
    "Limited direct comparison",
)

FALLBACK_PROFILES = (
    ("Emma Thompson", ("Similar facial structure", "Expressive eyes", "Natural presence")),
    ("Michael Chen", ("Comparable look", "Strong jawline", "Similar age appearance")),
    ("Sofia Rodriguez", ("Compatible vibe", "Similar hair texture", "Matching intensity")),
)

CandidateInput = str | CandidateImage | dict


def clamp_score(value: int) -> int:
    return max(0, min(100, int(value)))


def candidate_name(candidate: CandidateImage, index: int) -> str:
    return candidate.name or f"Candidate {index + 1}"


def normalize_pool(candidates: Iterable[CandidateInput]) -> list[CandidateImage]:
    """Coerce raw references or mappings into ``CandidateImage`` entries."""
    pool: list[CandidateImage] = []
    for item in candidates:
        if isinstance(item, CandidateImage):
            pool.append(item)
        elif isinstance(item, str):
            pool.append(CandidateImage(image=item))
        else:
            pool.append(CandidateImage.model_validate(item))
    return pool


def score_candidate(
    character_realistic: bool,
    candidate: CandidateImage,
    index: int,
    attrs: CharacterAttributes | None,
    rng: random.Random,
) -> MatchedCandidate:
    character_kind = "realistic" if character_realistic else "stylized"
    candidate_kind = classify_image(candidate.image)

    if character_kind == candidate_kind == "realistic":
        branch = "realistic"
        score = base_score(attrs, rng)
        traits = select_traits(attrs, index)
    elif character_kind == candidate_kind:
        branch = "stylized"
        score = rng.randrange(*STYLIZED_BAND)
        traits = list(STYLE_MATCH_TRAITS)
    else:
        branch = "mismatch"
        score = rng.randrange(*MISMATCH_BAND)
        traits = list(STYLE_MISMATCH_TRAITS)

    match_score = clamp_score(score + rng.randint(-JITTER, JITTER))
    record_candidate_score(branch, match_score)
    return MatchedCandidate(
        name=candidate_name(candidate, index),
        match_score=match_score,
        image=candidate.image,
        matching_traits=tuple(traits),
    )


def match_candidates(
    character_image: str,
    candidates: Sequence[CandidateInput],
    attrs: CharacterAttributes | None = None,
    rng: random.Random | None = None,
) -> list[MatchedCandidate]:
    """Score each candidate in pool order. An empty pool yields an empty list."""
    rng = rng or random.Random()
    pool = normalize_pool(candidates)
    character_realistic = is_realistic_photo(character_image)
    results = [
        score_candidate(character_realistic, candidate, index, attrs, rng)
        for index, candidate in enumerate(pool)
    ]
    logger.debug(
        "candidates_matched",
        extra={"candidate_count": len(results), "character_realistic": character_realistic},
    )
    return results


def fallback_candidates(
    candidates: Sequence[CandidateInput],
    rng: random.Random | None = None,
) -> list[MatchedCandidate]:
    """Fixed result set used when the completion step fails."""
    rng = rng or random.Random()
    pool = normalize_pool(candidates)
    return [
        MatchedCandidate(
            name=name,
            match_score=rng.randrange(*FALLBACK_SCORE_BAND),
            image=candidate.image,
            matching_traits=traits,
        )
        for (name, traits), candidate in zip(FALLBACK_PROFILES, pool)
    ]


def _coerce_llm_entry(entry: Any, size: int) -> tuple[int, int, tuple[str, ...]] | None:
    if not isinstance(entry, dict):
        return None
    index = entry.get("candidateIndex", entry.get("candidate_index"))
    score = entry.get("matchScore", entry.get("match_score"))
    traits = entry.get("matchingTraits", entry.get("matching_traits")) or []
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < size:
        return None
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return None
    if not isinstance(traits, list):
        return None
    cleaned = tuple(str(trait).strip() for trait in traits if str(trait).strip())
    return index, clamp_score(round(score)), cleaned[:MAX_TRAITS]


def _complete_traits(
    traits: tuple[str, ...],
    attrs: CharacterAttributes | None,
    index: int,
) -> tuple[str, ...]:
    """Top up a short model-supplied trait list from the record's own traits."""
    if len(traits) >= MIN_TRAITS:
        return traits
    extra = tuple(trait for trait in select_traits(attrs, index) if trait not in traits)
    return (traits + extra)[:MAX_TRAITS]


def parse_llm_matches(
    text: str,
    character_image: str,
    candidates: Sequence[CandidateInput],
    attrs: CharacterAttributes | None = None,
    rng: random.Random | None = None,
) -> list[MatchedCandidate]:
    """Turn a model-produced match array into candidates in pool order.

    Entries with unknown or duplicate indices are dropped. Candidates the
    model skipped are scored heuristically.

    Raises:
        MatchParseError: If the text holds no usable entries.
    """
    rng = rng or random.Random()
    pool = normalize_pool(candidates)
    entries = parse_json_array(text)

    scored: dict[int, tuple[int, tuple[str, ...]]] = {}
    for entry in entries:
        coerced = _coerce_llm_entry(entry, len(pool))
        if coerced is None:
            continue
        index, score, traits = coerced
        scored.setdefault(index, (score, traits))

    if pool and not scored:
        increment_match_parse_failure("entries")
        raise MatchParseError("Completion match array had no usable entries")

    character_realistic = is_realistic_photo(character_image)
    results: list[MatchedCandidate] = []
    for index, candidate in enumerate(pool):
        if index not in scored:
            results.append(score_candidate(character_realistic, candidate, index, attrs, rng))
            continue
        score, traits = scored[index]
        results.append(
            MatchedCandidate(
                name=candidate_name(candidate, index),
                match_score=score,
                image=candidate.image,
                matching_traits=_complete_traits(traits, attrs, index),
            )
        )
    return results
