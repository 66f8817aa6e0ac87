"""
End-to-end casting flow.

Enriches the character description through the completion service, picks a
stand-in portrait and scores the candidate pool. Enrichment problems never
fail a run:

- no credential: a warning is attached and matching proceeds heuristically
- transport or parse failure: the fixed fallback result set is returned
"""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass, field
from typing import Sequence

from castmatch.core.attributes import CharacterAttributes, MatchRun
from castmatch.core.completion_factory import build_completion_client
from castmatch.core.exceptions import CompletionError, ConfigurationError, MatchParseError
from castmatch.core.metrics import record_match_run
from castmatch.core.request_context import run_context
from castmatch.core.settings import Settings
from castmatch.core.telemetry import trace_span
from castmatch.prompts.loader import get_prompt, render_prompt
from castmatch.services.character import (
    build_character_prompt,
    character_system_prompt,
    select_character_image,
)
from castmatch.services.completion import GeminiCompletionClient
from castmatch.services.matching import (
    CandidateInput,
    fallback_candidates,
    match_candidates,
    normalize_pool,
    parse_llm_matches,
)

logger = logging.getLogger(__name__)

STRATEGY_HEURISTIC = "heuristic"
STRATEGY_LLM = "llm"
STRATEGY_FALLBACK = "fallback"
STRATEGIES = (STRATEGY_HEURISTIC, STRATEGY_LLM)

NOT_CONFIGURED_WARNING = "Text completion is not configured; character enrichment was skipped."
ENRICHMENT_FAILED_WARNING = "Character enrichment failed; showing fallback matches."
LLM_UNAVAILABLE_WARNING = "LLM scoring needs a completion client; heuristic scoring was used."


@dataclass
class Enrichment:
    prompt: str
    description: str | None = None
    failed: bool = False
    warnings: list[str] = field(default_factory=list)


def resolve_completion_client(
    api_key: str | None,
    app_settings: Settings | None = None,
) -> tuple[GeminiCompletionClient | None, list[str]]:
    """Build a client for this request, or report why none is available."""
    try:
        return build_completion_client(api_key=api_key, app_settings=app_settings), []
    except ConfigurationError as exc:
        logger.warning("completion_not_configured reason=%s", exc)
        return None, [NOT_CONFIGURED_WARNING]


def enrich_character(
    attrs: CharacterAttributes | None,
    completion_client: GeminiCompletionClient | None,
) -> Enrichment:
    prompt = build_character_prompt(attrs)
    if completion_client is None:
        return Enrichment(prompt=prompt, warnings=[NOT_CONFIGURED_WARNING])

    with trace_span("casting.enrich_character"):
        try:
            text = completion_client.generate_text(prompt, system_instruction=character_system_prompt())
        except CompletionError as exc:
            logger.warning(
                "character_enrichment_failed",
                extra={"error_type": type(exc).__name__, "error": str(exc)},
            )
            return Enrichment(prompt=prompt, failed=True, warnings=[ENRICHMENT_FAILED_WARNING])

    text = (text or "").strip()
    if not text:
        logger.warning("character_enrichment_empty")
        return Enrichment(prompt=prompt, failed=True, warnings=[ENRICHMENT_FAILED_WARNING])
    return Enrichment(prompt=prompt, description=text)


def generate_character(
    attrs: CharacterAttributes | None,
    completion_client: GeminiCompletionClient | None,
    rng: random.Random | None = None,
) -> dict:
    """Describe the character and choose its stand-in portrait."""
    rng = rng or random.Random()
    enrichment = enrich_character(attrs, completion_client)
    image = select_character_image(attrs.gender if attrs else None, rng)
    logger.info(
        "character_generated",
        extra={"enriched": enrichment.description is not None, "character_image": image},
    )
    return {
        "description": enrichment.description,
        "image": image,
        "prompt": enrichment.prompt,
        "warnings": enrichment.warnings,
    }


def _request_llm_matches(
    completion_client: GeminiCompletionClient,
    character_image: str,
    candidates: Sequence[CandidateInput],
    attrs: CharacterAttributes | None,
    description: str | None,
    rng: random.Random,
):
    pool = normalize_pool(candidates)
    prompt = render_prompt(
        "prompt_candidate_matching",
        system_prompt_json=get_prompt("system_prompt_json").strip(),
        character_image=character_image,
        character_summary=description or build_character_prompt(attrs),
        candidates=[candidate.image for candidate in pool],
    )
    text = completion_client.generate_text(prompt)
    return parse_llm_matches(text, character_image, pool, attrs, rng)


def run_casting_match(
    attrs: CharacterAttributes | None,
    candidates: Sequence[CandidateInput],
    *,
    completion_client: GeminiCompletionClient | None,
    strategy: str = STRATEGY_HEURISTIC,
    rng: random.Random | None = None,
    character_image: str | None = None,
    warnings: Sequence[str] = (),
) -> MatchRun:
    """Run one matching pass and return the candidates in pool order."""
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown matching strategy: {strategy}")

    rng = rng or random.Random()
    run_id = uuid.uuid4()
    notes = list(warnings)

    with run_context(run_id=run_id, strategy=strategy), trace_span(
        "casting.match", strategy=strategy, candidate_count=len(candidates)
    ):
        enrichment = enrich_character(attrs, completion_client)
        for warning in enrichment.warnings:
            if warning not in notes:
                notes.append(warning)

        image = character_image or select_character_image(attrs.gender if attrs else None, rng)

        used = strategy
        if enrichment.failed:
            used = STRATEGY_FALLBACK
            results = fallback_candidates(candidates, rng)
        elif strategy == STRATEGY_LLM and completion_client is not None:
            try:
                results = _request_llm_matches(
                    completion_client, image, candidates, attrs, enrichment.description, rng
                )
            except (CompletionError, MatchParseError) as exc:
                logger.warning(
                    "llm_matching_failed",
                    extra={"error_type": type(exc).__name__, "error": str(exc)},
                )
                used = STRATEGY_FALLBACK
                notes.append(ENRICHMENT_FAILED_WARNING)
                results = fallback_candidates(candidates, rng)
        else:
            if strategy == STRATEGY_LLM:
                notes.append(LLM_UNAVAILABLE_WARNING)
                used = STRATEGY_HEURISTIC
            results = match_candidates(image, candidates, attrs, rng)

        record_match_run(used)
        logger.info(
            "match_run_complete",
            extra={
                "strategy_used": used,
                "candidate_count": len(candidates),
                "result_count": len(results),
                "degraded": used == STRATEGY_FALLBACK,
            },
        )

    return MatchRun(
        character_image=image,
        candidates=tuple(results),
        strategy=used,
        degraded=used == STRATEGY_FALLBACK,
        description=enrichment.description,
        warnings=tuple(notes),
    )
