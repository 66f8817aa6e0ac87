"""Tests for the end-to-end casting flow with mocked completion clients."""

import json
import random
from unittest.mock import MagicMock

import pytest

from castmatch.core.attributes import CharacterAttributes
from castmatch.core.exceptions import CompletionTimeoutError
from castmatch.core.settings import settings
from castmatch.services.casting import (
    ENRICHMENT_FAILED_WARNING,
    LLM_UNAVAILABLE_WARNING,
    NOT_CONFIGURED_WARNING,
    enrich_character,
    generate_character,
    resolve_completion_client,
    run_casting_match,
)
from castmatch.services.character import DEFAULT_CHARACTER_IMAGE, FEMALE_CHARACTER_IMAGES
from castmatch.services.matching import FALLBACK_PROFILES

POOL = [
    "https://images.pexels.com/a.jpg",
    "https://images.pexels.com/b.jpg",
    "https://images.pexels.com/c.jpg",
    "https://images.pexels.com/d.jpg",
]


def _client(*responses):
    client = MagicMock()
    client.generate_text.side_effect = list(responses)
    return client


class TestResolveCompletionClient:
    def test_missing_credentials_produce_warning(self):
        cfg = settings.model_copy(update={"gemini_api_key": None, "google_cloud_project": None})
        client, warnings = resolve_completion_client(None, cfg)
        assert client is None
        assert warnings == [NOT_CONFIGURED_WARNING]

    def test_blank_request_key_is_ignored(self):
        cfg = settings.model_copy(update={"gemini_api_key": None, "google_cloud_project": None})
        client, warnings = resolve_completion_client("   ", cfg)
        assert client is None
        assert warnings == [NOT_CONFIGURED_WARNING]


class TestEnrichCharacter:
    def test_success(self):
        client = _client("  A weathered detective with kind eyes.  ")
        result = enrich_character(CharacterAttributes(gender="Male", age=55), client)
        assert result.description == "A weathered detective with kind eyes."
        assert not result.failed
        prompt = client.generate_text.call_args.args[0]
        assert "Gender: Male" in prompt
        assert "Age: 55" in prompt
        assert client.generate_text.call_args.kwargs["system_instruction"]

    def test_completion_error_marks_failure(self):
        result = enrich_character(None, _client(CompletionTimeoutError("deadline exceeded")))
        assert result.failed
        assert result.warnings == [ENRICHMENT_FAILED_WARNING]

    def test_empty_text_marks_failure(self):
        result = enrich_character(None, _client("   "))
        assert result.failed

    def test_no_client(self):
        result = enrich_character(None, None)
        assert not result.failed
        assert result.description is None
        assert result.warnings == [NOT_CONFIGURED_WARNING]


class TestGenerateCharacter:
    def test_female_portrait_from_pool(self):
        result = generate_character(CharacterAttributes(gender="Female"), _client("desc"), random.Random(0))
        assert result["image"] in FEMALE_CHARACTER_IMAGES
        assert result["description"] == "desc"
        assert result["warnings"] == []

    def test_unknown_gender_uses_default_portrait(self):
        result = generate_character(CharacterAttributes(gender="Non-binary"), None, random.Random(0))
        assert result["image"] == DEFAULT_CHARACTER_IMAGE
        assert result["warnings"] == [NOT_CONFIGURED_WARNING]
        assert "Gender: Non-binary" in result["prompt"]


class TestRunCastingMatch:
    def test_heuristic_success(self):
        attrs = CharacterAttributes(gender="Female", age=30, hair_color="Red")
        run = run_casting_match(attrs, POOL, completion_client=_client("desc"), rng=random.Random(1))
        assert run.strategy == "heuristic"
        assert not run.degraded
        assert run.description == "desc"
        assert run.character_image in FEMALE_CHARACTER_IMAGES
        assert [c.image for c in run.candidates] == POOL
        assert all(0 <= c.match_score <= 100 for c in run.candidates)

    def test_enrichment_failure_returns_fallback_set(self):
        run = run_casting_match(
            CharacterAttributes(gender="Male"),
            POOL,
            completion_client=_client(CompletionTimeoutError("timed out")),
            rng=random.Random(1),
        )
        assert run.degraded
        assert run.strategy == "fallback"
        assert len(run.candidates) == 3
        assert [c.name for c in run.candidates] == [name for name, _ in FALLBACK_PROFILES]
        assert all(60 <= c.match_score < 96 for c in run.candidates)
        assert ENRICHMENT_FAILED_WARNING in run.warnings

    def test_no_client_still_matches(self):
        run = run_casting_match(
            None,
            POOL[:2],
            completion_client=None,
            rng=random.Random(1),
            warnings=[NOT_CONFIGURED_WARNING],
        )
        assert run.strategy == "heuristic"
        assert len(run.candidates) == 2
        assert run.warnings == (NOT_CONFIGURED_WARNING,)
        assert run.character_image == DEFAULT_CHARACTER_IMAGE

    def test_explicit_character_image_is_kept(self):
        run = run_casting_match(
            None,
            ["https://example.com/anime-1.png"],
            completion_client=None,
            rng=random.Random(1),
            character_image="https://example.com/anime-hero.png",
        )
        assert run.character_image == "https://example.com/anime-hero.png"
        assert run.candidates[0].matching_traits[0] == "Similar art style"

    def test_llm_strategy(self):
        payload = json.dumps(
            [{"candidateIndex": i, "matchScore": 90 - i, "matchingTraits": ["Strong jawline"]} for i in range(4)]
        )
        client = _client("desc", payload)
        run = run_casting_match(
            CharacterAttributes(gender="Male"),
            POOL,
            completion_client=client,
            strategy="llm",
            rng=random.Random(1),
        )
        assert run.strategy == "llm"
        assert [c.match_score for c in run.candidates] == [90, 89, 88, 87]
        matching_prompt = client.generate_text.call_args_list[1].args[0]
        assert "candidateIndex 3: https://images.pexels.com/d.jpg" in matching_prompt

    def test_llm_parse_failure_falls_back(self):
        run = run_casting_match(
            None,
            POOL,
            completion_client=_client("desc", "no json here"),
            strategy="llm",
            rng=random.Random(1),
        )
        assert run.degraded
        assert len(run.candidates) == 3

    def test_llm_strategy_without_client_is_heuristic(self):
        run = run_casting_match(None, POOL, completion_client=None, strategy="llm", rng=random.Random(1))
        assert run.strategy == "heuristic"
        assert LLM_UNAVAILABLE_WARNING in run.warnings
        assert len(run.candidates) == 4

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            run_casting_match(None, POOL, completion_client=None, strategy="magic")

    def test_ranked_orders_by_score(self):
        run = run_casting_match(None, POOL, completion_client=None, rng=random.Random(8))
        scores = [c.match_score for c in run.ranked()]
        assert scores == sorted(scores, reverse=True)
