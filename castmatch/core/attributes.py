"""
Structured casting types shared by the matching engine and the API layer.

``CharacterAttributes`` is built once at the request boundary and then passed
through the engine unchanged. Every field is optional: ``None`` means the
casting director left that trait unconstrained.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MAX_VIBES = 3

_SLIDER_KEYS = frozenset(
    {
        "age",
        "ageRange",
        "cheekbone_prominence",
        "cheekboneProminence",
        "jawline_definition",
        "jawlineDefinition",
    }
)
_TAG_FIELDS = ("special_features", "vibe", "personality_vibe")


class CastingModel(BaseModel):
    """Frozen model that accepts snake_case or camelCase and emits camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


def _clean_text(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _clean_tags(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        return value
    seen: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError("tags must be strings")
        tag = item.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return tuple(seen) or None


class CharacterAttributes(CastingModel):
    gender: str | None = Field(default=None, max_length=32)
    age: int | None = Field(default=None, ge=0, le=120)
    ethnicity: str | None = Field(default=None, max_length=64)
    hairstyle: str | None = Field(default=None, max_length=64)
    hair_color: str | None = Field(default=None, max_length=64)
    body_type: str | None = Field(default=None, max_length=64)
    skin_tone: str | None = Field(default=None, max_length=64)
    facial_hair: str | None = Field(default=None, max_length=64)
    eye_shape: str | None = Field(default=None, max_length=64)
    eye_color: str | None = Field(default=None, max_length=64)
    face_shape: str | None = Field(default=None, max_length=64)
    nose_shape: str | None = Field(default=None, max_length=64)
    lip_shape: str | None = Field(default=None, max_length=64)
    cheekbone_prominence: int | None = Field(default=None, ge=0, le=100)
    jawline_definition: int | None = Field(default=None, ge=0, le=100)
    skin_texture: str | None = Field(default=None, max_length=64)
    jaw_shape: str | None = Field(default=None, max_length=64)
    special_features: tuple[str, ...] | None = None
    vibe: tuple[str, ...] | None = None
    personality_vibe: tuple[str, ...] | None = None
    character_description: str | None = Field(default=None, max_length=4000)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        # The form's age slider posts "ageRange": [30].
        if "ageRange" in data and "age" not in data:
            data = {**data, "age": data["ageRange"]}
        normalized: dict[str, Any] = {}
        for key, value in data.items():
            value = _clean_text(value)
            if isinstance(value, (list, tuple)) and len(value) == 1 and key in _SLIDER_KEYS:
                value = value[0]
            normalized[key] = value
        return normalized

    @field_validator(*_TAG_FIELDS, mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> Any:
        return _clean_tags(value)

    @field_validator("vibe", "personality_vibe")
    @classmethod
    def _limit_vibes(cls, value: tuple[str, ...] | None) -> tuple[str, ...] | None:
        if value is not None and len(value) > MAX_VIBES:
            raise ValueError(f"at most {MAX_VIBES} vibes may be selected")
        return value

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class CandidateImage(CastingModel):
    """One entry of the candidate pool: an image reference and an optional display name."""

    image: str = Field(min_length=1)
    name: str | None = Field(default=None, max_length=255)

    @field_validator("image", "name", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return _clean_text(value)


class MatchedCandidate(CastingModel):
    name: str
    match_score: int = Field(ge=0, le=100)
    image: str
    matching_traits: tuple[str, ...]


class MatchRun(CastingModel):
    """Outcome of one matching run, in candidate pool order."""

    character_image: str
    candidates: tuple[MatchedCandidate, ...]
    strategy: str
    degraded: bool = False
    description: str | None = None
    warnings: tuple[str, ...] = ()

    def ranked(self) -> list[MatchedCandidate]:
        return sorted(self.candidates, key=lambda candidate: candidate.match_score, reverse=True)
