import uuid
from datetime import datetime
from typing import Literal

from pydantic import Field

from castmatch.core.attributes import CandidateImage, CastingModel, CharacterAttributes, MatchedCandidate

MAX_CANDIDATES = 50


class CharacterGenerateRequest(CastingModel):
    attributes: CharacterAttributes | None = None
    api_key: str | None = Field(default=None, max_length=512)


class CharacterGenerateResponse(CastingModel):
    description: str | None
    image: str
    prompt: str
    warnings: list[str] = Field(default_factory=list)


class MatchRequest(CastingModel):
    attributes: CharacterAttributes | None = None
    character_image: str | None = Field(default=None, min_length=1)
    candidates: list[str | CandidateImage] = Field(default_factory=list, max_length=MAX_CANDIDATES)
    api_key: str | None = Field(default=None, max_length=512)
    strategy: Literal["heuristic", "llm"] | None = None
    save: bool = True


class MatchResponse(CastingModel):
    result_id: uuid.UUID | None = None
    saved: bool = False
    character_image: str
    strategy: str
    degraded: bool
    description: str | None = None
    warnings: list[str] = Field(default_factory=list)
    candidates: list[MatchedCandidate]


class MatchResultRead(CastingModel):
    result_id: uuid.UUID
    created_at: datetime | None = None
    character_data: dict
    character_image: str
    matched_candidates: list[MatchedCandidate]


class CandidateUploadResponse(CastingModel):
    images: list[str]
