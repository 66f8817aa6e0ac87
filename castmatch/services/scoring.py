"""
Feature specificity scoring and matching-trait explanations.

Both functions are heuristics over the structured character record. The more
physical traits a casting director pins down, the narrower and lower the
likely match band for any real actor photo.
"""

from __future__ import annotations

import random

from castmatch.core.attributes import CharacterAttributes
from castmatch.services.shuffle import SeededRandom

PHYSICAL_FIELDS = (
    "gender",
    "ethnicity",
    "age",
    "hairstyle",
    "hair_color",
    "eye_shape",
    "eye_color",
    "face_shape",
    "nose_shape",
    "lip_shape",
    "skin_tone",
    "facial_hair",
    "body_type",
)

UNSPECIFIED_BAND = (30, 70)

# (max specificity, [low, high)) in ascending order.
SPECIFICITY_BANDS = (
    (3, (60, 90)),
    (6, (40, 70)),
    (9, (25, 50)),
)
MOST_SPECIFIC_BAND = (10, 30)

GENERIC_TRAIT = "Generic match"
MIN_TRAITS = 2
MAX_TRAITS = 4

NO_FACIAL_HAIR = {"none", "clean-shaven", "clean shaven", "no facial hair"}

_TRAIT_TEMPLATES = (
    ("gender", "{} appearance"),
    ("age", "Around {} years old"),
    ("ethnicity", "{} features"),
    ("hairstyle", "{} hairstyle"),
    ("hair_color", "{} hair"),
    ("body_type", "{} build"),
    ("skin_tone", "{} skin tone"),
    ("facial_hair", "{} facial hair"),
    ("eye_shape", "{} eye shape"),
    ("eye_color", "{} eyes"),
    ("face_shape", "{} face shape"),
    ("nose_shape", "{} nose"),
    ("lip_shape", "{} lips"),
    ("cheekbone_prominence", "{}% cheekbone prominence"),
    ("jawline_definition", "{}% jawline definition"),
    ("skin_texture", "{} skin texture"),
    ("jaw_shape", "{} jaw"),
)


def is_unspecified(attrs: CharacterAttributes | None) -> bool:
    """A missing record and a record with every field unset are treated alike."""
    return attrs is None or attrs.is_empty()


def specificity(attrs: CharacterAttributes) -> int:
    """Count how many of the physical fields are populated."""
    return sum(1 for field in PHYSICAL_FIELDS if getattr(attrs, field) is not None)


def specificity_band(count: int) -> tuple[int, int]:
    for upper, band in SPECIFICITY_BANDS:
        if count <= upper:
            return band
    return MOST_SPECIFIC_BAND


def base_score(attrs: CharacterAttributes | None, rng: random.Random) -> int:
    if is_unspecified(attrs):
        low, high = UNSPECIFIED_BAND
    else:
        low, high = specificity_band(specificity(attrs))
    return rng.randrange(low, high)


def _has_facial_hair(value: str) -> bool:
    return value.strip().lower() not in NO_FACIAL_HAIR


def trait_pool(attrs: CharacterAttributes) -> list[str]:
    """Build every descriptive trait string the record supports, in field order."""
    traits: list[str] = []
    for field, template in _TRAIT_TEMPLATES:
        value = getattr(attrs, field)
        if value is None:
            continue
        if field == "facial_hair" and not _has_facial_hair(value):
            continue
        traits.append(template.format(value))
    traits.extend(attrs.special_features or ())
    traits.extend(f"{vibe} vibe" for vibe in attrs.vibe or ())
    traits.extend(f"{vibe} personality" for vibe in attrs.personality_vibe or ())
    return traits


def select_traits(attrs: CharacterAttributes | None, candidate_index: int) -> list[str]:
    """Pick 2-4 traits for a candidate, reproducibly for the same index."""
    if is_unspecified(attrs):
        return [GENERIC_TRAIT]
    pool = trait_pool(attrs)
    if not pool:
        return [GENERIC_TRAIT]

    generator = SeededRandom(candidate_index)
    shuffled = generator.shuffle(pool)
    count = MIN_TRAITS + generator.next_index(MAX_TRAITS - MIN_TRAITS + 1)
    return shuffled[: min(count, len(shuffled))]
