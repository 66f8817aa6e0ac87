"""
Character prompt building and stand-in portrait selection.

No portrait is ever generated. The "generated character" shown next to the
candidates is picked from a small fixed pool keyed by gender.
"""

from __future__ import annotations

import random

from castmatch.core.attributes import CharacterAttributes
from castmatch.prompts.loader import get_prompt, render_prompt

_UNSPLASH = "https://images.unsplash.com/{}?auto=format&fit=crop&w=800&h=800"

FEMALE_CHARACTER_IMAGES = (
    _UNSPLASH.format("photo-1494790108377-be9c29b29330"),
    _UNSPLASH.format("photo-1438761681033-6461ffad8d80"),
    _UNSPLASH.format("photo-1534528741775-53994a69daeb"),
)

MALE_CHARACTER_IMAGES = (
    _UNSPLASH.format("photo-1500648767791-00dcc994a43e"),
    _UNSPLASH.format("photo-1507003211169-0a1dd7228f2d"),
    _UNSPLASH.format("photo-1506794778202-cad84cf45f1d"),
)

DEFAULT_CHARACTER_IMAGE = _UNSPLASH.format("photo-1649972904349-6e44c42644a7")


def build_character_prompt(attrs: CharacterAttributes | None) -> str:
    """Render the attribute block sent to the completion service."""
    attrs = attrs or CharacterAttributes()
    return render_prompt("prompt_character_description", **attrs.model_dump())


def character_system_prompt() -> str:
    return get_prompt("system_prompt_casting").strip()


def select_character_image(gender: str | None, rng: random.Random) -> str:
    normalized = (gender or "").strip().lower()
    if normalized == "female":
        return rng.choice(FEMALE_CHARACTER_IMAGES)
    if normalized == "male":
        return rng.choice(MALE_CHARACTER_IMAGES)
    return DEFAULT_CHARACTER_IMAGE
