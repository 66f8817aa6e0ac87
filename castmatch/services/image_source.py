"""
Heuristic classification of image references.

The check looks only at the reference string, never at pixels. Stylized
markers win over realistic hosts so that an avatar served from a stock CDN
is still treated as stylized.
"""

from __future__ import annotations

import re

ANIMATION_PATTERN = re.compile(
    r"cartoon|anime|animated|animation|3d[-_ ]?(?:render|model|art)|\brender(?:ed|ing)?\b|\bcgi\b"
    r"|avatar|game[-_ ]?character|pixar|chibi|manga|toon|illustration",
    re.IGNORECASE,
)

PHOTO_PATTERN = re.compile(r"photo|portrait|headshot|professional", re.IGNORECASE)

REALISTIC_HOST_MARKERS = (
    "unsplash.com",
    "pexels.com",
    "shutterstock.com",
    "gettyimages.",
    "istockphoto.com",
    "stock.adobe.com",
    "amazonaws.com",
    "storage.googleapis.com",
    "googleusercontent.com",
    "supabase.co/storage",
    "blob.core.windows.net",
    "cloudinary.com",
    "imgix.net",
    "cloudfront.net",
    "blob:",
)


def is_realistic_photo(ref: str) -> bool:
    if not isinstance(ref, str) or not ref:
        return True
    if ANIMATION_PATTERN.search(ref):
        return False
    lowered = ref.lower()
    if any(marker in lowered for marker in REALISTIC_HOST_MARKERS):
        return True
    if PHOTO_PATTERN.search(ref):
        return True
    return True


def classify_image(ref: str) -> str:
    """Return ``"realistic"`` or ``"stylized"``; also the score branch label."""
    return "realistic" if is_realistic_photo(ref) else "stylized"
