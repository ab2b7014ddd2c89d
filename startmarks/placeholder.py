from __future__ import annotations

from typing import Optional

MIN_ICON_BYTES = 100
SVG_BADGE_PROVIDER = "favicon.im"


def is_placeholder(body: bytes, source_url: str, hostname: str, content_type: Optional[str]) -> bool:
    """Return True when a provider answered 200 but sent a "no icon" stand-in.

    - Anything under 100 bytes is a 1x1 pixel or an empty badge, whoever sent it.
    - favicon.im draws its fallback badge with an SVG <text> element; real SVG icons use <path>.
    """
    if len(body) < MIN_ICON_BYTES:
        return True

    if SVG_BADGE_PROVIDER in source_url and content_type and "image/svg+xml" in content_type.lower():
        svg = body.decode("utf-8", errors="replace").lower()
        if "<text" in svg:
            return True

    return False
