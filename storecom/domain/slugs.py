"""
URL slugs and store codes.
"""

import re
from typing import Callable


def slugify(text: str) -> str:
    """'Café Blue, MG Road!' -> 'caf-blue-mg-road'"""
    slug = re.sub(r"[^a-z0-9\s-]", "", (text or "").lower())
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")


def unique_slug(base: str, exists: Callable[[str], bool]) -> str:
    """base, base-1, base-2, ... whichever is free first."""
    base = base or "store"
    candidate, counter = base, 1
    while exists(candidate):
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate


def store_code_from_name(name: str) -> str:
    """'Acme  MG Road' -> 'Acme-MG-Road'"""
    return re.sub(r"\s+", "-", (name or "").strip())
