"""Company name -> workspace slug derivation."""

from __future__ import annotations

import re

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
SAFE_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
MAX_SLUG_LENGTH = 200
FALLBACK_SLUG = "unknown"


def company_slug(name: str) -> str:
    """Derive the URL-safe workspace slug for a company name.

    ``"Acme, Corp!! "`` and ``"acme corp"`` both map to ``"acme-corp"``;
    a name with no alphanumerics maps to ``"unknown"``.
    """
    slug = _NON_ALNUM_RE.sub("-", (name or "").lower().strip()).strip("-")
    return slug or FALLBACK_SLUG


def is_safe_slug(slug: str) -> bool:
    return bool(SAFE_SLUG_RE.match(slug)) and len(slug) <= MAX_SLUG_LENGTH
