"""Project id and title derivation."""

from __future__ import annotations

import random
import re
import time
from collections.abc import Callable

FALLBACK_FRAGMENT = "athena-project"
FRAGMENT_LENGTH = 20

_MARKDOWN_NOISE = re.compile(r"[#*`>_]|^\s*[-+]\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def title_fragment(overview: str) -> str:
    """First line that looks like a title, with markdown noise stripped.

    A candidate must be 4-49 characters long; otherwise the fallback is used.
    """
    for line in overview.splitlines():
        cleaned = " ".join(_MARKDOWN_NOISE.sub("", line).split())
        if 3 < len(cleaned) < 50:
            return cleaned
    return FALLBACK_FRAGMENT


def slugify(fragment: str, limit: int = FRAGMENT_LENGTH) -> str:
    slug = _NON_ALNUM.sub("-", fragment.lower()).strip("-")
    slug = slug[:limit].strip("-")
    return slug or FALLBACK_FRAGMENT[:limit]


def disambiguator(
    clock: Callable[[], float] = time.time,
    rng: Callable[[int, int], int] = random.randint,
) -> str:
    """Five digits mixed from the clock and a random number.

    Not collision free; a clash shows up as a 422 from GitHub on repo creation.
    """
    millis = str(int(clock() * 1000))
    salt = f"{rng(0, 999):03d}"
    return f"{int(millis[-4:] + salt) % 100_000:05d}"


def generate_project_id(
    overview: str,
    *,
    clock: Callable[[], float] = time.time,
    rng: Callable[[int, int], int] = random.randint,
) -> str:
    return f"{slugify(title_fragment(overview))}-{disambiguator(clock, rng)}"


def title_from_id(project_id: str) -> str:
    """Human-readable title: the id without its numeric suffix."""
    stem, _, suffix = project_id.rpartition("-")
    if not stem or not suffix.isdigit():
        stem = project_id
    return stem.replace("-", " ").replace("_", " ").title()
