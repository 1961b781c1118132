"""Slug generation and blog read-time helpers."""

import math
import re
import unicodedata
from typing import Callable

WORDS_PER_MINUTE = 200
MAX_SLUG_LENGTH = 255  # Blog.slug column width


def generate_slug(text: str) -> str:
    """Generate URL-friendly slug from text."""
    slug = unicodedata.normalize("NFKD", text)
    slug = "".join(c for c in slug if not unicodedata.combining(c))
    slug = slug.lower().strip()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug).strip("-")
    return slug[:MAX_SLUG_LENGTH]


def ensure_unique_slug(
    base_slug: str,
    exists: Callable[[str], bool],
    max_length: int = MAX_SLUG_LENGTH,
) -> str:
    """
    Append -1, -2, ... to base_slug until exists() reports it free.

    The base is shortened so that base plus suffix fits in max_length.
    The probe and the later insert are not atomic; the unique constraint on
    the column rejects whichever concurrent writer loses.
    """
    slug = base_slug[:max_length]
    counter = 1
    while exists(slug):
        suffix = f"-{counter}"
        slug = f"{base_slug[:max_length - len(suffix)]}{suffix}"
        counter += 1
    return slug


def calculate_read_time(content: str) -> int:
    """Minutes to read at 200 words per minute, rounded up."""
    words = len(content.split())
    return math.ceil(words / WORDS_PER_MINUTE)
