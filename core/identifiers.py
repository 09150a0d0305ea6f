"""
Content Store - Identifier Helpers

Pure functions shared by both storage backends:
- composite document ids (``page:{slug}``, ``media:{filename}`` ...)
- category/tag slug derivation
- the search tokenizer and the PostgreSQL prefix tsquery built from it

Both backends must derive ids and tokens through these functions so a caller
never needs to know which store is active.
"""
import re
from typing import List

PAGE = "page"
BLOG_POST = "blog"
MEDIA = "media"
USER = "user"
CONTACT = "contact"

ID_SEPARATOR = ":"

_WHITESPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

MIN_TOKEN_LENGTH = 2


def make_document_id(entity_type: str, key: str) -> str:
    """Build the external id ``{entity_type}:{key}``."""
    return f"{entity_type}{ID_SEPARATOR}{key}"


def natural_key(entity_type: str, identifier: str) -> str:
    """
    Strip the ``{entity_type}:`` prefix from an external id.

    Ids without that prefix are returned unchanged, so callers may pass either
    the composite id or the bare slug/filename/email.
    """
    prefix = f"{entity_type}{ID_SEPARATOR}"
    if identifier.startswith(prefix):
        return identifier[len(prefix):]
    return identifier


def slugify_name(name: str) -> str:
    """
    Derive a category/tag slug from its display name.

    >>> slugify_name("Web Dev")
    'web-dev'
    """
    return _WHITESPACE.sub("-", name.strip().lower())


def search_tokens(text: str) -> List[str]:
    """
    Split free text into searchable tokens.

    Lowercases, splits on anything that is not ``[a-z0-9]`` and drops tokens
    shorter than two characters. Duplicates are removed keeping first-seen
    order.
    """
    seen = set()
    tokens = []
    for token in _NON_ALNUM.split(text.lower()):
        if len(token) < MIN_TOKEN_LENGTH or token in seen:
            continue
        seen.add(token)
        tokens.append(token)
    return tokens


def make_prefix_tsquery(text: str) -> str:
    """
    Build a ``to_tsquery`` expression matching every token as a prefix.

    Returns an empty string when no usable token remains; callers must treat
    that as "no results", never as "match everything".

    >>> make_prefix_tsquery("Hello, World! & More")
    'hello:* & world:* & more:*'
    """
    return " & ".join(f"{token}:*" for token in search_tokens(text))
