"""Tokenization and set similarity for trigger matching."""

import re
from functools import lru_cache
from typing import AbstractSet, FrozenSet

from .constants import STOPWORDS

# Keeps compound technical tokens intact: next.js, asp.net, c#, c++, react-query
TOKEN_PATTERN = re.compile(r"[a-z0-9][a-z0-9+#]*(?:[.\-][a-z0-9+#]+)*")

_PLURAL_EXCEPTIONS = ("ss", "us", "is")


def _normalize_token(token: str) -> str:
    if len(token) > 3 and token.endswith("s") and not token.endswith(_PLURAL_EXCEPTIONS):
        return token[:-1]
    return token


@lru_cache(maxsize=4096)
def tokenize(text: str) -> FrozenSet[str]:
    """Get the normalized token set of a text.

    Lowercases, drops stopwords, and strips a trailing plural ``s``.
    """
    if not text:
        return frozenset()
    tokens = set()
    for raw in TOKEN_PATTERN.findall(text.lower()):
        if raw in STOPWORDS:
            continue
        tokens.add(_normalize_token(raw))
    return frozenset(tokens)


def normalize_text(text: str) -> str:
    """Lowercase and collapse whitespace, for phrase containment checks."""
    return " ".join(text.lower().split())


def jaccard(first: AbstractSet[str], second: AbstractSet[str]) -> float:
    """Jaccard similarity of two token sets (0.0 when both are empty)."""
    if not first or not second:
        return 0.0
    union = len(first | second)
    return len(first & second) / union
