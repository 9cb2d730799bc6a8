"""
Slug derivation and disambiguation tokens
"""

import itertools
import re
import secrets
import threading
import time
from typing import Callable

TokenSource = Callable[[], str]

_DISALLOWED = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")
_EDGE_HYPHENS = re.compile(r"^-+|-+$")


def slugify(title: str) -> str:
    """Derive a URL-safe slug from a title.

    >>> slugify("AWS re:Invent 2025")
    'aws-reinvent-2025'
    >>> slugify("!@#$%^&*()")
    ''
    """
    slug = title.lower().strip()
    slug = _DISALLOWED.sub("", slug)
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHENS.sub("-", slug)
    return _EDGE_HYPHENS.sub("", slug)


def disambiguate(base: str, token: str) -> str:
    """Append a token to a base slug; an empty base yields the bare token"""
    return f"{base}-{token}" if base else token


def timestamp_token() -> str:
    """Current time in milliseconds plus a short random suffix.

    The suffix keeps tokens drawn within the same millisecond, in this
    process or another, from repeating.
    """
    return f"{int(time.time() * 1000)}{secrets.token_hex(2)}"


class CounterTokenSource:
    """Deterministic token source yielding 1, 2, 3, ..."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            return str(next(self._counter))
