"""Normalisation of operator supplied domain lists."""
from __future__ import annotations

import re
from typing import FrozenSet

from .utils import strip_www

_SCHEME = re.compile(r"https?://", re.IGNORECASE)
_SEPARATORS = re.compile(r"[/,;|\t\r]")
_DOMAIN = re.compile(r"(?:[a-z0-9-]+\.)+[a-z]{2,}")


class DomainInputError(Exception):
    """Raised when the pasted text contains no usable domain."""


def normalize_domains(text: str) -> FrozenSet[str]:
    """Turn free-form pasted text into a set of bare lowercase domains.

    Accepts any mix of commas, semicolons, pipes, tabs and newlines, with or
    without ``http(s)://``, paths and a ``www.`` prefix. Tokens that do not look
    like a domain (bare words, IP addresses, anything with other characters)
    are dropped.
    """

    cleaned = _SEPARATORS.sub(" ", _SCHEME.sub("", text))
    domains = set()
    for token in cleaned.split():
        token = token.lower()
        if _DOMAIN.fullmatch(token):
            domains.add(strip_www(token))
    if not domains:
        raise DomainInputError("No valid domains provided.")
    return frozenset(domains)


__all__ = ["DomainInputError", "normalize_domains"]
