"""Domain lookup in nginx virtual host files.

Only the first line mentioning ``server_name`` is consulted and the last name on
that line wins: operators list aliases first and put the canonical domain last.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Optional

LOGGER = logging.getLogger(__name__)

_SERVER_NAME = re.compile(r"\bserver_name\b")


def find_first_server_name_line(lines: Iterable[str]) -> Optional[str]:
    for line in lines:
        if _SERVER_NAME.search(line):
            return line
    return None


def extract_last_token(line: str) -> Optional[str]:
    """Return the last name of a ``server_name`` line, lowercased.

    Anything after ``#`` is dropped first, so a line holding the directive only
    inside a comment yields ``None``.
    """

    line = line.split("#", 1)[0]
    line = _SERVER_NAME.sub(" ", line, count=1)
    tokens = re.sub(r"[;,]", " ", line).split()
    if not tokens:
        return None
    return tokens[-1].lower()


def last_domain_first_servername_line(path: Path) -> Optional[str]:
    path = Path(path)
    try:
        with path.open(encoding="utf-8", errors="replace") as fh:
            line = find_first_server_name_line(fh)
    except OSError as exc:
        LOGGER.debug("Cannot read '%s': %s", path, exc)
        return None
    if line is None:
        return None
    return extract_last_token(line)


__all__ = [
    "extract_last_token",
    "find_first_server_name_line",
    "last_domain_first_servername_line",
]
