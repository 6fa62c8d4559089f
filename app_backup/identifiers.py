"""Recover Cloudways server/application ids from access log names."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional, Tuple

LOGGER = logging.getLogger(__name__)

ACCESS_LOG_GLOB = "*-*.cloudwaysapps.com.access.log"
_ACCESS_LOG_NAME = re.compile(r"^.*-([0-9]+)-([0-9]+)\.cloudwaysapps\.com\.access\.log$")


def parse_access_log_name(filename: str) -> Optional[Tuple[str, str]]:
    match = _ACCESS_LOG_NAME.match(filename)
    if not match:
        return None
    return match.group(1), match.group(2)


def extract_ids_from_logs(logs_dir: Path) -> Optional[Tuple[str, str]]:
    """Return ``(server_id, app_id)`` from the newest access log in *logs_dir*.

    Only the most recently modified candidate is inspected; if its name does
    not carry two numeric ids the result is ``None``.
    """

    logs_dir = Path(logs_dir)
    candidates = []
    try:
        for path in logs_dir.glob(ACCESS_LOG_GLOB):
            try:
                candidates.append((path.stat().st_mtime, path))
            except OSError:  # pragma: no cover - file vanished
                continue
    except OSError as exc:  # pragma: no cover - filesystem dependent
        LOGGER.debug("Cannot list '%s': %s", logs_dir, exc)
        return None
    if not candidates:
        LOGGER.debug("No access logs in '%s'.", logs_dir)
        return None
    _, newest = max(candidates, key=lambda item: item[0])
    ids = parse_access_log_name(newest.name)
    if ids is None:
        LOGGER.debug("Access log '%s' does not carry numeric ids.", newest.name)
    return ids


__all__ = ["ACCESS_LOG_GLOB", "extract_ids_from_logs", "parse_access_log_name"]
