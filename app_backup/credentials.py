"""Database credential discovery for applications without WP-CLI support.

The lookup is a plain line-oriented regex scan. Commented-out ``define()`` calls
match exactly like live ones, which is why callers gate the result through
:func:`credentials_accepted` before touching the database.
"""
from __future__ import annotations

import enum
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, Sequence

LOGGER = logging.getLogger(__name__)

PRIMARY_CONFIG = "wp-config.php"
DOTENV_FILE = ".env"
DEFAULT_HOST = "localhost"

_FIELDS = ("name", "user", "password", "host")
_DEFINE_KEYS = {"name": "DB_NAME", "user": "DB_USER", "password": "DB_PASSWORD", "host": "DB_HOST"}
_DOTENV_KEYS = {"name": "DB_DATABASE", "user": "DB_USERNAME", "password": "DB_PASSWORD", "host": "DB_HOST"}


class Provenance(str, enum.Enum):
    PRIMARY = PRIMARY_CONFIG
    SCAN = "php-scan"
    DOTENV = DOTENV_FILE
    NONE = ""


@dataclass(frozen=True)
class CredentialSet:
    name: str = ""
    user: str = ""
    password: str = field(default="", repr=False)
    host: str = DEFAULT_HOST
    provenance: Provenance = Provenance.NONE

    @property
    def complete(self) -> bool:
        return bool(self.name and self.user and self.password)


def _define_value(key: str) -> "re.Pattern[str]":
    return re.compile(r"define\(['\"]%s['\"],\s*['\"]([^'\"]+)['\"]\)" % key)


def _define_hit(key: str) -> "re.Pattern[str]":
    return re.compile(r"define\(['\"]%s['\"]" % key)


def _last_quoted_after(key: str) -> "re.Pattern[str]":
    return re.compile(r".*['\"]%s['\"].*['\"]([^'\"]+)['\"]" % key)


def _read_lines(path: Path) -> list:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError as exc:
        LOGGER.debug("Cannot read '%s': %s", path, exc)
        return []


def _missing(found: Dict[str, str]) -> bool:
    return not (found["name"] and found["user"] and found["password"])


def _contributed(found: Dict[str, str]) -> bool:
    return bool(found["name"] or found["user"] or found["password"])


# ---------------------------------------------------------------------------
def _from_primary(path: Path) -> Dict[str, str]:
    result = dict.fromkeys(_FIELDS, "")
    lines = _read_lines(path)
    for field_name, key in _DEFINE_KEYS.items():
        pattern = _define_value(key)
        for line in lines:
            match = pattern.search(line)
            if match:
                result[field_name] = match.group(1)
                break
    return result


def iter_source_files(root: Path, extensions: Sequence[str]) -> Iterator[Path]:
    """Yield files below *root* with one of *extensions*, in sorted order."""

    suffixes = {extension.lower() for extension in extensions}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            if os.path.splitext(filename)[1].lower() in suffixes:
                yield Path(dirpath) / filename


def first_define_value(files: Iterable[Path], key: str) -> str:
    """Value of the first ``define('KEY'`` line found across *files*.

    The first hit decides even when no value can be pulled out of it.
    """

    hit = _define_hit(key)
    value = _last_quoted_after(key)
    for path in files:
        for line in _read_lines(path):
            if hit.search(line):
                match = value.match(line)
                return match.group(1) if match else ""
    return ""


def _from_scan(root: Path, extensions: Sequence[str], wanted: Iterable[str]) -> Dict[str, str]:
    files = list(iter_source_files(root, extensions))
    result = dict.fromkeys(_FIELDS, "")
    for field_name in wanted:
        result[field_name] = first_define_value(files, _DEFINE_KEYS[field_name])
    return result


def _from_dotenv(path: Path) -> Dict[str, str]:
    result = dict.fromkeys(_FIELDS, "")
    lines = _read_lines(path)
    for field_name, key in _DOTENV_KEYS.items():
        prefix = key + "="
        for line in lines:
            if line.startswith(prefix):
                result[field_name] = line[len(prefix):]
                break
    return result


def _merge(found: Dict[str, str], extra: Dict[str, str]) -> None:
    for field_name in _FIELDS:
        if not found[field_name]:
            found[field_name] = extra[field_name]


# ---------------------------------------------------------------------------
def find_db_creds(web_root: Path, extensions: Sequence[str] = (".php",)) -> CredentialSet:
    """Infer database credentials for the application served from *web_root*.

    Sources are tried in order, each one only filling fields still empty:

    1. ``wp-config.php`` ``define()`` calls, commented or not;
    2. the first ``define()`` of each key in any source file below the root;
    3. ``DB_*`` entries of a ``.env`` file.

    The provenance is the first source that produced a name, user or password.
    """

    web_root = Path(web_root)
    found = dict.fromkeys(_FIELDS, "")
    provenance = Provenance.NONE

    primary = web_root / PRIMARY_CONFIG
    if primary.is_file():
        _merge(found, _from_primary(primary))
        if _contributed(found):
            provenance = Provenance.PRIMARY

    if _missing(found):
        wanted = [field_name for field_name in _FIELDS if not found[field_name]]
        _merge(found, _from_scan(web_root, extensions, wanted))
        if provenance is Provenance.NONE and _contributed(found):
            provenance = Provenance.SCAN

    if _missing(found):
        dotenv = web_root / DOTENV_FILE
        if dotenv.is_file():
            _merge(found, _from_dotenv(dotenv))
            if provenance is Provenance.NONE and _contributed(found):
                provenance = Provenance.DOTENV

    creds = CredentialSet(
        name=found["name"],
        user=found["user"],
        password=found["password"],
        host=found["host"] or DEFAULT_HOST,
        provenance=provenance,
    )
    LOGGER.debug(
        "Credentials for '%s': db=%s host=%s src=%s",
        web_root,
        creds.name or "-",
        creds.host,
        creds.provenance.value or "-",
    )
    return creds


def credentials_accepted(creds: CredentialSet, app_dir_name: str) -> bool:
    """Decide whether discovered credentials may be used against the database.

    Source-file credentials are trusted only when the database name equals the
    application directory name; ``.env`` credentials are always trusted.
    """

    if creds.name and creds.name == app_dir_name:
        return True
    return creds.provenance is Provenance.DOTENV


__all__ = [
    "CredentialSet",
    "Provenance",
    "credentials_accepted",
    "find_db_creds",
    "first_define_value",
    "iter_source_files",
]
