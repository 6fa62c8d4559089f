"""Wrappers around the external programs the backup relies on.

Every wrapper turns a failure into an empty/zero/``False`` result so that a
broken tool never interrupts the scan of the remaining applications.
"""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .credentials import CredentialSet
from .utils import mask_sensitive, split_host_port

LOGGER = logging.getLogger(__name__)

WP_SIZE_QUERY = (
    "SELECT IFNULL(SUM(data_length+index_length),0) "
    "FROM information_schema.TABLES WHERE table_schema=DATABASE();"
)
_SCHEMA_SIZE_QUERY = (
    "SELECT IFNULL(SUM(data_length+index_length),0) "
    "FROM information_schema.TABLES WHERE table_schema='{schema}';"
)
DUMP_OPTIONS = (
    "--default-character-set=utf8mb4",
    "--single-transaction",
    "--quick",
    "--skip-lock-tables",
)


class CommandError(Exception):
    """Raised when an external command cannot be run or exits non-zero."""


def run_command(
    args: Sequence[str],
    *,
    cwd: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
    secrets: Sequence[Optional[str]] = (),
    logger: logging.Logger = LOGGER,
    check: bool = True,
) -> str:
    """Run *args* and return its stripped standard output.

    With ``check=False`` a non-zero exit is only logged and the output is
    returned anyway.
    """

    masked = mask_sensitive(" ".join(args), secrets)
    logger.debug("Running: %s", masked)
    try:
        result = subprocess.run(
            list(args),
            cwd=str(cwd) if cwd else None,
            env=env,
            capture_output=True,
            text=True,
        )
    except OSError as exc:
        raise CommandError(f"Cannot run '{masked}': {exc}") from exc
    if result.stderr:
        logger.debug("STDERR: %s", mask_sensitive(result.stderr.strip(), secrets))
    if result.returncode != 0 and not check:
        logger.debug("'%s' exited with code %s.", masked, result.returncode)
    elif result.returncode != 0:
        raise CommandError(
            f"Command '{masked}' exited with code {result.returncode}: "
            f"{mask_sensitive(result.stderr.strip(), secrets)}"
        )
    return result.stdout.strip()


def _as_int(output: str) -> int:
    lines = output.split()
    try:
        return int(lines[-1]) if lines else 0
    except ValueError:
        return 0


def _mysql_env(password: str) -> Dict[str, str]:
    env = os.environ.copy()
    env["MYSQL_PWD"] = password
    return env


def _connection_args(creds: CredentialSet) -> List[str]:
    host, port = split_host_port(creds.host)
    args = ["-h", host]
    if port:
        args += ["-P", port]
    args += ["-u", creds.user]
    return args


# ---------------------------------------------------------------------------
def _leading_int(output: str) -> Optional[int]:
    field = output.split("\t", 1)[0].strip()
    return int(field) if field.isdigit() else None


def directory_size(path: Path, du: str = "du") -> int:
    """Size of *path* in bytes, estimated from blocks when ``du -b`` is missing.

    ``du`` exits 1 when some subtree is unreadable but still prints the total
    of what it could read, so its output is used whatever the exit code.
    """

    for flag, scale in (("-sb", 1), ("-sk", 1024)):
        try:
            output = run_command([du, flag, str(path)], check=False)
        except CommandError as exc:
            LOGGER.debug("'%s %s' failed for '%s': %s", du, flag, path, exc)
            continue
        size = _leading_int(output)
        if size is not None:
            return size * scale
        LOGGER.debug("'%s %s' printed no size for '%s'.", du, flag, path)
    LOGGER.warning("Cannot size '%s', counting it as 0 bytes.", path)
    return 0


# ---------------------------------------------------------------------------
@dataclass
class WordPressCLI:
    """WP-CLI run from inside an application's web root."""

    executable: str = "wp"
    logger: logging.Logger = LOGGER

    @property
    def available(self) -> bool:
        return shutil.which(self.executable) is not None

    def _run(self, web_root: Path, *args: str) -> str:
        return run_command([self.executable, *args], cwd=web_root, logger=self.logger)

    def is_installed(self, web_root: Path) -> bool:
        if not self.available:
            return False
        try:
            self._run(web_root, "core", "is-installed", "--quiet")
        except CommandError:
            return False
        return True

    def config_get(self, web_root: Path, key: str) -> str:
        try:
            return self._run(web_root, "config", "get", key)
        except CommandError as exc:
            self.logger.debug("wp config get %s failed in '%s': %s", key, web_root, exc)
            return ""

    def query_scalar(self, web_root: Path, query: str) -> int:
        try:
            return _as_int(self._run(web_root, "db", "query", query, "--skip-column-names"))
        except CommandError as exc:
            self.logger.debug("wp db query failed in '%s': %s", web_root, exc)
            return 0

    def export_database(self, web_root: Path, filename: str) -> bool:
        try:
            self._run(web_root, "db", "export", filename)
        except CommandError as exc:
            self.logger.error("WP database export failed in '%s': %s", web_root, exc)
            return False
        return True


# ---------------------------------------------------------------------------
@dataclass
class MySQLClient:
    """``mysql``/``mysqldump`` driven with inferred credentials."""

    mysql: str = "mysql"
    mysqldump: str = "mysqldump"
    logger: logging.Logger = LOGGER

    @property
    def can_query(self) -> bool:
        return shutil.which(self.mysql) is not None

    @property
    def can_dump(self) -> bool:
        return shutil.which(self.mysqldump) is not None

    def schema_size(self, creds: CredentialSet) -> int:
        query = _SCHEMA_SIZE_QUERY.format(schema=creds.name.replace("'", "''"))
        args = [self.mysql, *_connection_args(creds), "-N", "-B", "-e", query]
        try:
            output = run_command(
                args, env=_mysql_env(creds.password), secrets=[creds.password], logger=self.logger
            )
        except CommandError as exc:
            self.logger.debug("Size query for '%s' failed: %s", creds.name, exc)
            return 0
        return _as_int(output)

    def dump(self, creds: CredentialSet, target: Path) -> bool:
        """Dump the schema into *target*; an empty dump counts as a failure."""

        target = Path(target)
        args = [self.mysqldump, *DUMP_OPTIONS, *_connection_args(creds), creds.name]
        self.logger.debug("Running: %s > %s", " ".join(args), target)
        try:
            with target.open("wb") as fh:
                result = subprocess.run(
                    args,
                    stdout=fh,
                    stderr=subprocess.PIPE,
                    env=_mysql_env(creds.password),
                )
        except OSError as exc:
            self.logger.error("Cannot run mysqldump for '%s': %s", creds.name, exc)
            result = None
        if result is not None and result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            self.logger.warning("mysqldump exited with code %s: %s", result.returncode, stderr)
        if target.exists() and target.stat().st_size > 0:
            return True
        try:
            target.unlink()
        except FileNotFoundError:
            pass
        return False


__all__ = [
    "CommandError",
    "DUMP_OPTIONS",
    "MySQLClient",
    "WP_SIZE_QUERY",
    "WordPressCLI",
    "directory_size",
    "run_command",
]
