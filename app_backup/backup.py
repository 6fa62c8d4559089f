"""Per-application backup: permission reset, database export and zip archive."""
from __future__ import annotations

import logging
import os
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .cloud import RESET_OK_STATUSES, CloudwaysClient
from .config import AppConfig
from .credentials import credentials_accepted, find_db_creds
from .scanner import AppKind, ApplicationRecord, ScanResult
from .tools import MySQLClient, WordPressCLI

LOGGER = logging.getLogger(__name__)


class BackupError(Exception):
    """Raised when a backup operation fails."""


@dataclass(frozen=True)
class BackupOutcome:
    record: ApplicationRecord
    database_exported: bool
    archive: Optional[Path] = None
    url: Optional[str] = None


@dataclass
class BackupRunner:
    config: AppConfig
    wp: WordPressCLI
    mysql: MySQLClient
    echo: Callable[[str], None] = print
    logger: logging.Logger = LOGGER

    def reset_permissions(self, result: ScanResult, client: CloudwaysClient) -> None:
        self.echo(" Resetting file permissions for matched apps...")
        for record in result:
            if not record.has_ids:
                self.echo(f" ⚠️ Skipping {record.app.name}: missing server/app id")
                continue
            status = client.reset_permissions(record.server_id, record.app_id)
            if status in RESET_OK_STATUSES:
                self.echo(f" ✅ {record.server_id}/{record.app_id} -> reset requested (HTTP {status})")
            else:
                self.echo(f" ❌ {record.server_id}/{record.app_id} -> reset failed (HTTP {status})")

    def run_all(self, result: ScanResult) -> List[BackupOutcome]:
        """Back up every record in turn; a failing app never stops the others."""

        outcomes: List[BackupOutcome] = []
        for record in result:
            self.echo("----------------------------")
            self.echo(f"Backing up: {record.app.web_root}")
            try:
                outcomes.append(self.backup_record(record))
            except BackupError as exc:
                self.logger.error("Backup of '%s' failed: %s", record.app.name, exc)
                self.echo(f" ❌ {exc}")
        return outcomes

    # ------------------------------------------------------------------
    def backup_record(self, record: ApplicationRecord) -> BackupOutcome:
        web_root = record.app.web_root
        if not web_root.is_dir():
            raise BackupError(f"Web root '{web_root}' not found.")

        if record.kind is AppKind.WORDPRESS:
            exported = self._export_wordpress(record)
        else:
            exported = self._export_generic(record)

        archive_path = web_root / self.config.backup.archive_filename
        try:
            self._zip_directory(web_root, archive_path)
        except (OSError, zipfile.BadZipFile) as exc:
            raise BackupError(f"Failed to zip {web_root}: {exc}") from exc
        self.echo(f" ✅ {archive_path.name} created")

        url = None
        if record.domain:
            url = f"{record.domain}/{archive_path.name}"
            self.echo(f" {url}")
        else:
            self.echo(f" ⚠️ Could not parse server_name in {record.app.vhost_config}")
        return BackupOutcome(record=record, database_exported=exported, archive=archive_path, url=url)

    # ------------------------------------------------------------------
    def _export_wordpress(self, record: ApplicationRecord) -> bool:
        dump_name = self.config.backup.dump_filename
        if self.wp.export_database(record.app.web_root, dump_name):
            self.echo(f" ✅ WP database exported: {dump_name}")
            return True
        self.echo(f" ❌ WP database export failed in {record.app.web_root}")
        return False

    def _export_generic(self, record: ApplicationRecord) -> bool:
        web_root = record.app.web_root
        creds = find_db_creds(web_root, self.config.scan_extensions)
        if not (credentials_accepted(creds, record.app.name) and self.mysql.can_dump):
            self.echo(" ⚠️ Skipping DB export (no acceptable creds or mysqldump not found)")
            return False

        source = creds.provenance.value or "php"
        self.echo(f" • Using {source} creds (DB={creds.name}, HOST={creds.host})")
        dump_name = self.config.backup.dump_filename
        if self.mysql.dump(creds, web_root / dump_name):
            self.echo(f" ✅ Generic database exported: {dump_name}")
            return True
        self.echo(" ❌ mysqldump produced no data (check creds/permissions)")
        return False

    # ------------------------------------------------------------------
    def _zip_directory(self, directory: Path, archive_path: Path) -> None:
        """Zip *directory* into *archive_path*, following symlinked directories."""

        directory = Path(directory)
        self.logger.info("Archiving '%s' into '%s'.", directory, archive_path)
        visited = set()
        with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for root, dirs, files in os.walk(directory, followlinks=True):
                real_root = os.path.realpath(root)
                if real_root in visited:
                    self.logger.warning("'%s' points to an already archived directory, skipping.", root)
                    dirs[:] = []
                    continue
                visited.add(real_root)
                dirs.sort()
                root_path = Path(root)
                if not dirs and not files and root_path != directory:
                    # zipfile does not create directory entries by default for empty dirs
                    archive.writestr(zipfile.ZipInfo(f"{root_path.relative_to(directory)}/"), "")
                    continue
                for name in sorted(files):
                    path = root_path / name
                    if path == archive_path:
                        continue
                    if not path.exists():
                        self.logger.warning("Skipping dangling link '%s'.", path)
                        continue
                    archive.write(path, arcname=str(path.relative_to(directory)))


__all__ = ["BackupError", "BackupOutcome", "BackupRunner"]
