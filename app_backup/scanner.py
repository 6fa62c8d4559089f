"""Discovery of hosted applications and matching against target domains."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import AbstractSet, Iterator, List, Optional, Tuple

from .config import AppConfig
from .credentials import Provenance, credentials_accepted, find_db_creds
from .identifiers import extract_ids_from_logs
from .tools import WP_SIZE_QUERY, MySQLClient, WordPressCLI, directory_size
from .utils import strip_www
from .vhost import last_domain_first_servername_line

LOGGER = logging.getLogger(__name__)


class AppKind(str, enum.Enum):
    WORDPRESS = "WP"
    GENERIC = "GEN"


@dataclass(frozen=True)
class Application:
    path: Path
    web_root: Path
    vhost_config: Path
    logs_dir: Path

    @property
    def name(self) -> str:
        return self.path.name

    @classmethod
    def from_directory(cls, path: Path, config: AppConfig) -> "Application":
        path = Path(path)
        return cls(
            path=path,
            web_root=path / config.web_root,
            vhost_config=path / config.vhost_config,
            logs_dir=path / config.logs_dir,
        )


@dataclass(frozen=True)
class ApplicationRecord:
    app: Application
    domain: str
    kind: AppKind
    db_name: str
    web_bytes: int
    db_bytes: int
    server_id: Optional[str] = None
    app_id: Optional[str] = None
    provenance: Provenance = Provenance.NONE

    @property
    def total_bytes(self) -> int:
        return self.web_bytes + self.db_bytes

    @property
    def has_ids(self) -> bool:
        return bool(self.server_id and self.app_id)

    @property
    def label(self) -> str:
        return f"{self.app.name} ({self.db_name or 'unknown_db'})"


@dataclass
class ScanResult:
    """Records collected by one scan, in discovery order."""

    records: List[ApplicationRecord] = field(default_factory=list)

    def add(self, record: ApplicationRecord) -> None:
        self.records.append(record)

    def __iter__(self) -> Iterator[ApplicationRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def grand_total(self) -> int:
        return sum(record.total_bytes for record in self.records)


@dataclass
class ApplicationScanner:
    """Walk the applications root and build one record per matching app.

    With ``targets`` set to ``None`` every application that has a web root is
    recorded, otherwise only those whose vhost domain is in ``targets``.
    """

    config: AppConfig
    wp: WordPressCLI
    mysql: MySQLClient
    targets: Optional[AbstractSet[str]] = None
    wordpress_only: bool = False
    logger: logging.Logger = LOGGER

    def iter_applications(self) -> Iterator[Application]:
        root = Path(self.config.apps_dir)
        if not root.is_dir():
            self.logger.warning("Applications directory '%s' not found.", root)
            return
        for path in sorted(root.iterdir()):
            if path.is_dir():
                yield Application.from_directory(path, self.config)

    def scan(self) -> ScanResult:
        result = ScanResult()
        for app in self.iter_applications():
            record = self.scan_application(app)
            if record is not None:
                result.add(record)
        return result

    # ------------------------------------------------------------------
    def resolve_domain(self, app: Application) -> str:
        domain = last_domain_first_servername_line(app.vhost_config)
        return domain or ""

    def matches(self, domain: str) -> bool:
        if self.targets is None:
            return True
        return bool(domain) and strip_www(domain.lower()) in self.targets

    # ------------------------------------------------------------------
    def scan_application(self, app: Application) -> Optional[ApplicationRecord]:
        if not app.web_root.is_dir():
            self.logger.warning("No %s found in '%s'.", self.config.web_root, app.path)
            return None
        if self.targets is not None and not app.vhost_config.is_file():
            self.logger.debug("No vhost config in '%s', skipping.", app.path)
            return None

        domain = self.resolve_domain(app)
        if not self.matches(domain):
            self.logger.debug("'%s' (%s) is not a target, skipping.", app.name, domain or "no domain")
            return None

        if self.wp.is_installed(app.web_root):
            record = self._scan_wordpress(app, domain)
        elif self.wordpress_only:
            self.logger.info("'%s' is not a WordPress site, skipping.", app.name)
            return None
        else:
            record = self._scan_generic(app, domain)

        self.logger.info(
            "%s: %s -> %s (%s, DB=%s)",
            record.kind.value,
            app.name,
            domain or "-",
            "ids %s/%s" % (record.server_id, record.app_id) if record.has_ids else "ids not found",
            record.db_name or "unknown",
        )
        return record

    def _attach_ids(self, app: Application) -> Tuple[Optional[str], Optional[str]]:
        ids = extract_ids_from_logs(app.logs_dir)
        if ids is None:
            return None, None
        return ids

    def _scan_wordpress(self, app: Application, domain: str) -> ApplicationRecord:
        db_name = self.wp.config_get(app.web_root, "DB_NAME")
        web_bytes = directory_size(app.web_root, self.config.tools.du)
        db_bytes = self.wp.query_scalar(app.web_root, WP_SIZE_QUERY)
        server_id, app_id = self._attach_ids(app)
        return ApplicationRecord(
            app=app,
            domain=domain,
            kind=AppKind.WORDPRESS,
            db_name=db_name,
            web_bytes=web_bytes,
            db_bytes=db_bytes,
            server_id=server_id,
            app_id=app_id,
        )

    def _scan_generic(self, app: Application, domain: str) -> ApplicationRecord:
        creds = find_db_creds(app.web_root, self.config.scan_extensions)
        web_bytes = directory_size(app.web_root, self.config.tools.du)
        db_bytes = 0
        if credentials_accepted(creds, app.name):
            if self.mysql.can_query:
                db_bytes = self.mysql.schema_size(creds)
            else:
                self.logger.debug("mysql client not available, DB size of '%s' unknown.", app.name)
        else:
            self.logger.debug(
                "Credentials for '%s' not trusted (DB=%s, src=%s).",
                app.name,
                creds.name or "-",
                creds.provenance.value or "-",
            )
        server_id, app_id = self._attach_ids(app)
        return ApplicationRecord(
            app=app,
            domain=domain,
            kind=AppKind.GENERIC,
            db_name=creds.name,
            web_bytes=web_bytes,
            db_bytes=db_bytes,
            server_id=server_id,
            app_id=app_id,
            provenance=creds.provenance,
        )


__all__ = [
    "AppKind",
    "Application",
    "ApplicationRecord",
    "ApplicationScanner",
    "ScanResult",
]
