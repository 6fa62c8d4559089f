"""Configuration models and helpers for the backup tool."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import yaml

CONFIG_FILENAME = "config.yaml"


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""


@dataclass
class StorageConfig:
    secondary_mount: str = "/mnt/BLOCKSTORAGE"
    fallback_path: str = "/"

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "StorageConfig":
        data = _mapping(data, "storage")
        return cls(
            secondary_mount=str(data.get("secondary_mount", cls.secondary_mount)),
            fallback_path=str(data.get("fallback_path", cls.fallback_path)),
        )

    def to_dict(self) -> Dict:
        return {"secondary_mount": self.secondary_mount, "fallback_path": self.fallback_path}


@dataclass
class ToolsConfig:
    wp: str = "wp"
    mysql: str = "mysql"
    mysqldump: str = "mysqldump"
    du: str = "du"

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "ToolsConfig":
        data = _mapping(data, "tools")
        return cls(
            wp=str(data.get("wp", cls.wp)),
            mysql=str(data.get("mysql", cls.mysql)),
            mysqldump=str(data.get("mysqldump", cls.mysqldump)),
            du=str(data.get("du", cls.du)),
        )

    def to_dict(self) -> Dict:
        return {"wp": self.wp, "mysql": self.mysql, "mysqldump": self.mysqldump, "du": self.du}


@dataclass
class BackupConfig:
    dump_filename: str = "db_backup.sql"
    archive_filename: str = "backup.zip"

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "BackupConfig":
        data = _mapping(data, "backup")
        return cls(
            dump_filename=str(data.get("dump_filename", cls.dump_filename)),
            archive_filename=str(data.get("archive_filename", cls.archive_filename)),
        )

    def to_dict(self) -> Dict:
        return {"dump_filename": self.dump_filename, "archive_filename": self.archive_filename}


@dataclass
class CloudwaysConfig:
    api_base: str = "https://api.cloudways.com/api/v1"
    ownership: str = "master_user"

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "CloudwaysConfig":
        data = _mapping(data, "cloudways")
        return cls(
            api_base=str(data.get("api_base", cls.api_base)).rstrip("/"),
            ownership=str(data.get("ownership", cls.ownership)),
        )

    def to_dict(self) -> Dict:
        return {"api_base": self.api_base, "ownership": self.ownership}


@dataclass
class AppConfig:
    apps_dir: str = "/home/master/applications"
    web_root: str = "public_html"
    vhost_config: str = "conf/server.nginx"
    logs_dir: str = "logs"
    scan_extensions: List[str] = field(default_factory=lambda: [".php"])
    storage: StorageConfig = field(default_factory=StorageConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    cloudways: CloudwaysConfig = field(default_factory=CloudwaysConfig)
    extra: Dict[str, object] = field(default_factory=dict)

    def validate(self) -> None:
        if not self.apps_dir:
            raise ConfigError("'apps_dir' must not be empty.")
        if not self.web_root:
            raise ConfigError("'web_root' must not be empty.")
        for extension in self.scan_extensions:
            if not extension.startswith("."):
                raise ConfigError(f"Scan extension '{extension}' must start with a dot.")
        if self.backup.archive_filename == self.backup.dump_filename:
            raise ConfigError("Archive and dump file names must differ.")

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "AppConfig":
        data = _mapping(data, "configuration")
        known_keys = {
            "apps_dir",
            "web_root",
            "vhost_config",
            "logs_dir",
            "scan_extensions",
            "storage",
            "tools",
            "backup",
            "cloudways",
        }
        extensions = data.get("scan_extensions", [".php"])
        if isinstance(extensions, str):
            extensions = [extensions]
        if not isinstance(extensions, list):
            raise ConfigError("'scan_extensions' must be a list of file extensions.")
        extra = {key: value for key, value in data.items() if key not in known_keys}
        config = cls(
            apps_dir=str(data.get("apps_dir", cls.apps_dir)),
            web_root=str(data.get("web_root", cls.web_root)),
            vhost_config=str(data.get("vhost_config", cls.vhost_config)),
            logs_dir=str(data.get("logs_dir", cls.logs_dir)),
            scan_extensions=[str(item).lower() for item in extensions],
            storage=StorageConfig.from_dict(data.get("storage")),
            tools=ToolsConfig.from_dict(data.get("tools")),
            backup=BackupConfig.from_dict(data.get("backup")),
            cloudways=CloudwaysConfig.from_dict(data.get("cloudways")),
            extra=extra,
        )
        config.validate()
        return config

    def to_dict(self) -> Dict:
        result: Dict[str, object] = {
            "apps_dir": self.apps_dir,
            "web_root": self.web_root,
            "vhost_config": self.vhost_config,
            "logs_dir": self.logs_dir,
            "scan_extensions": list(self.scan_extensions),
            "storage": self.storage.to_dict(),
            "tools": self.tools.to_dict(),
            "backup": self.backup.to_dict(),
            "cloudways": self.cloudways.to_dict(),
        }
        result.update(self.extra)
        return result


# ---------------------------------------------------------------------------
def _mapping(data, section: str) -> Dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{section}' must be a mapping.")
    return data


# ---------------------------------------------------------------------------
def load_config(path: Path = Path(CONFIG_FILENAME)) -> AppConfig:
    path = Path(path)
    if not path.exists():
        return AppConfig()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse '{path}': {exc}") from exc
    if not data:
        return AppConfig()
    return AppConfig.from_dict(data)


def save_config(config: AppConfig, path: Path = Path(CONFIG_FILENAME)) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(
            config.to_dict(),
            fh,
            allow_unicode=True,
            sort_keys=False,
            default_flow_style=False,
        )


__all__ = [
    "AppConfig",
    "BackupConfig",
    "CloudwaysConfig",
    "ConfigError",
    "StorageConfig",
    "ToolsConfig",
    "load_config",
    "save_config",
]
