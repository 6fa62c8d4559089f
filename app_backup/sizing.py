"""Disk space accounting and the pre-backup summary table."""
from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from typing import List

from .config import StorageConfig
from .scanner import ScanResult
from .utils import human_size

LOGGER = logging.getLogger(__name__)

_ROW = "%-8s %-40s %-14s %-14s %-14s %-11s %-11s"


class InsufficientSpaceError(Exception):
    """Raised when the planned backup does not fit on the storage target."""

    def __init__(self, required: int, available: int, mount: str) -> None:
        super().__init__(
            f"Not enough space for backup on {mount}. "
            f"Required: {human_size(required)}, Available: {human_size(available)}"
        )
        self.required = required
        self.available = available
        self.mount = mount


@dataclass(frozen=True)
class DiskUsage:
    mount: str
    total: int
    used: int
    available: int


def storage_target(storage: StorageConfig) -> str:
    """Prefer the secondary block storage mount, fall back to the root filesystem."""

    if storage.secondary_mount and os.path.ismount(storage.secondary_mount):
        return storage.secondary_mount
    return storage.fallback_path


def disk_usage(path: str) -> DiskUsage:
    usage = shutil.disk_usage(path)
    return DiskUsage(mount=path, total=usage.total, used=usage.used, available=usage.free)


def check_capacity(required: int, usage: DiskUsage) -> None:
    if required > usage.available:
        raise InsufficientSpaceError(required, usage.available, usage.mount)
    LOGGER.info(
        "Backup fits on %s (required %s, available %s).",
        usage.mount,
        human_size(required),
        human_size(usage.available),
    )


# ---------------------------------------------------------------------------
def render_disk_usage(usage: DiskUsage) -> str:
    return "\n".join(
        [
            f"Disk stats for {usage.mount}:",
            f" Total: {human_size(usage.total)}",
            f" Used : {human_size(usage.used)}",
            f" Avail: {human_size(usage.available)}",
        ]
    )


def render_summary(result: ScanResult) -> str:
    lines: List[str] = [
        _ROW % ("Type", "App (DB)", "Web size", "DB size", "Total", "server_id", "app_id"),
        _ROW % ("-" * 8, "-" * 40, "-" * 14, "-" * 14, "-" * 14, "-" * 11, "-" * 11),
    ]
    for record in result:
        lines.append(
            _ROW
            % (
                record.kind.value,
                record.label,
                human_size(record.web_bytes),
                human_size(record.db_bytes),
                human_size(record.total_bytes),
                record.server_id or "-",
                record.app_id or "-",
            )
        )
    lines.append("-" * 116)
    lines.append(f"Grand total (web + DB for selected apps): {human_size(result.grand_total)}")
    return "\n".join(lines)


__all__ = [
    "DiskUsage",
    "InsufficientSpaceError",
    "check_capacity",
    "disk_usage",
    "render_disk_usage",
    "render_summary",
    "storage_target",
]
