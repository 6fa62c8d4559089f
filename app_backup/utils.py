"""Helper utilities for the application backup tool."""
from __future__ import annotations

from typing import Iterable, Optional, Tuple

_SIZE_UNITS = "KMGTPE"


def human_size(num_bytes: int) -> str:
    """Return *num_bytes* in IEC units, e.g. ``1.5KB`` or ``812B``."""

    value = float(num_bytes)
    if abs(value) < 1024:
        return f"{int(num_bytes)}B"
    unit = ""
    for unit in _SIZE_UNITS:
        value /= 1024
        if abs(value) < 1024:
            break
    return f"{value:.1f}{unit}B"


def strip_www(domain: str) -> str:
    if domain.startswith("www."):
        return domain[len("www."):]
    return domain


def split_host_port(value: str) -> Tuple[str, Optional[str]]:
    """Split ``host:port`` into its parts.

    ``[::1]:3306`` keeps the brackets on the host part. A value without a colon
    returns ``None`` for the port.
    """

    if ":" in value:
        host, _, port = value.rpartition(":")
        return host, port
    return value, None


def mask_sensitive(value: str, secrets: Iterable[Optional[str]]) -> str:
    """Replace occurrences of secret values in *value* with '***'."""

    masked = value
    for secret in secrets:
        if secret:
            masked = masked.replace(secret, "***")
    return masked


__all__ = [
    "human_size",
    "strip_www",
    "split_host_port",
    "mask_sensitive",
]
