"""Cloudways REST API client used for permission resets."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from .config import CloudwaysConfig

LOGGER = logging.getLogger(__name__)

RESET_OK_STATUSES = {200, 202}


class CloudwaysAPIError(Exception):
    """Raised when the Cloudways API does not return an access token."""


@dataclass
class CloudwaysClient:
    config: CloudwaysConfig
    access_token: Optional[str] = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def authenticate(self, email: str, api_key: str) -> str:
        """Exchange the account email and API key for an OAuth access token."""

        try:
            response = requests.post(
                f"{self.config.api_base}/oauth/access_token",
                data={"email": email, "api_key": api_key},
            )
        except requests.RequestException as exc:
            raise CloudwaysAPIError(f"Failed to obtain access token: {exc}") from exc
        try:
            payload = response.json()
        except ValueError:
            payload = None
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise CloudwaysAPIError(
                f"Failed to obtain access token. Response was: HTTP {response.status_code} {response.text}"
            )
        self.access_token = token
        LOGGER.info("Cloudways access token acquired.")
        return token

    def reset_permissions(self, server_id: str, app_id: str) -> int:
        """Request a permission reset and return the HTTP status code (0 if unreachable)."""

        if not self.access_token:
            raise CloudwaysAPIError("Not authenticated: call authenticate() first.")
        try:
            response = requests.post(
                f"{self.config.api_base}/app/manage/reset_permissions",
                params={"ownership": self.config.ownership},
                data={"server_id": server_id, "app_id": app_id},
                headers=self._headers(),
            )
        except requests.RequestException as exc:
            LOGGER.error("Permission reset for %s/%s failed: %s", server_id, app_id, exc)
            return 0
        if response.status_code not in RESET_OK_STATUSES:
            LOGGER.warning(
                "Permission reset for %s/%s returned HTTP %s: %s",
                server_id,
                app_id,
                response.status_code,
                response.text,
            )
        return response.status_code


__all__ = ["CloudwaysAPIError", "CloudwaysClient", "RESET_OK_STATUSES"]
