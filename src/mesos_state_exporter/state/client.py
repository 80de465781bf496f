"""HTTP client for the Mesos master API."""

from __future__ import annotations

import logging
from typing import Optional

import requests

from ..config import MasterConfig
from .models import Snapshot

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when master state cannot be retrieved or decoded."""


class MasterClient:
    """Fetches and decodes master state over HTTP.

    The client performs no retries; a failed request surfaces as
    :class:`FetchError` and the caller decides what to serve instead.
    """

    def __init__(self, config: MasterConfig, session: Optional[requests.Session] = None) -> None:
        self._config = config
        self.base_url = config.url.rstrip("/")
        self.session = session or requests.Session()

    def fetch(self, path: str | None = None) -> Snapshot:
        """Fetch *path* (the configured state path by default) as a Snapshot."""
        url = f"{self.base_url}/{(path or self._config.state_path).lstrip('/')}"
        logger.debug("fetching URL %s", url)
        try:
            resp = self.session.get(url, timeout=self._config.timeout_seconds)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            raise FetchError(f"failed to fetch {url}: {exc}") from exc
        except ValueError as exc:
            raise FetchError(f"invalid JSON from {url}: {exc}") from exc

        if not isinstance(data, dict):
            raise FetchError(f"unexpected payload from {url}: {type(data).__name__}")
        try:
            return Snapshot.from_dict(data)
        except (TypeError, ValueError, AttributeError) as exc:
            raise FetchError(f"cannot decode state from {url}: {exc}") from exc

    def close(self) -> None:
        self.session.close()
