"""Reachability check for workspace URLs (the pod's HTTP proxy endpoint)."""
import logging
from typing import Optional
from urllib.parse import urlparse

import requests

logger = logging.getLogger(__name__)


class ProbeFailed(Exception):
    """The workspace could not be reached at all."""

    def __init__(self, message: str, timed_out: bool = False):
        super().__init__(message)
        self.timed_out = timed_out


def is_probe_target(url: Optional[str]) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_reachable_status(status_code: int) -> bool:
    return 200 <= status_code < 400


class WorkspaceProbe:
    def __init__(self, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, url: str) -> requests.Response:
        try:
            return self.session.request(
                method,
                url,
                allow_redirects=True,
                timeout=self.timeout,
                headers={"Cache-Control": "no-store"},
            )
        except requests.Timeout as e:
            raise ProbeFailed(f"{method} {url} timed out", timed_out=True) from e
        except requests.RequestException as e:
            raise ProbeFailed(f"{method} {url} failed: {str(e)}") from e

    def check(self, url: str) -> int:
        """Return the HTTP status the workspace answers with. HEAD first, GET when HEAD is rejected."""
        response = self._request("HEAD", url)
        if response.status_code == 405:
            response = self._request("GET", url)
        response.close()
        return response.status_code

    def is_online(self, url: Optional[str]) -> bool:
        if not is_probe_target(url):
            return False
        try:
            return is_reachable_status(self.check(url.rstrip("/")))
        except ProbeFailed as e:
            logger.debug(f"Workspace probe failed: {e}")
            return False

    def close(self) -> None:
        self.session.close()
