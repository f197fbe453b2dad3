"""HTTP smoke checks against a running instance."""

import logging
import time
from contextlib import nullcontext
from dataclasses import dataclass

import requests

logger = logging.getLogger(__name__)

DEFAULT_PATHS = ("/", "/readyz", "/healthz")


@dataclass
class CheckResult:
    path: str
    status_code: int = None
    error: str = None

    @property
    def ok(self):
        return self.status_code is not None and 200 <= self.status_code < 400


def _session_scope(session):
    # Sessions passed in belong to the caller and stay open
    return nullcontext(session) if session is not None else requests.Session()


def check_paths(base_url, paths=DEFAULT_PATHS, timeout=5, session=None):
    """GETs each path once and returns a CheckResult per path."""
    base_url = base_url.rstrip("/")
    results = []
    with _session_scope(session) as http:
        for path in paths:
            url = f"{base_url}/{path.lstrip('/')}"
            try:
                response = http.get(url, timeout=timeout)
                results.append(CheckResult(path=path, status_code=response.status_code))
            except requests.RequestException as e:
                logger.warning(f"GET {url} failed: {e}")
                results.append(CheckResult(path=path, error=str(e)))
    return results


def wait_until_serving(base_url, paths=DEFAULT_PATHS, deadline=60, interval=1, session=None,
                       clock=time.monotonic, sleep=time.sleep):
    """Repeats check_paths until every path succeeds or the deadline passes.

    Returns the last round of results either way.
    """
    stop_at = clock() + deadline
    with _session_scope(session) as http:
        while True:
            results = check_paths(base_url, paths, session=http)
            if all(result.ok for result in results):
                return results
            if clock() >= stop_at:
                return results
            sleep(interval)
