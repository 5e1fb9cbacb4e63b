"""
Pooled ``requests`` session shared by the HTTP-based adapters.

Every call has a bounded timeout and a small number of retries. Failures come
out as ``FetchError`` so adapters never leak ``requests`` exceptions:

  - timeout / connection error / 5xx / 429  → UpstreamUnavailable
  - 401 / 403                              → Unauthorized
  - any other 4xx                          → InternalError

Sources that enforce a minimum interval between requests pass
``min_interval_sec``; calls through the same client are then serialized.
"""

import logging
import threading
import time
from typing import Any, Optional

import requests

from tax_exporter.core.errors import ErrorKind, FetchError, error_kind_for_status

_DEFAULT_TIMEOUT = 10
_DEFAULT_RETRY_ATTEMPTS = 2
_RETRY_DELAY = 1


class HttpClient:
    """
    Parameters
    ----------
    source : str
        Provider name, attached to every raised ``FetchError``.
    timeout : float
        Per-request timeout in seconds.
    retry_attempts : int
        Total attempts for retryable failures (timeouts, 5xx). 429 is never
        retried here; it is surfaced so the dispatcher can downgrade.
    min_interval_sec : float
        Minimum spacing between consecutive requests.
    pool_size : int
        Connection pool size, should match the caller's fan-out width.
    """

    def __init__(
        self,
        source: str,
        timeout: float = _DEFAULT_TIMEOUT,
        retry_attempts: int = _DEFAULT_RETRY_ATTEMPTS,
        min_interval_sec: float = 0.0,
        pool_size: int = 8,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.source = source
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self.min_interval_sec = min_interval_sec
        self.logger = logger or logging.getLogger(__name__)
        self._session = session or self._build_session(pool_size)
        self._throttle_lock = threading.Lock()
        self._last_request_at = 0.0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_json(self, url: str, **kwargs) -> Any:
        return self._decode(self._request_with_retry("GET", url, **kwargs))

    def post_json(self, url: str, payload: Any, **kwargs) -> Any:
        return self._decode(self._request_with_retry("POST", url, json=payload, **kwargs))

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # HTTP session
    # ------------------------------------------------------------------

    @staticmethod
    def _build_session(pool_size: int) -> requests.Session:
        session = requests.Session()
        adapter = requests.adapters.HTTPAdapter(
            pool_connections=pool_size,
            pool_maxsize=pool_size * 2,
        )
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def _decode(self, resp: requests.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            # Proxies and gateways answer with HTML error pages under load
            raise FetchError(
                ErrorKind.UPSTREAM_UNAVAILABLE,
                f"{self.source} returned a non-JSON body",
                source=self.source,
                status_code=resp.status_code,
                original_error=exc,
            ) from exc

    def _throttle(self) -> None:
        if self.min_interval_sec <= 0:
            return
        with self._throttle_lock:
            wait = self._last_request_at + self.min_interval_sec - time.monotonic()
            if wait > 0:
                time.sleep(wait)
            self._last_request_at = time.monotonic()

    def _request_with_retry(self, method: str, url: str, **kwargs) -> requests.Response:
        for attempt in range(1, self.retry_attempts + 1):
            self._throttle()
            try:
                resp = self._session.request(method, url, timeout=self.timeout, **kwargs)
            except (requests.Timeout, requests.ConnectionError) as exc:
                if attempt == self.retry_attempts:
                    raise FetchError(
                        ErrorKind.UPSTREAM_UNAVAILABLE,
                        f"{self.source} unreachable",
                        source=self.source,
                        original_error=exc,
                    ) from exc
                self.logger.debug(f"[{self.source}] attempt {attempt} failed: {exc}. Retrying...")
                time.sleep(_RETRY_DELAY * attempt)
                continue
            except requests.RequestException as exc:
                raise FetchError(
                    ErrorKind.INTERNAL_ERROR,
                    f"{self.source} request failed",
                    source=self.source,
                    original_error=exc,
                ) from exc

            if resp.ok:
                return resp

            status = resp.status_code
            kind = error_kind_for_status(status)
            retryable = status >= 500
            if retryable and attempt < self.retry_attempts:
                self.logger.debug(f"[{self.source}] attempt {attempt} got HTTP {status}. Retrying...")
                time.sleep(_RETRY_DELAY * attempt)
                continue
            # Upstream bodies go to the log only, never into the error message
            self.logger.warning(f"[{self.source}] HTTP {status}: {resp.text[:200]}")
            raise FetchError(
                kind,
                f"{self.source} returned HTTP {status}",
                source=self.source,
                status_code=status,
                rate_limited=status == 429,
            )
        # Unreachable: the loop always returns or raises
        raise FetchError(ErrorKind.INTERNAL_ERROR, f"{self.source} request failed", source=self.source)
