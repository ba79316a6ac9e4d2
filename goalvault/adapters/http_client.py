"""Shared HTTP transport for the indexer adapter.

A thin wrapper around ``requests.Session`` so HTTP adapters share timeout
policy, retry behavior and auth header construction.

Dependencies:
    - ``requests`` for network I/O.
    - ``goalvault.adapters.api_errors`` for typed transport failures.

Call context:
    - Constructed by ``goalvault.adapters.indexer_http.GraphQLVaultIndex``.
    - Used only inside adapter methods; use cases interact through ports.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests
from requests import exceptions as req_exc

from goalvault.adapters.api_errors import ApiTimeoutError

log = logging.getLogger(__name__)


@dataclass
class HttpConfig:
    """Timeout and retry configuration for adapter HTTP calls.

    Attributes:
        request_timeout_s: Default timeout in seconds for JSON calls.
        retries: Number of retry attempts after the initial request.
        rate_limit_backoff_s: First wait after an HTTP 429, doubled per attempt.
    """
    request_timeout_s: float = 10
    retries: int = 2
    rate_limit_backoff_s: float = 1.0


class RetryingSession:
    """Requests wrapper with bearer auth, transport retries and 429 backoff.

    Transport-only: callers decide how to map non-2xx responses.
    """

    def __init__(
        self,
        api_key: Optional[str],
        cfg: HttpConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = requests.Session()
        self.api_key = api_key
        self.cfg = cfg
        self._sleep = sleep

    def _headers(self, json_body: bool = False) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def post(
        self,
        url: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """Send a JSON POST request.

        Timeouts and connection errors are retried ``cfg.retries`` times. A
        429 response is retried with exponential backoff; the last 429 is
        returned to the caller when retries run out.

        Raises:
            ApiTimeoutError: If all attempts fail at the transport level.
        """
        context = f"POST {url}"
        data = None if json_body is None else json.dumps(json_body)
        last_err: Optional[ApiTimeoutError] = None
        attempts = self.cfg.retries + 1
        for attempt in range(attempts):
            try:
                resp = self.session.post(
                    url,
                    data=data,
                    headers=self._headers(json_body=json_body is not None),
                    timeout=timeout or self.cfg.request_timeout_s,
                )
            except (req_exc.Timeout, req_exc.ConnectionError):
                last_err = ApiTimeoutError(f"Timeout contacting {url}", context=context)
                continue
            if resp.status_code == 429 and attempt < attempts - 1:
                delay = self.cfg.rate_limit_backoff_s * (2**attempt)
                log.warning("Rate limited by %s, retrying in %.1fs", url, delay)
                self._sleep(delay)
                continue
            return resp
        raise last_err


__all__ = ["HttpConfig", "RetryingSession"]
