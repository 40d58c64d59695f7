"""Politeness-aware HTTP fetcher.

Two budgets apply to every request:

1. A global ceiling on simultaneous requests (a bounded semaphore).
2. A minimum interval between requests to the same host.

A request waits for its host cooldown before it takes a global slot. If
another request to the same host claimed the host while this one was
queued for a slot, the slot is released and the wait starts over, so a
cooling-down host never pins a global slot.
"""

import logging
import threading
import time
from typing import Callable

import requests
from bs4.dammit import EncodingDetector
from requests.exceptions import RequestException, Timeout

from common.config import FetchConfig
from common.url import extract_domain
from ingest_articles.models import FetchResult

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Network failure while retrieving a URL."""


class FetchTimeoutError(FetchError):
    """The request exceeded the fetch timeout and was aborted."""


class HttpStatusError(FetchError):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str | None = None):
        self.status_code = status_code
        self.reason = reason or ""
        super().__init__(f"HTTP {status_code}: {self.reason}".rstrip())


class PoliteFetcher:
    def __init__(
        self,
        config: FetchConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or FetchConfig()
        self._sleep = sleep
        self._clock = clock
        self._slots = threading.BoundedSemaphore(max(1, self.config.max_concurrent))
        self._host_lock = threading.Lock()
        self._last_request_at: dict[str, float] = {}

    @property
    def headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.config.user_agent,
            "Accept": self.config.accept,
            "Accept-Language": self.config.accept_language,
        }

    def fetch(self, url: str) -> FetchResult:
        """Fetch a URL under the global and per-host limits.

        Raises:
            FetchTimeoutError: the request timed out
            HttpStatusError: the response status was not 2xx
            FetchError: any other transport failure
        """
        host = extract_domain(url)
        self._acquire(host)
        try:
            return self._get(url)
        finally:
            self._slots.release()

    def _host_wait(self, host: str) -> float:
        with self._host_lock:
            last = self._last_request_at.get(host)
            if last is None:
                return 0.0
            return last + self.config.per_host_interval_seconds - self._clock()

    def _acquire(self, host: str) -> None:
        while True:
            wait = self._host_wait(host)
            if wait > 0:
                logger.debug("Delaying request to %s for %.2fs", host, wait)
                self._sleep(wait)
                continue

            self._slots.acquire()
            with self._host_lock:
                now = self._clock()
                last = self._last_request_at.get(host)
                if last is None or now - last >= self.config.per_host_interval_seconds:
                    self._last_request_at[host] = now
                    return
            # Another request to this host started while we were queued
            self._slots.release()

    def _get(self, url: str) -> FetchResult:
        timeout_ms = int(self.config.timeout_seconds * 1000)
        try:
            response = requests.get(
                url,
                timeout=self.config.timeout_seconds,
                headers=self.headers,
                allow_redirects=True,
            )
        except Timeout as e:
            raise FetchTimeoutError(f"Fetch timed out after {timeout_ms}ms") from e
        except RequestException as e:
            raise FetchError(str(e)) from e

        if not 200 <= response.status_code < 300:
            raise HttpStatusError(response.status_code, response.reason)

        content_type = response.headers.get("Content-Type")
        return FetchResult(
            url=url,
            final_url=response.url or url,
            status_code=response.status_code,
            content=response.content,
            text=decode_body(response, content_type),
            content_type=content_type,
        )


def decode_body(response: requests.Response, content_type: str | None) -> str:
    """Decode a response body, honoring the page's own charset declaration.

    Without a charset in the Content-Type header, requests falls back to
    ISO-8859-1 for text/* bodies. Instead, try the document's declared
    encoding (``<meta charset>`` or an XML declaration), then strict UTF-8,
    then requests' detected encoding.
    """
    if "charset=" in (content_type or "").lower():
        return response.text

    content = response.content or b""
    declared = EncodingDetector.find_declared_encoding(content, is_html=True)
    for encoding in (declared, "utf-8"):
        if not encoding:
            continue
        try:
            return content.decode(encoding)
        except (LookupError, UnicodeDecodeError):
            logger.debug("Body of %s is not valid %s", response.url, encoding)

    response.encoding = response.apparent_encoding
    return response.text
