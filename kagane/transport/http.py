"""
HTTP transport for Kagane page images.

Builds page URLs, keeps the most recently observed access token, and fetches
payloads with a single retry on authorization failure before handing the
bytes to the page decryptor.
"""

import enum
import logging
import threading
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

import requests

from ..errors import TransportError
from ..protocol.decryptor import PageDecryptor

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://yukine.kagane.org"
DEFAULT_TIMEOUT = 30.0
AUTH_FAILURE_CODES = (401, 403)


@dataclass
class ChapterRef:
    """
    Chapter reference as stored by the catalog: "series;chapter;page_count".
    """
    series_id: str
    chapter_id: str
    page_count: int

    @classmethod
    def parse(cls, value: str) -> 'ChapterRef':
        parts = value.split(";")
        if len(parts) != 3:
            raise ValueError(f"Invalid chapter reference: {value!r}")
        try:
            page_count = int(parts[2])
        except ValueError:
            raise ValueError(f"Invalid page count in chapter reference: {value!r}")
        return cls(series_id=parts[0], chapter_id=parts[1], page_count=page_count)

    def to_string(self) -> str:
        return f"{self.series_id};{self.chapter_id};{self.page_count}"


@dataclass
class PageRef:
    """
    A single page image on the origin.

    Fields:
        series_id: Series identifier
        chapter_id: Chapter identifier
        index: 1-based page index
        url: Full image URL including token and index query parameters
    """
    series_id: str
    chapter_id: str
    index: int
    url: str

    @classmethod
    def from_url(cls, url: str) -> 'PageRef':
        """
        Recover page identifiers from an image URL.

        Path layout: /api/v1/books/<series>/file/<chapter>/<name>

        Raises:
            ValueError: If the URL is not a page file URL
        """
        parts = urlsplit(url)
        segments = [segment for segment in parts.path.split("/") if segment]
        if len(segments) < 6 or segments[4] != "file":
            raise ValueError(f"Not a page file URL: {url}")

        index_values = parse_qs(parts.query).get("index", ["0"])
        try:
            index = int(index_values[0])
        except ValueError:
            raise ValueError(f"Invalid page index in URL: {url}")

        return cls(series_id=segments[3], chapter_id=segments[5], index=index, url=url)


def build_page_url(series_id: str, chapter_id: str, index: int, token: str = "",
                   base_url: str = DEFAULT_BASE_URL) -> str:
    """Build the image URL for a page."""
    query = urlencode({"token": token, "index": index})
    return f"{base_url.rstrip('/')}/api/v1/books/{series_id}/file/{chapter_id}/page_{index}.jpg?{query}"


def build_page_refs(chapter: ChapterRef, token: str = "",
                    base_url: str = DEFAULT_BASE_URL) -> List[PageRef]:
    """
    Build references for every page of a chapter.

    Args:
        chapter: Chapter reference
        token: Access token (may be empty)
        base_url: Image host

    Returns:
        PageRefs for indices 1..page_count
    """
    return [
        PageRef(
            series_id=chapter.series_id,
            chapter_id=chapter.chapter_id,
            index=index,
            url=build_page_url(chapter.series_id, chapter.chapter_id, index, token, base_url),
        )
        for index in range(1, chapter.page_count + 1)
    ]


def replace_token(url: str, token: str) -> str:
    """Return url with its token query parameter set to token."""
    parts = urlsplit(url)
    query = parse_qs(parts.query, keep_blank_values=True)
    query["token"] = [token]
    return urlunsplit(parts._replace(query=urlencode(query, doseq=True)))


def token_of(url: str) -> Optional[str]:
    values = parse_qs(urlsplit(url).query, keep_blank_values=True).get("token")
    return values[0] if values else None


class TokenStore:
    """
    Most recently observed access token, overwritten on every set.
    """

    def __init__(self, token: Optional[str] = None):
        self._token = token
        self._lock = threading.Lock()

    def get(self) -> Optional[str]:
        with self._lock:
            return self._token

    def set(self, token: Optional[str]) -> None:
        with self._lock:
            self._token = token


class RetryState(enum.Enum):
    """States of the retry-once-on-auth-failure wrapper."""
    INITIAL = "initial"
    RETRIED = "retried"
    DONE = "done"


class PageFetcher:
    """
    Fetches page payloads and turns them into images.
    """

    def __init__(self, token_store: Optional[TokenStore] = None,
                 session: Optional[requests.Session] = None,
                 decryptor: Optional[PageDecryptor] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize fetcher.

        Args:
            token_store: Shared token store (a private one is created if omitted)
            session: requests session to use
            decryptor: Page decryptor (defaults to PageDecryptor())
            timeout: Per-request timeout in seconds
        """
        self.token_store = token_store or TokenStore()
        self.session = session or requests.Session()
        self.decryptor = decryptor or PageDecryptor()
        self.timeout = timeout

    def fetch(self, url: str) -> bytes:
        """
        GET a payload, retrying once with a fresh token on 401/403.

        Args:
            url: Page image URL

        Returns:
            Raw response body

        Raises:
            TransportError: On network failure or any unsuccessful response
        """
        state = RetryState.INITIAL
        retried = False
        while state is not RetryState.DONE:
            try:
                response = self.session.get(url, timeout=self.timeout)
            except requests.RequestException as e:
                raise TransportError(f"Request failed: {e}") from e

            status = response.status_code
            if status in AUTH_FAILURE_CODES and state is RetryState.INITIAL:
                token = self.token_store.get()
                if token and token != token_of(url):
                    logger.warning(f"HTTP {status}, retrying once with refreshed token")
                    response.close()
                    url = replace_token(url, token)
                    state = RetryState.RETRIED
                    continue

            retried = state is RetryState.RETRIED
            state = RetryState.DONE

        if not 200 <= status < 300:
            response.close()
            logger.error(f"Fetching page failed with HTTP {status}")
            raise TransportError(f"HTTP {status} for {url}")

        if retried:
            logger.debug("Page fetched after token refresh")
        return response.content

    def fetch_page(self, page: PageRef) -> bytes:
        """
        Fetch, decrypt and descramble a page.

        Returns:
            Displayable image bytes

        Raises:
            TransportError: If fetching fails
            KaganeError: Any engine failure for the page
        """
        payload = self.fetch(page.url)
        return self.decryptor.decrypt_page(payload, page.series_id, page.chapter_id, page.index)
