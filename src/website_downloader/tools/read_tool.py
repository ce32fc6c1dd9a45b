"""Read tool - fetch a page over HTTP and parse it."""

import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from ..config.loader import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


@dataclass
class ParsedPage:
    """Parsed HTML document plus the URLs it was requested and served from."""

    url: str
    final_url: str
    document: BeautifulSoup

    @classmethod
    def from_html(cls, url: str, html: str, final_url: str | None = None) -> "ParsedPage":
        return cls(url=url, final_url=final_url or url, document=BeautifulSoup(html, "lxml"))

    @property
    def base_url(self) -> str:
        """URL relative references resolve against: <base href> if set, else final URL."""
        base = self.document.find("base", href=True)
        if base is not None and base["href"].strip():
            return urljoin(self.final_url, base["href"].strip())
        return self.final_url


class PageReader(Protocol):
    """Fetches and parses a page. Raises on transport or parse failure."""

    def read(self, url: str) -> ParsedPage: ...


class HTTPPageReader:
    """
    PageReader backed by a shared httpx.Client.
    Non-2xx responses raise httpx.HTTPStatusError; non-HTML bodies parse to an
    empty document so they are persisted without being crawled further.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ):
        self._client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            trust_env=False,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    def read(self, url: str) -> ParsedPage:
        logger.debug("Reading page %s", url)
        response = self._client.get(url)
        response.raise_for_status()

        content_type = response.headers.get("content-type", "application/octet-stream")
        if "html" not in content_type.lower():
            logger.debug("Not parsing %s: content-type %s", url, content_type)
            return ParsedPage.from_html(url, "", final_url=str(response.url))
        return ParsedPage.from_html(url, response.text, final_url=str(response.url))

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HTTPPageReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
