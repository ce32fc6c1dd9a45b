import threading
from pathlib import Path

import pytest

from website_downloader.tools.read_tool import ParsedPage


ROOT_URL = "https://example.com/site/index.html"

LEAF_HTML = "<html><body><p>Nothing else to see here.</p></body></html>"


class FakeReader:
    """Serves canned HTML by URL; unknown URLs and listed failures raise."""

    def __init__(self, pages: dict[str, str], failing: set[str] | None = None):
        self.pages = pages
        self.failing = failing or set()
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def read(self, url: str) -> ParsedPage:
        with self._lock:
            self.calls.append(url)
        if url in self.failing:
            raise ConnectionError(f"connection reset while reading {url}")
        if url not in self.pages:
            raise LookupError(f"no page for {url}")
        return ParsedPage.from_html(url, self.pages[url])


class RecordingWriter:
    """Writes the URL into the claimed file and records every call."""

    def __init__(self):
        self.calls: list[tuple[str, Path]] = []
        self._lock = threading.Lock()

    def write(self, url: str, path: Path) -> None:
        with self._lock:
            self.calls.append((url, path))
        path.write_text(url, encoding="utf-8")

    def urls(self) -> list[str]:
        with self._lock:
            return [url for url, _ in self.calls]


@pytest.fixture
def writer() -> RecordingWriter:
    return RecordingWriter()


@pytest.fixture
def output_dir(tmp_path) -> Path:
    return tmp_path / "data"
