import asyncio
import threading

import httpx
import pytest

from website_downloader.tools.read_tool import HTTPPageReader
from website_downloader.tools.write_tool import BlockingFileWriter, NonBlockingFileWriter


PAGE_HTML = '<html><body><a href="next.html">next</a></body></html>'
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 64


def site(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/old/index.html":
        return httpx.Response(301, headers={"Location": "https://example.com/shop/index.html"})
    if path == "/shop/index.html":
        return httpx.Response(
            200,
            headers={"content-type": "text/html; charset=utf-8"},
            content=PAGE_HTML.encode("utf-8"),
        )
    if path == "/shop/logo.png":
        return httpx.Response(200, headers={"content-type": "image/png"}, content=PNG_BYTES)
    if path == "/shop/broken.html":
        return httpx.Response(500, text="upstream error")
    return httpx.Response(404, text="not found")


def test_reader_follows_redirects_and_parses():
    with HTTPPageReader(transport=httpx.MockTransport(site)) as reader:
        page = reader.read("https://example.com/old/index.html")

    assert page.url == "https://example.com/old/index.html"
    assert page.final_url == "https://example.com/shop/index.html"
    assert page.base_url == "https://example.com/shop/index.html"
    assert [a["href"] for a in page.document.select("a[href]")] == ["next.html"]


def test_reader_sends_user_agent():
    seen = {}

    def handler(request):
        seen["ua"] = request.headers.get("user-agent")
        return httpx.Response(200, headers={"content-type": "text/html"}, content=b"<p>hi</p>")

    with HTTPPageReader(user_agent="test-agent/1.0", transport=httpx.MockTransport(handler)) as reader:
        reader.read("https://example.com/")

    assert seen["ua"] == "test-agent/1.0"


def test_reader_returns_empty_document_for_non_html():
    with HTTPPageReader(transport=httpx.MockTransport(site)) as reader:
        page = reader.read("https://example.com/shop/logo.png")

    assert page.document.select("a[href]") == []


@pytest.mark.parametrize("url", ["https://example.com/shop/broken.html", "https://example.com/missing"])
def test_reader_raises_on_error_status(url):
    with HTTPPageReader(transport=httpx.MockTransport(site)) as reader:
        with pytest.raises(httpx.HTTPStatusError):
            reader.read(url)


def test_blocking_writer_streams_bytes(tmp_path):
    target = tmp_path / "logo.png"
    target.touch()

    with BlockingFileWriter(transport=httpx.MockTransport(site)) as writer:
        writer.write("https://example.com/shop/logo.png", target)

    assert target.read_bytes() == PNG_BYTES


def test_blocking_writer_raises_on_missing_resource(tmp_path):
    with BlockingFileWriter(transport=httpx.MockTransport(site)) as writer:
        with pytest.raises(httpx.HTTPStatusError):
            writer.write("https://example.com/missing.png", tmp_path / "missing.png")


def test_non_blocking_writer_completes_before_returning(tmp_path):
    writer = NonBlockingFileWriter(transport=httpx.MockTransport(site))
    try:
        for name in ("a.png", "b.png"):
            target = tmp_path / name
            writer.write("https://example.com/shop/logo.png", target)
            assert target.read_bytes() == PNG_BYTES
        page = tmp_path / "index.html"
        writer.write("https://example.com/old/index.html", page)
        assert page.read_text(encoding="utf-8") == PAGE_HTML
    finally:
        writer.close()


def test_non_blocking_writer_raises_on_missing_resource(tmp_path):
    with NonBlockingFileWriter(transport=httpx.MockTransport(site)) as writer:
        with pytest.raises(httpx.HTTPStatusError):
            writer.write("https://example.com/missing.png", tmp_path / "missing.png")


def test_non_blocking_writer_rejects_writes_after_close(tmp_path):
    writer = NonBlockingFileWriter(transport=httpx.MockTransport(site))
    writer.close()
    writer.close()

    with pytest.raises(RuntimeError):
        writer.write("https://example.com/shop/logo.png", tmp_path / "logo.png")


def test_non_blocking_writer_close_interrupts_running_write(tmp_path):
    started = threading.Event()

    async def stalled(request):
        started.set()
        await asyncio.sleep(30)
        return httpx.Response(200, content=b"too late")

    writer = NonBlockingFileWriter(transport=httpx.MockTransport(stalled))
    errors = []

    def download():
        try:
            writer.write("https://example.com/shop/slow.png", tmp_path / "slow.png")
        except Exception as e:
            errors.append(e)

    worker = threading.Thread(target=download)
    worker.start()
    assert started.wait(5)

    writer.close()
    worker.join(5)

    assert not worker.is_alive()
    assert len(errors) == 1
    assert isinstance(errors[0], RuntimeError)
    assert "slow.png" in str(errors[0])
