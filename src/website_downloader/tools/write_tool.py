"""Write tool - transfer the raw bytes behind a URL to a local file."""

import asyncio
import concurrent.futures
import logging
import threading
from pathlib import Path
from typing import Protocol

import httpx

from ..config.loader import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


class FileWriter(Protocol):
    """Persists the content at a URL to a path. Must be complete on return."""

    def write(self, url: str, path: Path) -> None: ...


class BlockingFileWriter:
    """Streams the response body straight to disk on the calling thread."""

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

    def write(self, url: str, path: Path) -> None:
        with self._client.stream("GET", url) as response:
            response.raise_for_status()
            with open(path, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
        logger.debug("Wrote %s to %s", url, path)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "BlockingFileWriter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class NonBlockingFileWriter:
    """
    Issues downloads on an httpx.AsyncClient running in a dedicated event loop
    thread, and awaits each one before write() returns.

    Useful on slow connections: many transfers share one loop instead of each
    worker holding a blocking socket read. Can be slower when responses are fast.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._timeout = timeout
        self._user_agent = user_agent
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._closing = False
        self._state_lock = threading.Lock()
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever, name="file-writer-loop", daemon=True
        )
        self._thread.start()

    def _get_client(self) -> httpx.AsyncClient:
        # Only ever called on the loop thread.
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                trust_env=False,
                headers={"User-Agent": self._user_agent},
                transport=self._transport,
            )
        return self._client

    async def _download(self, url: str, path: Path) -> None:
        async with self._get_client().stream("GET", url) as response:
            response.raise_for_status()
            with open(path, "wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)

    def write(self, url: str, path: Path) -> None:
        with self._state_lock:
            if self._closing:
                raise RuntimeError("NonBlockingFileWriter is closed")
            # Scheduled under the lock so close() always sees this download.
            future = asyncio.run_coroutine_threadsafe(self._download(url, path), self._loop)
        try:
            future.result()
        except concurrent.futures.CancelledError:
            raise RuntimeError(f"NonBlockingFileWriter closed while downloading {url}") from None
        logger.debug("Wrote %s to %s", url, path)

    async def _shutdown(self) -> None:
        current = asyncio.current_task()
        pending = [t for t in asyncio.all_tasks() if t is not current]
        if pending:
            logger.warning("Closing writer with %d download(s) in progress", len(pending))
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def close(self) -> None:
        """Refuse new writes, cancel downloads still running, stop the loop."""
        with self._state_lock:
            if self._closing:
                return
            self._closing = True
        asyncio.run_coroutine_threadsafe(self._shutdown(), self._loop).result()
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()

    def __enter__(self) -> "NonBlockingFileWriter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
