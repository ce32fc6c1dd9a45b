"""Crawler - recursive, multi-threaded website download."""

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse

from ..config.loader import Config
from ..models.job import Job, JobType
from ..models.progress import CrawlState, Progress
from ..tools.extract_tool import extract_tool, scope_prefix
from ..tools.read_tool import PageReader
from ..tools.storage_tool import claim_path, init_storage
from ..tools.write_tool import FileWriter
from .executor import AtomicCounter, ExtendedExecutor

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Progress], None]


class CrawlError(RuntimeError):
    """Base error for crawl runs."""


class JobError(CrawlError):
    """A job failed. The original exception is chained as __cause__."""

    def __init__(self, job: Job, cause: BaseException):
        super().__init__(f"{job.kind.value} job for {job.url} failed: {cause}")
        self.job = job


class Crawler:
    """
    Crawls a website from a root URL, saving every page and resource under the
    root's directory to output_directory, mirroring the URL paths.

    Pages and files are processed as jobs on a fixed thread pool. The local
    file for a URL is created exclusively before any work is done for it, so
    the filesystem is the only record of visited URLs. The run ends when the
    in-flight job count drops to zero.
    """

    def __init__(
        self,
        reader: PageReader,
        writer: FileWriter,
        threads: int,
        output_directory: str | Path,
        url: str,
        *,
        poll_interval: float = 1.0,
        fail_fast: bool = False,
        max_jobs: Optional[int] = None,
    ):
        if threads < 1:
            raise ValueError("The number of threads must be greater than zero")
        for name, param in (
            ("reader", reader),
            ("writer", writer),
            ("output_directory", output_directory),
            ("url", url),
        ):
            if param is None:
                raise ValueError(f"Parameter {name} is None")
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"url must be an absolute http(s) URL, got {url!r}")
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if max_jobs is not None and max_jobs < 1:
            raise ValueError("max_jobs must be at least 1")

        self.reader = reader
        self.writer = writer
        self.url = url
        self.scope = scope_prefix(url)
        self.output_directory = Path(output_directory)
        self.poll_interval = poll_interval
        self.fail_fast = fail_fast
        self.max_jobs = max_jobs

        self.state = CrawlState.IDLE
        self._executor = ExtendedExecutor(threads)
        self._output_root: Path = self.output_directory.resolve()
        self._jobs = AtomicCounter()
        self._persisted = AtomicCounter()
        self._submitted = AtomicCounter()
        self._stopped = threading.Event()
        self._cap_warned = threading.Event()
        self._started_at: float | None = None

    @classmethod
    def from_config(cls, config: Config, reader: PageReader, writer: FileWriter) -> "Crawler":
        return cls(
            reader,
            writer,
            config.threads,
            config.output_directory,
            config.source_url,
            poll_interval=config.poll_interval,
            fail_fast=config.fail_fast,
            max_jobs=config.max_jobs,
        )

    @property
    def in_flight(self) -> int:
        return self._jobs.value

    @property
    def persisted(self) -> int:
        return self._persisted.value

    @property
    def failure(self) -> BaseException | None:
        return self._executor.first_failure

    def progress(self) -> Progress:
        elapsed = 0.0 if self._started_at is None else time.monotonic() - self._started_at
        return Progress(
            persisted=self._persisted.value,
            in_flight=self._jobs.value,
            elapsed_seconds=elapsed,
            failure=self._executor.first_failure,
        )

    def start(self, progress_callback: ProgressCallback | None = None) -> Progress:
        """
        Run the crawl to completion on the calling thread.

        progress_callback gets a snapshot every poll_interval seconds and once
        more after termination. Job failures never raise here; they show up in
        the snapshots. An exception raised by the callback propagates, and the
        jobs already submitted keep running unless stop() is called.
        """
        if self.state is not CrawlState.IDLE:
            raise CrawlError(f"Crawler already {self.state.value.lower()}")

        self._output_root = init_storage(self.output_directory)
        self._started_at = time.monotonic()
        self.state = CrawlState.RUNNING
        logger.info("Crawling %s (scope %s) into %s", self.url, self.scope, self._output_root)

        self._submit_job(JobType.PAGE, self.url)

        while True:
            self._notify(progress_callback)
            if self._jobs.value == 0:
                break
            time.sleep(self.poll_interval)

        self.state = CrawlState.DRAINING
        logger.info("No jobs in flight, shutting down workers")
        if not self._executor.is_shutdown():
            self._executor.shutdown(wait=False)
        while not self._executor.is_terminated():
            time.sleep(min(self.poll_interval, 0.05))
        self.state = CrawlState.TERMINATED

        final = self.progress()
        logger.info(
            "Crawl finished: %d persisted in %.1fs%s",
            final.persisted,
            final.elapsed_seconds,
            " with failure" if final.failed else "",
        )
        if progress_callback is not None:
            progress_callback(final)
        return final

    def stop(self) -> None:
        """
        Stop doing crawl work. Queued jobs become no-ops and running page jobs
        stop submitting children; the in-flight count still drains to zero.
        """
        if not self._stopped.is_set():
            logger.info("Stop requested, skipping remaining jobs")
            self._stopped.set()

    def drain(self, timeout: float | None = None) -> Progress:
        """
        Block until every submitted job has finished and the worker threads
        have exited. Call before closing the reader or writer of a run that
        was interrupted, e.g. after stop().
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while self._jobs.value > 0:
            if deadline is not None and time.monotonic() >= deadline:
                raise CrawlError(f"{self._jobs.value} job(s) still in flight after {timeout}s")
            time.sleep(min(self.poll_interval, 0.05))
        self._executor.shutdown(wait=True)
        self.state = CrawlState.TERMINATED
        return self.progress()

    def _notify(self, progress_callback: ProgressCallback | None) -> None:
        if progress_callback is not None:
            progress_callback(self.progress())

    def _should_skip(self) -> bool:
        if self._stopped.is_set():
            return True
        return self.fail_fast and self._executor.first_failure is not None

    def _submit_job(self, kind: JobType, url: str) -> None:
        if self._should_skip():
            return
        if self.max_jobs is not None and self._submitted.increment() > self.max_jobs:
            if not self._cap_warned.is_set():
                self._cap_warned.set()
                logger.warning("Job cap of %d reached, dropping further jobs", self.max_jobs)
            return

        job = Job(kind=kind, url=url)
        self._jobs.increment()
        try:
            self._executor.submit(self._run_job, job)
        except BaseException:
            self._jobs.decrement()
            raise

    def _run_job(self, job: Job) -> None:
        try:
            if self._should_skip():
                logger.debug("Skipping %s %s", job.kind.value, job.url)
                return
            self._do_work(job)
        except Exception as e:
            logger.error("Failed %s %s: %s", job.kind.value, job.url, e)
            raise JobError(job, e) from e
        finally:
            self._jobs.decrement()

    def _do_work(self, job: Job) -> None:
        path = claim_path(self._output_root, job.url)
        if path is None:
            # Another job got there first: duplicate or cycle.
            return
        self._persisted.increment()

        if job.kind is JobType.FILE:
            self.writer.write(job.url, path)
        elif job.kind is JobType.PAGE:
            page = self.reader.read(job.url)
            resources, links = extract_tool(page, self.scope)
            for resource in resources:
                self._submit_job(JobType.FILE, resource)
            for link in links:
                self._submit_job(JobType.PAGE, link)
            self.writer.write(job.url, path)
        else:
            raise ValueError(f"Unexpected job type {job.kind}")
