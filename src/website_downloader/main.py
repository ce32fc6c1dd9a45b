"""Main entry point for the website downloader."""

import argparse
import logging
import sys
from pathlib import Path

import yaml
from pydantic import ValidationError

from .config.loader import Config, WriterMode, load_config
from .crawl.crawler import CrawlError, Crawler
from .models.progress import Progress
from .tools.read_tool import HTTPPageReader
from .tools.write_tool import BlockingFileWriter, NonBlockingFileWriter

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Recursively download a website's pages and resources"
    )
    parser.add_argument(
        "url",
        nargs="?",
        help="Root URL to crawl. Overrides source_url from the config",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Path to config file (YAML or JSON)",
    )
    parser.add_argument(
        "-t",
        "--threads",
        type=int,
        help="Overrides the number of threads used. Defaults to twice the number of cores available.",
    )
    parser.add_argument(
        "-a",
        "--async",
        dest="non_blocking",
        action="store_true",
        help="Downloads files asynchronously. Use for slow network connections; "
        "can hurt performance when connection times are fast.",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output directory. Wiped at the start of every run",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> Config:
    """Load the config file (if any) and apply command-line overrides."""
    data: dict = {}
    if args.config:
        data = load_config(Path(args.config)).model_dump()
    if args.url:
        data["source_url"] = args.url
    if args.threads is not None:
        data["threads"] = args.threads
    if args.output:
        data["output_directory"] = args.output
    if args.non_blocking:
        data["writer_mode"] = WriterMode.NON_BLOCKING
    return Config.from_dict(data)


def report_progress(progress: Progress) -> None:
    """Single updating console line. Raises the captured failure, if any."""
    if progress.failure is not None:
        raise progress.failure
    print(
        f"Completed {progress.persisted} | Scheduled {progress.in_flight} | "
        f"Elapsed {int(progress.elapsed_seconds)}(s)    ",
        end="\r",
        flush=True,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        config = resolve_config(args)
    except (FileNotFoundError, ValidationError, ValueError, yaml.YAMLError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    reader = HTTPPageReader(timeout=config.http.timeout, user_agent=config.http.user_agent)
    if config.writer_mode is WriterMode.NON_BLOCKING:
        writer = NonBlockingFileWriter(timeout=config.http.timeout, user_agent=config.http.user_agent)
    else:
        writer = BlockingFileWriter(timeout=config.http.timeout, user_agent=config.http.user_agent)

    with reader, writer:
        crawler = Crawler.from_config(config, reader, writer)
        print(
            f"Starting file download from {config.source_url} using {config.threads} thread(s) "
            f"and a {'non-blocking' if config.writer_mode is WriterMode.NON_BLOCKING else 'blocking'} writer"
        )
        try:
            final = crawler.start(report_progress)
        except CrawlError as e:
            crawler.stop()
            # Jobs still in flight use reader and writer; let them finish first.
            crawler.drain()
            print(f"\nThere was an exception: {e.__cause__ or e}", file=sys.stderr)
            print(
                "Execution will be terminated. Try again with fewer threads and the blocking writer",
                file=sys.stderr,
            )
            return 1

    print(f"\nDownload complete: {final.persisted} files saved to {Path(config.output_directory).resolve()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
