"""Crawl collaborators: reading, extracting, claiming and writing."""

from .read_tool import HTTPPageReader, PageReader, ParsedPage
from .write_tool import BlockingFileWriter, FileWriter, NonBlockingFileWriter
from .extract_tool import extract_tool, scope_prefix
from .storage_tool import claim_path, init_storage, local_path

__all__ = [
    "HTTPPageReader",
    "PageReader",
    "ParsedPage",
    "BlockingFileWriter",
    "FileWriter",
    "NonBlockingFileWriter",
    "extract_tool",
    "scope_prefix",
    "claim_path",
    "init_storage",
    "local_path",
]
