"""Storage tool - map URLs to local paths and claim them on disk."""

import logging
import shutil
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.html"


def init_storage(output_root: str | Path) -> Path:
    """
    Initialize storage - wipe the output directory to start fresh.
    Returns the absolute output root.
    """
    path = Path(output_root).resolve()
    if path.is_dir():
        shutil.rmtree(path)
        logger.info("Deleted existing output directory %s", path)
    path.mkdir(parents=True, exist_ok=True)
    logger.info("Initialized storage at %s", path)
    return path


def local_path(output_root: Path, url: str) -> Path:
    """
    Deterministic local path for a URL: output_root/<url path>.
    Query and fragment are ignored. Directory-like paths get index.html and
    '.'/'..' segments are dropped so nothing lands outside output_root.
    """
    raw_path = unquote(urlparse(url).path)
    parts = [p for p in PurePosixPath(raw_path).parts if p not in ("/", ".", "..")]
    if not parts or raw_path.endswith("/"):
        parts.append(INDEX_FILENAME)
    return output_root.joinpath(*parts)


def claim_path(output_root: Path, url: str) -> Path | None:
    """
    Atomically claim the local path for url.
    Returns the path if this call created it, None if it already existed.
    Any other filesystem error propagates.
    """
    path = local_path(output_root, url)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except (FileExistsError, NotADirectoryError):
        # A parent segment was already persisted as a file, e.g. /a then /a/b.
        logger.warning("Cannot claim %s: a file occupies %s", url, path.parent)
        return None
    try:
        with open(path, "x"):
            pass
    except FileExistsError:
        logger.debug("Already claimed: %s -> %s", url, path)
        return None
    return path
