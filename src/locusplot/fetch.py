from __future__ import annotations

import hashlib
import logging
import shutil
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path

from .errors import FetchError
from .reporting import ensure_dir

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
DEFAULT_CACHE_DIR = Path("data/cache")

_URL_SCHEMES = {"http", "https", "ftp", "file"}


def is_url(source: str | Path) -> bool:
    if isinstance(source, Path):
        return False
    return urllib.parse.urlparse(str(source)).scheme.lower() in _URL_SCHEMES


def download_url(
    url: str,
    out_path: str | Path,
    *,
    overwrite: bool = False,
    timeout: float = DEFAULT_TIMEOUT,
) -> Path:
    """Download a URL to disk.

    The file is streamed into a ``.tmp`` sibling and renamed once complete, so
    an interrupted download never leaves a truncated cache entry behind.

    Raises:
        FetchError: unreachable host, non-success response or timeout.
    """

    out_path = Path(out_path)
    ensure_dir(out_path.parent)

    if out_path.exists() and not overwrite:
        logger.debug("using cached %s", out_path)
        return out_path

    tmp = out_path.with_suffix(out_path.suffix + ".tmp")
    if tmp.exists():
        tmp.unlink()

    logger.info("downloading %s", url)
    try:
        # urlopen raises HTTPError for non-success responses.
        with urllib.request.urlopen(url, timeout=timeout) as r, tmp.open("wb") as f:
            shutil.copyfileobj(r, f)
    except urllib.error.HTTPError as e:
        tmp.unlink(missing_ok=True)
        raise FetchError(f"GET {url} returned HTTP {e.code}") from e
    except TimeoutError as e:
        tmp.unlink(missing_ok=True)
        raise FetchError(f"GET {url} timed out after {timeout}s") from e
    except (urllib.error.URLError, OSError) as e:
        tmp.unlink(missing_ok=True)
        raise FetchError(f"Cannot fetch {url}: {e}") from e

    tmp.replace(out_path)
    logger.info("saved %s", out_path)
    return out_path


def cache_path_for(url: str, cache_dir: str | Path) -> Path:
    """Cache location for ``url``: a per-URL digest directory holding the file under its own name."""
    parsed = urllib.parse.urlparse(url)
    name = Path(parsed.path).name or "download"
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:12]
    return Path(cache_dir) / digest / name


def resolve_source(
    source: str | Path,
    *,
    cache_dir: str | Path | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    overwrite: bool = False,
) -> Path:
    """Turn a URL or local path into a local file path.

    URLs are downloaded into ``cache_dir``; local paths must exist.
    """

    if is_url(source):
        url = str(source)
        dest = cache_path_for(url, cache_dir if cache_dir is not None else DEFAULT_CACHE_DIR)
        return download_url(url, dest, overwrite=overwrite, timeout=timeout)

    path = Path(source)
    if not path.exists():
        raise FetchError(f"No such file: {path}")
    return path
