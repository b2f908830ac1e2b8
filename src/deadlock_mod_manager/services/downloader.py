"""Streaming HTTP download with byte progress and partial-file cleanup."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import httpx

from deadlock_mod_manager.config import settings
from deadlock_mod_manager.errors import DownloadError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65_536

ByteProgress = Callable[[int, int], None]


def _no_progress(_downloaded: int, _total: int) -> None:
    pass


async def stream_download(
    url: str,
    dest_path: Path,
    on_progress: ByteProgress = _no_progress,
    *,
    timeout: float | None = None,
    client: httpx.AsyncClient | None = None,
) -> int:
    """Stream *url* into *dest_path*, following redirects.

    Returns the number of bytes written.  On any failure the partial file is
    removed and :class:`DownloadError` is raised.
    """
    timeout = settings.download_timeout if timeout is None else timeout
    owns_client = client is None
    http = client or httpx.AsyncClient(follow_redirects=True, timeout=timeout)
    downloaded = 0
    try:
        async with http.stream("GET", url, follow_redirects=True) as resp:
            resp.raise_for_status()
            total = int(resp.headers.get("Content-Length", 0))
            with open(dest_path, "wb") as f:
                async for chunk in resp.aiter_bytes(chunk_size=CHUNK_SIZE):
                    f.write(chunk)
                    downloaded += len(chunk)
                    on_progress(downloaded, total)
    except httpx.HTTPStatusError as exc:
        dest_path.unlink(missing_ok=True)
        raise DownloadError(
            f"Download failed with status {exc.response.status_code}"
        ) from exc
    except (httpx.HTTPError, OSError) as exc:
        dest_path.unlink(missing_ok=True)
        raise DownloadError(f"Download failed: {exc}") from exc
    except BaseException:
        dest_path.unlink(missing_ok=True)
        raise
    finally:
        if owns_client:
            await http.aclose()

    logger.info("Downloaded %s (%d bytes)", dest_path.name, downloaded)
    return downloaded
