"""Remote catalog access needed by the download pipeline.

Browsing and search live elsewhere; the pipeline only needs to resolve a mod
id to its details and the download URL of one of its files.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Protocol, Self

import httpx

from deadlock_mod_manager.config import settings
from deadlock_mod_manager.schemas.catalog import RemoteCategory, RemoteFile, RemoteModDetails

logger = logging.getLogger(__name__)

_DETAIL_PROPERTIES = "_idRow,_sName,_bIsNsfw,_aCategory,_aFiles,_aPreviewMedia"


class CatalogClient(Protocol):
    async def fetch_mod_details(self, mod_id: int, section: str = "Mod") -> RemoteModDetails: ...


def _thumbnail(preview: dict[str, Any] | None) -> str | None:
    images = (preview or {}).get("_aImages") or []
    if not images:
        return None
    first = images[0]
    return f"{first['_sBaseUrl']}/{first.get('_sFile530') or first['_sFile']}"


def parse_mod_details(raw: dict[str, Any]) -> RemoteModDetails:
    category = raw.get("_aCategory")
    return RemoteModDetails(
        id=raw["_idRow"],
        name=raw["_sName"],
        nsfw=bool(raw.get("_bIsNsfw", False)),
        category=(
            RemoteCategory(id=category.get("_idRow"), name=category.get("_sName"))
            if category
            else None
        ),
        files=[
            RemoteFile(
                id=f["_idRow"],
                file_name=f.get("_sFile", ""),
                download_url=f["_sDownloadUrl"],
                size=f.get("_nFilesize", 0),
            )
            for f in raw.get("_aFiles") or []
        ],
        thumbnail_url=_thumbnail(raw.get("_aPreviewMedia")),
    )


class GameBananaClient:
    def __init__(self, base_url: str | None = None) -> None:
        self._base_url = base_url or settings.gamebanana_base_url
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Accept": "application/json"},
            timeout=30.0,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("GameBananaClient not entered as context manager")
        return self._client

    async def fetch_mod_details(self, mod_id: int, section: str = "Mod") -> RemoteModDetails:
        resp = await self.client.get(
            f"/{section}/{mod_id}", params={"_csvProperties": _DETAIL_PROPERTIES}
        )
        resp.raise_for_status()
        details = parse_mod_details(resp.json())
        logger.debug("Fetched %s %d: %d file(s)", section, mod_id, len(details.files))
        return details
