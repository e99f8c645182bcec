from __future__ import annotations

import asyncio
from io import BytesIO
import logging
from pathlib import Path
from typing import BinaryIO
from urllib.parse import quote

import httpx
from PIL import Image

from player_notify.downloads import DownloadIndex
from player_notify.models import LocalMediaSource, MediaSource, RemoteMediaSource, Thumbnail


LOGGER = logging.getLogger(__name__)
MEDIA_NOTIFICATION_HEIGHT_DP = 64
DOWNLOAD_THUMBNAIL_FILENAME = "thumbnail.jpg"
PRIMARY_IMAGE_TYPE = "Primary"
DECODE_ERRORS = (OSError, ValueError, Image.DecompressionBombError)


def notification_height(display_scale: float) -> int:
    return max(1, round(MEDIA_NOTIFICATION_HEIGHT_DP * display_scale))


def build_image_url(
    server_url: str, item_id: str, *, fill_height: int, tag: str | None = None
) -> str:
    params = {"fillHeight": str(fill_height)}
    if tag:
        params["tag"] = tag
    base = f"{server_url.rstrip('/')}/Items/{quote(item_id, safe='')}/Images/{PRIMARY_IMAGE_TYPE}"
    return str(httpx.URL(base, params=params))


def decode_thumbnail(source: Path | BinaryIO, max_height: int) -> Thumbnail:
    with Image.open(source) as image:
        rgba = image.convert("RGBA")
    if rgba.height > max_height:
        width = max(1, round(rgba.width * max_height / rgba.height))
        rgba = rgba.resize((width, max_height), Image.Resampling.LANCZOS)
    return Thumbnail(
        width=rgba.width,
        height=rgba.height,
        rowstride=rgba.width * 4,
        has_alpha=True,
        bits_per_sample=8,
        channels=4,
        data=rgba.tobytes(),
    )


class ArtworkResolver:
    def __init__(
        self,
        download_index: DownloadIndex,
        *,
        server_url: str = "",
        api_token: str = "",
        display_scale: float = 1.0,
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._download_index = download_index
        self._server_url = server_url
        self._height = notification_height(display_scale)
        headers = {"Accept": "image/*"}
        if api_token:
            headers["Authorization"] = f'MediaBrowser Token="{api_token}"'
        self._http = httpx.Client(headers=headers, timeout=timeout_seconds, transport=transport)

    @property
    def target_height(self) -> int:
        return self._height

    def close(self) -> None:
        self._http.close()

    async def resolve(self, source: MediaSource) -> Thumbnail | None:
        try:
            if isinstance(source, LocalMediaSource):
                return await self._resolve_local(source)
            if isinstance(source, RemoteMediaSource):
                return await self._resolve_remote(source)
        except Exception:
            LOGGER.exception("Artwork resolution failed for %s", source.item_id)
            return None
        LOGGER.debug("No artwork strategy for %r", source)
        return None

    async def _resolve_local(self, source: LocalMediaSource) -> Thumbnail | None:
        directory = self._download_index.get(source.item_id)
        if directory is None:
            LOGGER.error(
                "Local item %s is missing from the download index; posting without artwork",
                source.item_id,
            )
            return None
        return await asyncio.to_thread(self._decode_local, directory / DOWNLOAD_THUMBNAIL_FILENAME)

    async def _resolve_remote(self, source: RemoteMediaSource) -> Thumbnail | None:
        if not self._server_url:
            LOGGER.debug("No media server configured; skipping remote artwork")
            return None
        url = build_image_url(
            self._server_url, source.item_id, fill_height=self._height, tag=source.image_tag
        )
        return await asyncio.to_thread(self._fetch_remote, url)

    def _decode_local(self, path: Path) -> Thumbnail | None:
        try:
            return decode_thumbnail(path, self._height)
        except DECODE_ERRORS as exc:
            LOGGER.debug("Cannot decode local thumbnail %s: %s", path, exc)
            return None

    def _fetch_remote(self, url: str) -> Thumbnail | None:
        try:
            response = self._http.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.warning("Artwork fetch failed for %s: %s", url, exc)
            return None
        try:
            return decode_thumbnail(BytesIO(response.content), self._height)
        except DECODE_ERRORS as exc:
            LOGGER.warning("Cannot decode artwork from %s: %s", url, exc)
            return None
