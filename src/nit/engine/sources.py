"""Asset intake — turn a user-supplied source into bytes plus intrinsic facts.

A source is one of:
- a CID (``bafy...`` / ``bafk...``), fetched from the content store;
- an ``http://`` or ``https://`` URL, downloaded with a 30s timeout;
- a local file path.

Mimetype is guessed from the file name or URL path. Birthtime is the
file's creation time where the platform records one, else its
modification time; for remote sources it is the time of intake.
"""

from __future__ import annotations

import logging
import mimetypes
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx

from nit.crypto.digest import looks_like_cid
from nit.errors import NetworkFailure
from nit.storage.content_store import ContentStore

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class AssetSource:
    """Raw asset bytes with the properties fixed at first registration."""
    data: bytes
    mimetype: Optional[str]
    birthtime: int
    origin: str = ""


def _now() -> int:
    return int(datetime.now(timezone.utc).timestamp())


def from_bytes(data: bytes, name: str = "", birthtime: Optional[int] = None) -> AssetSource:
    """Wrap in-memory bytes. Mimetype is guessed from ``name`` if given."""
    mimetype = mimetypes.guess_type(name)[0] if name else None
    return AssetSource(
        data=data,
        mimetype=mimetype,
        birthtime=birthtime if birthtime is not None else _now(),
        origin=name,
    )


def from_file(path: Path) -> AssetSource:
    stat = path.stat()
    created = getattr(stat, "st_birthtime", None) or stat.st_mtime
    return AssetSource(
        data=path.read_bytes(),
        mimetype=mimetypes.guess_type(path.name)[0],
        birthtime=int(created),
        origin=str(path),
    )


def from_url(url: str, transport: Optional[httpx.BaseTransport] = None) -> AssetSource:
    try:
        with httpx.Client(
            timeout=HTTP_TIMEOUT_SECONDS, follow_redirects=True, transport=transport,
        ) as client:
            response = client.get(url)
            response.raise_for_status()
    except httpx.HTTPError as e:
        raise NetworkFailure(f"Cannot download asset {url}: {e}") from e

    content_type = response.headers.get("content-type", "").split(";")[0].strip()
    mimetype = content_type or mimetypes.guess_type(urlparse(url).path)[0]
    return AssetSource(data=response.content, mimetype=mimetype, birthtime=_now(), origin=url)


def read_asset_source(source: str, store: ContentStore) -> AssetSource:
    """Resolve a CID, URL or file path into an AssetSource."""
    if looks_like_cid(source):
        logger.info("Reading asset from content store: %s", source)
        return AssetSource(data=store.get(source), mimetype=None, birthtime=_now(), origin=source)
    if source.startswith(("http://", "https://")):
        logger.info("Downloading asset: %s", source)
        return from_url(source)
    logger.info("Reading asset file: %s", source)
    return from_file(Path(os.path.expanduser(source)))
