"""Content-addressed blob storage.

Any store that Nit reads AssetTrees and Commits from must satisfy the
ContentStore Protocol. The versioning engine never talks to a backend
directly, so switching between the local directory store and an IPFS
node requires no change to the engine.

Contract:
- ``put`` returns a CID that is a deterministic function of the bytes,
  and calling it twice with identical bytes returns the identical CID.
- ``get(put(b)) == b``.
- ``get`` of an unknown CID raises NotFound.
- ``cid_of`` computes the CID ``put`` would return without storing.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from nit.crypto.digest import compute_cid
from nit.errors import NotFound

logger = logging.getLogger(__name__)


@runtime_checkable
class ContentStore(Protocol):
    """Abstract contract for content-addressed storage backends."""

    def put(self, data: bytes) -> str:
        """Store bytes, returning their CID."""
        ...

    def get(self, cid: str) -> bytes:
        """Return the bytes addressed by cid."""
        ...

    def cid_of(self, data: bytes) -> str:
        """Return the CID of data without storing it."""
        ...


class InMemoryContentStore:
    """Process-local store. Useful for dry runs and tests."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}

    def put(self, data: bytes) -> str:
        cid = compute_cid(data)
        self._blobs[cid] = bytes(data)
        return cid

    def get(self, cid: str) -> bytes:
        try:
            return self._blobs[cid]
        except KeyError:
            raise NotFound(cid) from None

    def cid_of(self, data: bytes) -> str:
        return compute_cid(data)

    @property
    def count(self) -> int:
        return len(self._blobs)


class LocalContentStore:
    """Directory-backed store: one file per CID under ``root``.

    Writes go to a temporary file in the same directory and are renamed
    into place, so a reader never observes a partially written blob.
    """

    def __init__(self, root: Path) -> None:
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def put(self, data: bytes) -> str:
        cid = compute_cid(data)
        path = self._root / cid
        if path.exists():
            return cid

        fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=".put-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Stored %d bytes as %s", len(data), cid)
        return cid

    def get(self, cid: str) -> bytes:
        # CIDs are base32; anything else cannot name a stored blob.
        if not cid.isalnum():
            raise NotFound(cid)
        path = self._root / cid
        if not path.is_file():
            raise NotFound(cid)
        return path.read_bytes()

    def cid_of(self, data: bytes) -> str:
        return compute_cid(data)
