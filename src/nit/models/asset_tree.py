"""AssetTree — the versioned metadata snapshot of one digital asset.

``asset_cid`` is the CID of the original asset bytes and is the asset's
permanent identity: every version of the tree carries the same value.
``mimetype`` and ``birthtime`` are fixed at first registration too. All
other fields may change from one version to the next.

On the wire an AssetTree is a camelCase JSON object; its canonical bytes
are what gets stored in the content store and hashed into the Commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from nit.crypto.digest import canonical_bytes

logger = logging.getLogger(__name__)

WIRE_KEYS = frozenset({
    "assetCid", "mimetype", "birthtime", "author", "license",
    "abstract", "nftRecord", "integrityCid",
})


@dataclass(frozen=True)
class AssetTree:
    """A single immutable AssetTree version."""
    asset_cid: str
    mimetype: Optional[str]
    birthtime: int
    author: Any
    license: dict[str, Any] = field(default_factory=dict)
    abstract: str = ""
    nft_record: Optional[str] = None
    integrity_cid: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "assetCid": self.asset_cid,
            "mimetype": self.mimetype,
            "birthtime": self.birthtime,
            "author": self.author,
            "license": self.license,
            "abstract": self.abstract,
            "nftRecord": self.nft_record,
            "integrityCid": self.integrity_cid,
        }

    def to_bytes(self) -> bytes:
        """Canonical serialized form (what is stored and hashed)."""
        return canonical_bytes(self.to_dict())

    @staticmethod
    def from_dict(data: dict[str, Any]) -> AssetTree:
        """Parse the wire form. Raises ValueError if assetCid is missing.

        Fields outside the AssetTree schema are not carried into the next
        version; they are logged as a warning.
        """
        asset_cid = data.get("assetCid")
        if not asset_cid:
            raise ValueError("AssetTree is missing assetCid")
        unknown = sorted(set(data) - WIRE_KEYS)
        if unknown:
            logger.warning(
                "AssetTree %s: dropping unsupported field(s) %s", asset_cid, ", ".join(unknown),
            )
        return AssetTree(
            asset_cid=asset_cid,
            mimetype=data.get("mimetype"),
            birthtime=int(data.get("birthtime") or 0),
            author=data.get("author"),
            license=data.get("license") or {},
            abstract=data.get("abstract") or "",
            nft_record=data.get("nftRecord"),
            integrity_cid=data.get("integrityCid"),
        )


@dataclass(frozen=True)
class AssetTreeUpdates:
    """Sparse field updates. ``None`` means "not supplied"."""
    abstract: Optional[str] = None
    nft_record: Optional[str] = None
    integrity_cid: Optional[str] = None
    license: Optional[dict[str, Any]] = None

    def supplied(self) -> dict[str, Any]:
        """Return only the fields that were explicitly supplied."""
        values = {
            "abstract": self.abstract,
            "nft_record": self.nft_record,
            "integrity_cid": self.integrity_cid,
            "license": self.license,
        }
        return {k: v for k, v in values.items() if v is not None}


def create_initial_asset_tree(
    asset_cid: str,
    mimetype: Optional[str],
    birthtime: int,
    author: Any,
    license: dict[str, Any],
) -> AssetTree:
    """Build the first AssetTree of an asset that has no history."""
    return AssetTree(
        asset_cid=asset_cid,
        mimetype=mimetype,
        birthtime=birthtime,
        author=author,
        license=dict(license),
        abstract="",
    )


def update_asset_tree(base: AssetTree, updates: AssetTreeUpdates) -> AssetTree:
    """Overlay supplied fields onto base, returning a new version.

    ``asset_cid``, ``mimetype`` and ``birthtime`` are not updatable, so they
    always carry over from base. The base value is left untouched.
    """
    return replace(base, **updates.supplied())
