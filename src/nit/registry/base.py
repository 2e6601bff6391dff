"""Registry contract — the append-only ledger of asset history.

A registry maps an asset's identity (its assetCid) to the ordered list
of Commit CIDs anchored for it. Appends are irrevocable and either land
or fail as a whole; the engine never retries them. Ledger order is
authoritative: ``query`` returns entries sorted by ledger sequence,
newest last, and an empty list means the asset was never registered.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class RegistryEntry:
    """One anchored Commit reference for an asset."""
    commit_cid: str
    sequence: tuple[int, int]  # (block number, log index) or equivalent
    tx_hash: Optional[str] = None


@dataclass(frozen=True)
class Receipt:
    """Proof that an append landed on the ledger."""
    asset_cid: str
    commit_cid: str
    tx_hash: str
    sequence: tuple[int, int]
    explorer_url: str = ""


@runtime_checkable
class Registry(Protocol):
    """Abstract contract for registry backends."""

    def append(self, asset_cid: str, commit_cid: str) -> Receipt:
        """Anchor commit_cid under asset_cid. Raises RegistryFailure."""
        ...

    def query(self, asset_cid: str) -> list[RegistryEntry]:
        """Return the asset's entries in ledger order, newest last."""
        ...

    def explorer_url(self, tx_hash: str) -> str:
        """Human-facing link for a transaction, or "" if there is none."""
        ...
