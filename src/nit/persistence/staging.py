"""Staging area — the single-slot workspace for an unanchored draft.

Layout under the workspace directory::

    .nit/working.json                 {"assetCid": "<cid>" | ""}
    .nit/<assetCid>/assetTree.json    staged AssetTree
    .nit/<assetCid>/commit.json       staged Commit draft

The slot holds at most one (assetCid, AssetTree, Commit draft) triple.
An empty assetCid in ``working.json`` is the Empty state.

Crash ordering: draft files are written (temp file + rename) before
``working.json`` is repointed, so an interrupted save leaves either the
previous slot or the new one, never a pointer to unwritten content.
Re-staging the asset already in the slot rewrites its files in place, so
the pointer is emptied first; an interrupted re-save leaves the slot
Empty rather than pairing a new AssetTree with an old Commit draft.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from nit.errors import ConfigMissing
from nit.models.asset_tree import AssetTree
from nit.models.commit import Commit

logger = logging.getLogger(__name__)

WORKING_DIR_NAME = ".nit"
EMPTY_SLOT = ""


@dataclass(frozen=True)
class StagedDraft:
    """The in-progress draft held by the staging slot."""
    asset_cid: str
    asset_tree: AssetTree
    commit: Commit


class StagingArea:
    """Persisted single-slot staging area rooted at a workspace directory."""

    def __init__(self, workspace: Path) -> None:
        self._dir = workspace / WORKING_DIR_NAME
        self._pointer = self._dir / "working.json"

    @property
    def directory(self) -> Path:
        return self._dir

    @property
    def is_initialized(self) -> bool:
        return self._pointer.exists()

    def require_initialized(self) -> None:
        """Raise ConfigMissing unless ``nit init`` has run for this workspace."""
        if not self.is_initialized:
            raise ConfigMissing(
                f"Workspace not initialized ({self._pointer} missing); run 'nit init'"
            )

    def init(self) -> None:
        """Create the working directory and start with an Empty slot."""
        if not self._dir.exists():
            logger.info("Create working dir %s", self._dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._set_pointer(EMPTY_SLOT)

    def current_asset_cid(self) -> str:
        """The staged assetCid, or "" when the slot is Empty."""
        self.require_initialized()
        data = json.loads(self._pointer.read_text(encoding="utf-8"))
        return data.get("assetCid") or EMPTY_SLOT

    def load(self) -> Optional[StagedDraft]:
        """Return the staged draft, or None if the slot is Empty."""
        asset_cid = self.current_asset_cid()
        if asset_cid == EMPTY_SLOT:
            return None
        draft_dir = self._draft_dir(asset_cid)
        tree_data = json.loads((draft_dir / "assetTree.json").read_text(encoding="utf-8"))
        commit_data = json.loads((draft_dir / "commit.json").read_text(encoding="utf-8"))
        return StagedDraft(
            asset_cid=asset_cid,
            asset_tree=AssetTree.from_dict(tree_data),
            commit=Commit.from_dict(commit_data),
        )

    def save(self, draft: StagedDraft) -> None:
        """Write the draft, then point the slot at it.

        Replaces whatever was staged before, including a draft of a
        different asset. Raises ConfigMissing if the workspace was never
        initialized and ValueError if the assetCid cannot name a draft
        directory.
        """
        previous = self.current_asset_cid()
        draft_dir = self._draft_dir(draft.asset_cid)
        if previous == draft.asset_cid:
            self._set_pointer(EMPTY_SLOT)
        elif previous != EMPTY_SLOT:
            logger.warning("Replacing unanchored draft of %s with %s", previous, draft.asset_cid)

        draft_dir.mkdir(parents=True, exist_ok=True)
        _atomic_write(draft_dir / "assetTree.json", draft.asset_tree.to_bytes())
        _atomic_write(draft_dir / "commit.json", draft.commit.to_bytes())
        self._set_pointer(draft.asset_cid)
        logger.info("Staged %s", draft.asset_cid)

    def clear(self) -> None:
        """Return the slot to Empty."""
        self._set_pointer(EMPTY_SLOT)

    def _draft_dir(self, asset_cid: str) -> Path:
        # CIDs are base32; anything else could escape .nit/
        if not asset_cid.isalnum():
            raise ValueError(f"Invalid assetCid for staging: {asset_cid!r}")
        return self._dir / asset_cid

    def _set_pointer(self, asset_cid: str) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        payload = json.dumps({"assetCid": asset_cid}, indent=2).encode("utf-8")
        _atomic_write(self._pointer, payload)


def _atomic_write(path: Path, data: bytes) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}-")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise
