"""Versioning engine — pull, add, commit, status, log and verify.

This is the only component with cross-cutting logic. Everything it
touches is behind an interface: a ContentStore for AssetTrees and
Commits, a Registry for anchored history, an EthereumSigner for the
author's signature, and the StagingArea passed in by the caller for the
single unanchored draft.

Lifecycle of one version:

    bytes --put--> assetCid --query--> latest Commit --get--> AssetTree
          (hash-verified)  --merge updates--> staged draft
    commit: put(AssetTree) + sha256 + sign + put(Commit) + append
          --> staging slot cleared

Integrity policy: the AssetTree hash is verified on every pull and a
mismatch aborts. Signatures are checked only on demand (``verify`` and
``verify_commit``); a hash-consistent history is accepted by ``add``
without signature checks.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from nit.config import NitConfig, write_config_template
from nit.crypto.digest import ASSET_CID_MOCK, sha256_hex
from nit.crypto.signing import EthereumSigner, recover_address
from nit.engine.sources import AssetSource
from nit.errors import ConfigMissing, HashMismatch, InvalidSignature, NitError, NoStagedAsset
from nit.models.asset_tree import (
    AssetTree,
    AssetTreeUpdates,
    create_initial_asset_tree,
    update_asset_tree,
)
from nit.models.commit import (
    Commit,
    CommitOverlay,
    apply_overlay,
    create_commit_draft,
    finalize_commit,
)
from nit.persistence.staging import StagedDraft, StagingArea
from nit.registry.base import Receipt, Registry, RegistryEntry
from nit.storage.content_store import ContentStore

logger = logging.getLogger(__name__)

DEFAULT_LOG_WORKERS = 4


@dataclass(frozen=True)
class PulledVersion:
    """The latest verified version of an asset, as found in history."""
    entry: RegistryEntry
    commit: Commit
    asset_tree: AssetTree


@dataclass(frozen=True)
class CommitResult:
    """Outcome of a commit. ``receipt`` is None for a dry run."""
    asset_cid: str
    commit: Commit
    commit_cid: str
    receipt: Optional[Receipt] = None

    @property
    def dry_run(self) -> bool:
        return self.receipt is None


@dataclass(frozen=True)
class LogEntry:
    """One anchored Commit of an asset, in ledger order."""
    entry: RegistryEntry
    commit: Commit
    explorer_url: str = ""


def _utc_now_seconds() -> int:
    return int(datetime.now(timezone.utc).timestamp())


def init_workspace(workspace: StagingArea, config_path: Optional[Path] = None) -> bool:
    """Create the config file if absent and reset the staging slot to Empty.

    Returns True if a config file was created. An existing config is
    left untouched.
    """
    created = write_config_template(config_path)
    workspace.init()
    return created


class VersioningEngine:
    """Orchestrates asset versioning over pluggable backends.

    Usage:
        engine = VersioningEngine(store, registry, config, signer=signer)
        workspace = StagingArea(Path.cwd())

        engine.add(workspace, source, AssetTreeUpdates(abstract="first"))
        result = engine.commit(workspace, CommitOverlay(message="first"))
        history = engine.log(result.asset_cid)
    """

    def __init__(
        self,
        store: ContentStore,
        registry: Registry,
        config: NitConfig,
        signer: Optional[EthereumSigner] = None,
        clock: Callable[[], int] = _utc_now_seconds,
        log_workers: int = DEFAULT_LOG_WORKERS,
    ) -> None:
        self._store = store
        self._registry = registry
        self._config = config
        self._signer = signer
        self._clock = clock
        self._log_workers = log_workers

    # ------------------------------------------------------------------
    # Reconstruction
    # ------------------------------------------------------------------

    def asset_cid_of(self, data: bytes, mockup: bool = False) -> str:
        """Register the asset bytes and return their CID.

        In mock mode the fixed placeholder is returned and the content
        store is not touched.
        """
        if mockup:
            logger.info("Using mockup asset CID")
            return ASSET_CID_MOCK
        return self._store.put(data)

    def pull(self, asset_cid: str) -> Optional[PulledVersion]:
        """Fetch and hash-verify the latest version of an asset.

        Returns None if the registry has no history for asset_cid.
        Raises HashMismatch if the stored AssetTree does not match the
        hash recorded in its Commit.
        """
        entries = self._registry.query(asset_cid)
        if not entries:
            logger.info("No history for %s (initial registration)", asset_cid)
            return None

        latest = entries[-1]
        commit = self.fetch_commit(latest.commit_cid)
        if commit.asset_tree_cid is None or commit.asset_tree_sha256 is None:
            raise NitError(f"Anchored commit {latest.commit_cid} has no AssetTree reference")

        tree_bytes = self._store.get(commit.asset_tree_cid)
        actual = sha256_hex(tree_bytes)
        if actual != commit.asset_tree_sha256:
            raise HashMismatch(commit.asset_tree_cid, commit.asset_tree_sha256, actual)

        asset_tree = AssetTree.from_dict(json.loads(tree_bytes))
        logger.info(
            "Pulled %s: commit %s (%d version(s) in history)",
            asset_cid, latest.commit_cid, len(entries),
        )
        return PulledVersion(entry=latest, commit=commit, asset_tree=asset_tree)

    def fetch_commit(self, commit_cid: str) -> Commit:
        return Commit.from_dict(json.loads(self._store.get(commit_cid)))

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    def add(
        self,
        workspace: StagingArea,
        source: AssetSource,
        updates: AssetTreeUpdates = AssetTreeUpdates(),
        mockup: bool = False,
    ) -> StagedDraft:
        """Stage a new version of the asset in ``source``.

        Starts from the latest verified version in history, or a fresh
        AssetTree built from the source on first registration. The
        configured license always replaces the tree's license. Whatever
        was staged before is replaced.
        """
        workspace.require_initialized()
        asset_cid = self.asset_cid_of(source.data, mockup=mockup)
        pulled = self.pull(asset_cid)

        if pulled is None:
            base = create_initial_asset_tree(
                asset_cid=asset_cid,
                mimetype=source.mimetype,
                birthtime=source.birthtime,
                author=self._config.author,
                license=self._config.license.resolve(),
            )
        else:
            base = pulled.asset_tree

        merged = AssetTreeUpdates(
            abstract=updates.abstract,
            nft_record=updates.nft_record,
            integrity_cid=updates.integrity_cid,
            license=self._config.license.resolve(),
        )
        asset_tree = update_asset_tree(base, merged)
        return self._stage(workspace, asset_tree)

    def add_tree(self, workspace: StagingArea, asset_tree: AssetTree) -> StagedDraft:
        """Stage a caller-supplied AssetTree as the next version of its asset."""
        workspace.require_initialized()
        asset_tree = update_asset_tree(
            asset_tree, AssetTreeUpdates(license=self._config.license.resolve()),
        )
        return self._stage(workspace, asset_tree)

    def status(self, workspace: StagingArea) -> Optional[StagedDraft]:
        """Return the staged draft, or None if nothing is staged."""
        return workspace.load()

    def discard_staged(self, workspace: StagingArea) -> Optional[str]:
        """Empty the staging slot without anchoring. Returns the discarded assetCid."""
        draft = workspace.load()
        workspace.clear()
        if draft is None:
            return None
        logger.info("Discarded staged draft of %s", draft.asset_cid)
        return draft.asset_cid

    def _stage(self, workspace: StagingArea, asset_tree: AssetTree) -> StagedDraft:
        draft = StagedDraft(
            asset_cid=asset_tree.asset_cid,
            asset_tree=asset_tree,
            commit=create_commit_draft(
                author=self._config.author,
                committer=self._config.committer,
                provider=self._config.provider,
            ),
        )
        workspace.save(draft)
        return draft

    # ------------------------------------------------------------------
    # Anchoring
    # ------------------------------------------------------------------

    def commit(
        self,
        workspace: StagingArea,
        overlay: CommitOverlay = CommitOverlay(),
        dry_run: bool = False,
        mockup: bool = False,
    ) -> CommitResult:
        """Sign the staged version and anchor it in the registry.

        A dry run computes the would-be Commit and its CID without
        storing anything or touching the registry, and keeps the draft
        staged. Otherwise the AssetTree and Commit are stored, the Commit
        CID is appended to the registry, and the slot is cleared.
        Registry failures propagate and leave the draft staged.
        """
        draft = workspace.load()
        if draft is None:
            raise NoStagedAsset()
        signer = self._require_signer()

        tree_bytes = draft.asset_tree.to_bytes()
        tree_sha256 = sha256_hex(tree_bytes)
        signature = signer.sign(tree_sha256)

        prepared = apply_overlay(draft.commit, overlay, timestamp=self._clock())
        anchor_cid = ASSET_CID_MOCK if mockup else draft.asset_cid

        if dry_run:
            commit = finalize_commit(
                prepared, self._store.cid_of(tree_bytes), tree_sha256, signature,
            )
            commit_cid = self._store.cid_of(commit.to_bytes())
            logger.info("Dry run: %s would be anchored under %s", commit_cid, anchor_cid)
            return CommitResult(asset_cid=anchor_cid, commit=commit, commit_cid=commit_cid)

        tree_cid = self._store.put(tree_bytes)
        commit = finalize_commit(prepared, tree_cid, tree_sha256, signature)
        commit_cid = self._store.put(commit.to_bytes())

        logger.info("Committing %s under %s", commit_cid, anchor_cid)
        receipt = self._registry.append(anchor_cid, commit_cid)
        workspace.clear()
        return CommitResult(
            asset_cid=anchor_cid, commit=commit, commit_cid=commit_cid, receipt=receipt,
        )

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def log(self, asset_cid: str) -> list[LogEntry]:
        """Return every anchored Commit of an asset in ledger order.

        Commits are fetched concurrently; any fetch failure aborts.
        """
        entries = self._registry.query(asset_cid)
        if not entries:
            return []

        with ThreadPoolExecutor(max_workers=self._log_workers) as pool:
            commits = list(pool.map(lambda e: self.fetch_commit(e.commit_cid), entries))

        return [
            LogEntry(
                entry=entry,
                commit=commit,
                explorer_url=self._registry.explorer_url(entry.tx_hash) if entry.tx_hash else "",
            )
            for entry, commit in zip(entries, commits)
        ]

    def verify(self, digest: str, signature: str) -> str:
        """Recover the signer address of a signed integrity hash."""
        return recover_address(digest, signature)

    def verify_commit(self, commit: Commit, trusted_author: Optional[str] = None) -> str:
        """Check a Commit's signature; optionally require a trusted signer.

        Returns the recovered address. Raises InvalidSignature if the
        Commit is unsigned, recovery fails, or the signer is not
        ``trusted_author``.
        """
        if commit.asset_tree_sha256 is None or commit.asset_tree_signature is None:
            raise InvalidSignature("Commit is not signed")
        address = recover_address(commit.asset_tree_sha256, commit.asset_tree_signature)
        if trusted_author is not None and address.lower() != trusted_author.lower():
            raise InvalidSignature(
                f"Commit signed by {address}, expected {trusted_author}"
            )
        return address

    def put_file(self, path: Path) -> str:
        """Store an arbitrary file in the content store and return its CID."""
        cid = self._store.put(path.read_bytes())
        logger.info("Stored %s as %s", path, cid)
        return cid

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require_signer(self) -> EthereumSigner:
        if self._signer is None:
            raise ConfigMissing("No signing key configured (set NIT_PRIVATE_KEY or blockchain.privateKey)")
        return self._signer

    @property
    def signer_address(self) -> Optional[str]:
        return self._signer.address if self._signer is not None else None

    @property
    def store(self) -> ContentStore:
        return self._store
