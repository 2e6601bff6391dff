"""Commit — the signed envelope anchoring one AssetTree version.

A Commit is drafted when an asset is added and completed when it is
committed: at that point the staged AssetTree is final, so its CID,
sha256 and the author's signature over that sha256 can be filled in.

Invariant of a finalized Commit: ``asset_tree_sha256`` equals the sha256
of the bytes stored at ``asset_tree_cid``, and ``asset_tree_signature``
recovers to the author's address when verified against it.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from nit.crypto.digest import canonical_bytes


class ActionKind(str, enum.Enum):
    """Closed set of provenance actions. CUSTOM carries free text."""
    INITIAL_REGISTRATION = "initial-registration"
    UPDATE = "update"
    MINT_NFT = "mint-nft"
    INTEGRITY_UPDATE = "integrity-update"
    TRANSFER = "transfer"
    REVOKE = "revoke"
    CUSTOM = "custom"


# Older records prefix action names with "action-".
_LEGACY_PREFIX = "action-"


@dataclass(frozen=True)
class Action:
    """A provenance action tag: a known kind, or CUSTOM with its text."""
    kind: ActionKind
    text: str = ""

    @property
    def value(self) -> str:
        """Wire value of the action."""
        if self.kind == ActionKind.CUSTOM:
            return self.text
        return self.kind.value

    @staticmethod
    def parse(value: str) -> Action:
        """Parse a wire value. Unrecognized text becomes a CUSTOM action."""
        name = value.removeprefix(_LEGACY_PREFIX)
        try:
            kind = ActionKind(name)
        except ValueError:
            return Action(kind=ActionKind.CUSTOM, text=value)
        if kind == ActionKind.CUSTOM:
            return Action(kind=ActionKind.CUSTOM, text=value)
        return Action(kind=kind)


INITIAL_REGISTRATION = Action(ActionKind.INITIAL_REGISTRATION)
DEFAULT_COMMIT_ABSTRACT = "Initial registration."


@dataclass(frozen=True)
class Commit:
    """A Commit draft (``asset_tree_*`` unset) or a finalized Commit."""
    author: Any
    committer: Any
    provider: Any
    action: Action = INITIAL_REGISTRATION
    action_result: str = ""
    abstract: str = DEFAULT_COMMIT_ABSTRACT
    timestamp_created: Optional[int] = None
    asset_tree_cid: Optional[str] = None
    asset_tree_sha256: Optional[str] = None
    asset_tree_signature: Optional[str] = None

    @property
    def is_draft(self) -> bool:
        return (
            self.asset_tree_cid is None
            or self.asset_tree_sha256 is None
            or self.asset_tree_signature is None
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "assetTreeCid": self.asset_tree_cid,
            "assetTreeSha256": self.asset_tree_sha256,
            "assetTreeSignature": self.asset_tree_signature,
            "author": self.author,
            "committer": self.committer,
            "provider": self.provider,
            "action": self.action.value,
            "actionResult": self.action_result,
            "abstract": self.abstract,
            "timestampCreated": self.timestamp_created,
        }

    def to_bytes(self) -> bytes:
        return canonical_bytes(self.to_dict())

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Commit:
        action = data.get("action")
        timestamp = data.get("timestampCreated")
        return Commit(
            author=data.get("author"),
            committer=data.get("committer"),
            provider=data.get("provider"),
            action=Action.parse(action) if action else INITIAL_REGISTRATION,
            action_result=data.get("actionResult") or "",
            abstract=data.get("abstract") or "",
            timestamp_created=int(timestamp) if timestamp is not None else None,
            asset_tree_cid=data.get("assetTreeCid"),
            asset_tree_sha256=data.get("assetTreeSha256"),
            asset_tree_signature=data.get("assetTreeSignature"),
        )


@dataclass(frozen=True)
class CommitOverlay:
    """Fields a caller may supply at commit time. ``None`` = keep the draft's."""
    message: Optional[str] = None
    action: Optional[Action] = None
    action_result: Optional[str] = None


def create_commit_draft(author: Any, committer: Any, provider: Any) -> Commit:
    """Build the unsigned draft staged alongside a new AssetTree."""
    return Commit(author=author, committer=committer, provider=provider)


def apply_overlay(draft: Commit, overlay: CommitOverlay, timestamp: int) -> Commit:
    """Overlay commit-time fields and stamp the creation time."""
    changes: dict[str, Any] = {"timestamp_created": timestamp}
    if overlay.message is not None:
        changes["abstract"] = overlay.message
    if overlay.action is not None:
        changes["action"] = overlay.action
    if overlay.action_result is not None:
        changes["action_result"] = overlay.action_result
    return replace(draft, **changes)


def finalize_commit(
    draft: Commit,
    asset_tree_cid: str,
    asset_tree_sha256: str,
    asset_tree_signature: str,
) -> Commit:
    """Complete a draft with the anchored AssetTree's CID, hash and signature."""
    return replace(
        draft,
        asset_tree_cid=asset_tree_cid,
        asset_tree_sha256=asset_tree_sha256,
        asset_tree_signature=asset_tree_signature,
    )
