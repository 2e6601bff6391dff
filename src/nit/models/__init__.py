"""Nit data model — AssetTree, Commit, license settings."""

from nit.models.asset_tree import AssetTree, AssetTreeUpdates
from nit.models.commit import Action, ActionKind, Commit, CommitOverlay
from nit.models.license import LicenseSetting

__all__ = [
    "Action",
    "ActionKind",
    "AssetTree",
    "AssetTreeUpdates",
    "Commit",
    "CommitOverlay",
    "LicenseSetting",
]
