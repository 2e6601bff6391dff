"""Versioning engine and asset intake."""

from nit.engine.sources import AssetSource, read_asset_source
from nit.engine.versioning import (
    CommitResult,
    LogEntry,
    PulledVersion,
    VersioningEngine,
    init_workspace,
)

__all__ = [
    "AssetSource",
    "CommitResult",
    "LogEntry",
    "PulledVersion",
    "VersioningEngine",
    "init_workspace",
    "read_asset_source",
]
