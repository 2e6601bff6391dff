"""Nit — provenance versioning for digital assets.

Each version of an asset's metadata (AssetTree) is stored content-addressed,
wrapped in a Commit signed by the author, and anchored in an append-only
registry keyed by the asset's own content identifier.
"""

__version__ = "0.1.0"
