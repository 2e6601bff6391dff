"""Append-only registries mapping assetCid to anchored Commit CIDs."""

from nit.registry.base import Receipt, Registry, RegistryEntry
from nit.registry.contract import ContractRegistry
from nit.registry.file_registry import FileRegistry

__all__ = ["ContractRegistry", "FileRegistry", "Receipt", "Registry", "RegistryEntry"]
