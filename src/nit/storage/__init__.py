"""Content-addressed storage backends."""

from nit.storage.content_store import ContentStore, InMemoryContentStore, LocalContentStore
from nit.storage.ipfs import IpfsContentStore

__all__ = ["ContentStore", "InMemoryContentStore", "IpfsContentStore", "LocalContentStore"]
