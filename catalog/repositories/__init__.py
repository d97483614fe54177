"""Repository layer for catalog data access."""

from catalog.repositories.inode_repository import InodeRepository
from catalog.repositories.content_repository import ContentRepository
from catalog.repositories.mapping_repository import MappingRepository

__all__ = [
    "InodeRepository",
    "ContentRepository",
    "MappingRepository",
]
