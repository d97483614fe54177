"""Catalog interface shared by the in-memory and SQLite realizations."""

from abc import ABC, abstractmethod
from typing import Dict, List

from common.types import FileRecord


class Catalog(ABC):
    """
    Directory structure and per-file attributes, keyed by synthetic inode.

    Every method is atomic with respect to the others. Implementations own
    the uniqueness of (parent, name) and return detached copies of records.
    """

    @abstractmethod
    def lookup(self, parent: int, name: str) -> FileRecord:
        """
        Raises:
            NotFoundError: If no record matches (parent, name)
        """

    @abstractmethod
    def get(self, inode: int) -> FileRecord:
        """
        Raises:
            NotFoundError: If the inode is unknown
        """

    @abstractmethod
    def list_dir(self, parent: int) -> List[FileRecord]:
        """Every record whose parent is ``parent``, in no particular order."""

    @abstractmethod
    def create(self, parent: int, name: str, tag: str, mode: int, uid: int, gid: int) -> FileRecord:
        """
        Allocate a record with empty content and zero size.

        Raises:
            AlreadyExistsError: If (parent, name) is taken
        """

    @abstractmethod
    def replace_content(self, inode: int, content_id: str, size: int, mtime_ns: int) -> str:
        """
        Point a record at newly uploaded content.

        Returns:
            The previous content identifier ("" if there was none)

        Raises:
            NotFoundError: If the record was removed in the meantime
        """

    @abstractmethod
    def touch(self, inode: int, atime_ns: int) -> None:
        """
        Record an access time.

        Raises:
            NotFoundError: If the inode is unknown
        """

    @abstractmethod
    def remove(self, inode: int) -> FileRecord:
        """
        Delete a record and its directory entry.

        Returns:
            The record as it was just before removal

        Raises:
            NotFoundError: If the inode is unknown
        """

    @abstractmethod
    def find_by_tag(self, tag: str) -> List[FileRecord]:
        """Every record carrying ``tag``."""

    @abstractmethod
    def tag_counts(self) -> Dict[str, int]:
        """Number of records per tag."""
