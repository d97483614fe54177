"""Shared data type definitions (FileRecord, MappingEntry, NodeAttr, Dirent)."""

from dataclasses import dataclass


@dataclass
class FileRecord:
    """
    Metadata for one stored object.

    Timestamps are nanoseconds since the epoch. ``content_id`` stays empty
    until the first upload has been registered.
    """
    inode: int
    parent: int
    name: str
    tag: str
    uid: int = 0
    gid: int = 0
    mode: int = 0
    size: int = 0
    atime: int = 0
    mtime: int = 0
    ctime: int = 0
    rdev: int = 0
    content_id: str = ""

    @property
    def has_content(self) -> bool:
        return bool(self.content_id)


@dataclass(frozen=True)
class MappingEntry:
    """
    Association between a content identifier and its carrying message.
    """
    content_id: str
    message_id: int


@dataclass(frozen=True)
class NodeAttr:
    """
    Attributes reported to the filesystem runtime for a node.
    """
    inode: int
    mode: int
    size: int = 0
    nlink: int = 1
    uid: int = 0
    gid: int = 0
    atime: int = 0
    mtime: int = 0
    ctime: int = 0
    rdev: int = 0


@dataclass(frozen=True)
class Dirent:
    """
    Directory entry returned by a listing.
    """
    inode: int
    name: str
    type: int
