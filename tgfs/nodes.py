"""
Directory and file nodes implementing the filesystem-callback contract.

Nodes compose the metadata catalog, the content store and the mapping
registry. Content store calls are made with no catalog lock held; metadata
changes are committed afterwards in a single catalog call.
"""

import stat
from typing import List, Optional, Protocol

from catalog.base import Catalog
from common.constants import (
    DEFAULT_FILE_MODE,
    DIR_MODE,
    DT_REG,
    FILE_MAX_SIZE_BYTES,
    MAX_NAME_LENGTH,
    ROOT_INODE,
    TAG_GROUP_PREFIX,
)
from common.exceptions import (
    InvalidNameError,
    NotFoundError,
    PayloadTooLargeError,
    TGFSException,
)
from common.logging_config import get_logger
from common.types import Dirent, FileRecord, NodeAttr
from common.utils import now_ns
from contentstore.client import ContentStoreClient
from contentstore.mapping_registry import MappingRegistry
from tgfs.errors import fs_operation
from tgfs.tag_groups import TagGroups, derive_tag

logger = get_logger(__name__)


class EntryInvalidator(Protocol):
    """Runtime hook that drops a cached directory entry."""

    def invalidate_entry(self, parent_inode: int, name: str) -> None:
        ...


def validate_name(name: str) -> None:
    if not name or name in (".", ".."):
        raise InvalidNameError(f"Invalid file name {name!r}")
    if "/" in name or "\0" in name:
        raise InvalidNameError(f"File name {name!r} contains a separator")
    if len(name.encode("utf-8")) > MAX_NAME_LENGTH:
        raise InvalidNameError(f"File name longer than {MAX_NAME_LENGTH} bytes")


class FileSystem:
    """
    Root object handed to the filesystem runtime.

    Owns the collaborators and the content-bearing sequences shared by the
    nodes: whole-object write, full read and single-record deletion.
    """

    def __init__(
        self,
        catalog: Catalog,
        store: ContentStoreClient,
        registry: MappingRegistry,
        invalidator: Optional[EntryInvalidator] = None,
    ):
        self.catalog = catalog
        self.store = store
        self.registry = registry
        self.invalidator = invalidator
        self.tag_groups = TagGroups(catalog, self.delete_record)

    def root(self) -> "DirNode":
        return DirNode(self, ROOT_INODE)

    def close(self) -> None:
        self.store.close()

    def read_content(self, inode: int) -> bytes:
        record = self.catalog.get(inode)
        data = self.store.download(record.content_id) if record.has_content else b""
        self.catalog.touch(inode, now_ns())
        return data

    def write_content(self, inode: int, data: bytes) -> int:
        """
        Replace a file's whole content.

        The new object is uploaded and registered before the catalog is
        pointed at it, so a failure at any step leaves the record on its
        previous content. The replaced object is cleaned up afterwards.

        Returns:
            Number of bytes written
        """
        if len(data) > FILE_MAX_SIZE_BYTES:
            raise PayloadTooLargeError(
                f"Write of {len(data)} bytes exceeds the {FILE_MAX_SIZE_BYTES} byte limit"
            )

        record = self.catalog.get(inode)
        content_id, message_id = self.store.upload(record.name, data, record.tag)

        try:
            self.registry.save(content_id, message_id)
        except TGFSException:
            logger.error(f"Mapping save failed, discarding upload [inode={inode}, content_id={content_id}]")
            self._discard_content(content_id, message_id)
            raise

        try:
            previous = self.catalog.replace_content(inode, content_id, len(data), now_ns())
        except TGFSException:
            logger.error(f"Catalog commit failed, discarding upload [inode={inode}, content_id={content_id}]")
            self._discard_content(content_id, message_id)
            raise

        if previous and previous != content_id:
            self._discard_content(previous)

        logger.info(f"Wrote {record.name} ({len(data)} bytes) [inode={inode}, content_id={content_id}]")
        return len(data)

    def delete_record(self, record: FileRecord) -> None:
        """
        Delete a record with its stored object and mapping.

        The stored object goes first; if the store is unavailable the record
        stays intact. An object that is already gone does not block removal.
        Content committed after ``record`` was read is discarded as well.
        """
        if record.has_content:
            try:
                self.store.delete(record.content_id)
            except NotFoundError as e:
                logger.warning(f"Stored object already gone [inode={record.inode}]: {e}")
            self.registry.remove(record.content_id)

        removed = self.catalog.remove(record.inode)
        if removed.has_content and removed.content_id != record.content_id:
            self._discard_content(removed.content_id)

        self._invalidate(record.parent, record.name)
        logger.info(f"Removed {record.name} [inode={record.inode}]")

    def _discard_content(self, content_id: str, message_id: Optional[int] = None) -> None:
        try:
            if message_id is None:
                self.store.delete(content_id)
            else:
                self.store.discard(content_id, message_id)
        except TGFSException as e:
            logger.warning(f"Could not delete stored object [content_id={content_id}]: {e}")

        try:
            self.registry.remove(content_id)
        except TGFSException as e:
            logger.warning(f"Could not remove mapping [content_id={content_id}]: {e}")

    def _invalidate(self, parent_inode: int, name: str) -> None:
        if self.invalidator is None:
            return
        try:
            self.invalidator.invalidate_entry(parent_inode, name)
        except OSError as e:
            logger.warning(f"Entry invalidation failed [parent={parent_inode}, name={name}]: {e}")


class DirNode:
    """The mounted directory."""

    def __init__(self, fs: FileSystem, inode: int = ROOT_INODE):
        self.fs = fs
        self.inode = inode

    def attr(self) -> NodeAttr:
        return NodeAttr(inode=self.inode, mode=stat.S_IFDIR | DIR_MODE, nlink=2)

    @fs_operation
    def lookup(self, name: str) -> "FileNode":
        record = self.fs.catalog.lookup(self.inode, name)
        return FileNode(self.fs, record.inode)

    @fs_operation
    def read_dir_all(self) -> List[Dirent]:
        return [
            Dirent(inode=record.inode, name=record.name, type=DT_REG)
            for record in self.fs.catalog.list_dir(self.inode)
        ]

    @fs_operation
    def create(self, name: str, mode: int, uid: int, gid: int) -> "FileNode":
        """
        Create an empty file. An existing name is rejected, never overwritten.
        """
        validate_name(name)
        file_mode = stat.S_IFREG | (stat.S_IMODE(mode) or DEFAULT_FILE_MODE)
        record = self.fs.catalog.create(self.inode, name, derive_tag(name), file_mode, uid, gid)
        logger.info(f"Created {name} [inode={record.inode}, tag={record.tag}]")
        return FileNode(self.fs, record.inode)

    @fs_operation
    def remove(self, name: str) -> None:
        """
        Remove a file, or every file of a tag group when ``name`` is
        ``#<tag>`` and no file has that exact name.
        """
        try:
            record = self.fs.catalog.lookup(self.inode, name)
        except NotFoundError:
            if name.startswith(TAG_GROUP_PREFIX) and len(name) > len(TAG_GROUP_PREFIX):
                self.fs.tag_groups.delete(name[len(TAG_GROUP_PREFIX):])
                return
            raise

        self.fs.delete_record(record)


class FileNode:
    """A file in the mounted directory, addressed by inode."""

    def __init__(self, fs: FileSystem, inode: int):
        self.fs = fs
        self.inode = inode

    @fs_operation
    def attr(self) -> NodeAttr:
        record = self.fs.catalog.get(self.inode)
        return NodeAttr(
            inode=record.inode,
            mode=record.mode,
            size=record.size,
            uid=record.uid,
            gid=record.gid,
            atime=record.atime,
            mtime=record.mtime,
            ctime=record.ctime,
            rdev=record.rdev,
        )

    @fs_operation
    def read(self, offset: int, size: int) -> bytes:
        """
        Return ``size`` bytes from ``offset``; short or empty past the end.
        """
        data = self.fs.read_content(self.inode)
        offset = max(offset, 0)
        if offset >= len(data) or size <= 0:
            return b""
        return data[offset:offset + size]

    @fs_operation
    def read_all(self) -> bytes:
        return self.fs.read_content(self.inode)

    @fs_operation
    def write(self, data: bytes) -> int:
        return self.fs.write_content(self.inode, bytes(data))
