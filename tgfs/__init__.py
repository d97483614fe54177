"""Filesystem node translator over a chat-bot content store."""

from tgfs.nodes import DirNode, FileNode, FileSystem, EntryInvalidator
from tgfs.service import build_filesystem
from tgfs.tag_groups import derive_tag

__all__ = [
    "FileSystem",
    "DirNode",
    "FileNode",
    "EntryInvalidator",
    "build_filesystem",
    "derive_tag",
]
