"""In-process catalog: an arena of records keyed by synthetic inode."""

import itertools
import threading
from collections import Counter
from dataclasses import replace
from typing import Dict, List, Tuple

from catalog.base import Catalog
from common.constants import ROOT_INODE
from common.exceptions import AlreadyExistsError, NotFoundError
from common.logging_config import get_logger
from common.types import FileRecord
from common.utils import now_ns

logger = get_logger(__name__)


class MemoryCatalog(Catalog):
    """
    Catalog held entirely in memory.

    Inode numbers are allocated per process and are not stable across
    remounts. One lock guards the arena and the name index; no method calls
    out of the catalog while holding it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[int, FileRecord] = {}
        self._names: Dict[Tuple[int, str], int] = {}
        self._next_inode = itertools.count(ROOT_INODE + 1)

    def lookup(self, parent: int, name: str) -> FileRecord:
        with self._lock:
            inode = self._names.get((parent, name))
            if inode is None:
                raise NotFoundError(f"No entry named {name!r} under inode {parent}")
            return replace(self._records[inode])

    def get(self, inode: int) -> FileRecord:
        with self._lock:
            record = self._records.get(inode)
            if record is None:
                raise NotFoundError(f"Unknown inode {inode}")
            return replace(record)

    def list_dir(self, parent: int) -> List[FileRecord]:
        with self._lock:
            return [replace(r) for r in self._records.values() if r.parent == parent]

    def create(self, parent: int, name: str, tag: str, mode: int, uid: int, gid: int) -> FileRecord:
        timestamp = now_ns()
        with self._lock:
            if (parent, name) in self._names:
                raise AlreadyExistsError(f"Entry {name!r} already exists under inode {parent}")

            inode = next(self._next_inode)
            record = FileRecord(
                inode=inode,
                parent=parent,
                name=name,
                tag=tag,
                uid=uid,
                gid=gid,
                mode=mode,
                atime=timestamp,
                mtime=timestamp,
                ctime=timestamp,
            )
            self._records[inode] = record
            self._names[(parent, name)] = inode

        logger.debug(f"Created record [inode={inode}, name={name}, tag={tag}]")
        return replace(record)

    def replace_content(self, inode: int, content_id: str, size: int, mtime_ns: int) -> str:
        with self._lock:
            record = self._records.get(inode)
            if record is None:
                raise NotFoundError(f"Unknown inode {inode}")

            previous = record.content_id
            record.content_id = content_id
            record.size = size
            record.mtime = mtime_ns
            record.ctime = mtime_ns
            return previous

    def touch(self, inode: int, atime_ns: int) -> None:
        with self._lock:
            record = self._records.get(inode)
            if record is None:
                raise NotFoundError(f"Unknown inode {inode}")
            record.atime = atime_ns

    def remove(self, inode: int) -> FileRecord:
        with self._lock:
            record = self._records.pop(inode, None)
            if record is None:
                raise NotFoundError(f"Unknown inode {inode}")
            del self._names[(record.parent, record.name)]

        logger.debug(f"Removed record [inode={inode}, name={record.name}]")
        return record

    def find_by_tag(self, tag: str) -> List[FileRecord]:
        with self._lock:
            return [replace(r) for r in self._records.values() if r.tag == tag]

    def tag_counts(self) -> Dict[str, int]:
        with self._lock:
            return dict(Counter(r.tag for r in self._records.values()))
