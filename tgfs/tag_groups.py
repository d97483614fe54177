"""Tag derivation and bulk deletion of files sharing a tag."""

from typing import Callable, Dict, List, Optional

from catalog.base import Catalog
from common.constants import TAG_SEPARATOR
from common.exceptions import NotFoundError, TGFSException
from common.logging_config import get_logger
from common.types import FileRecord

logger = get_logger(__name__)


def derive_tag(name: str) -> str:
    """
    Derive a file's group tag from its name.

    The tag is the part before the first ``_`` with ``.`` and ``-``
    replaced by ``_``, so ``report-2024_01.pdf`` belongs to ``report_2024``.

    Args:
        name: File name

    Returns:
        Tag string
    """
    head = name.split(TAG_SEPARATOR, 1)[0]
    return head.replace(".", "_").replace("-", "_")


class TagGroups:
    """
    Operations over all records that share a tag.

    ``delete_record`` is the single-record deletion sequence of the
    filesystem (content, mapping, catalog entry, cache invalidation).
    """

    def __init__(self, catalog: Catalog, delete_record: Callable[[FileRecord], None]):
        self.catalog = catalog
        self._delete_record = delete_record

    def counts(self) -> Dict[str, int]:
        """
        Number of files in each tag group.

        Returns:
            Mapping of tag to file count
        """
        return self.catalog.tag_counts()

    def delete(self, tag: str) -> List[FileRecord]:
        """
        Delete every record whose tag equals ``tag``.

        Not transactional across records. Every record is attempted; if any
        deletion fails, the first error is raised once all have been tried.

        Args:
            tag: Tag to delete

        Returns:
            Records that were deleted

        Raises:
            NotFoundError: If no record carries the tag
            TGFSException: The first per-record failure, after the loop
        """
        records = self.catalog.find_by_tag(tag)
        if not records:
            raise NotFoundError(f"No files tagged {tag!r}")

        logger.info(f"Deleting tag group {tag!r} ({len(records)} files)")

        deleted = []
        first_error: Optional[TGFSException] = None

        for record in records:
            try:
                self._delete_record(record)
                deleted.append(record)
            except TGFSException as e:
                logger.error(f"Failed to delete {record.name} from tag group {tag!r}: {e}")
                if first_error is None:
                    first_error = e

        logger.info(f"Tag group {tag!r}: deleted {len(deleted)}/{len(records)} files")

        if first_error is not None:
            raise first_error
        return deleted
