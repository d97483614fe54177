"""Pass-through content store keeping blobs as files in a local directory."""

import itertools
import os
import tempfile
import threading
from pathlib import Path
from typing import List, Tuple, Union

from common.exceptions import NotFoundError, StoreUnavailableError
from common.logging_config import get_logger
from common.utils import generate_uuid
from contentstore.client import ContentStoreClient

logger = get_logger(__name__)

BLOB_SUFFIX = ".blob"


class LocalContentStore(ContentStoreClient):
    """
    Content store writing each object to ``<root>/<content_id>.blob``.

    Message identifiers come from a counter seeded with the number of blobs
    already in the directory; this store addresses blobs by content
    identifier alone.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._sequence = itertools.count(len(self.list_content_ids()) + 1)
        self._sequence_lock = threading.Lock()

    def get_blob_path(self, content_id: str) -> Path:
        """
        Get file path for a blob.

        Args:
            content_id: Content identifier of the blob

        Returns:
            Path object for blob file
        """
        if not content_id or os.sep in content_id or content_id.startswith("."):
            raise NotFoundError(f"Invalid content identifier {content_id!r}")
        return self.root / f"{content_id}{BLOB_SUFFIX}"

    def upload(self, name: str, data: bytes, tag: str) -> Tuple[str, int]:
        content_id = generate_uuid()
        filepath = self.get_blob_path(content_id)

        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=str(self.root), suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, filepath)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            logger.error(f"Failed to write blob for {name}: {e}", exc_info=True)
            raise StoreUnavailableError(f"Cannot write blob for {name}: {e}") from e

        with self._sequence_lock:
            message_id = next(self._sequence)

        logger.debug(f"Stored {name} ({len(data)} bytes) [content_id={content_id}, tag={tag}]")
        return content_id, message_id

    def download(self, content_id: str) -> bytes:
        filepath = self.get_blob_path(content_id)
        try:
            return filepath.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"No blob for content {content_id}") from e
        except OSError as e:
            raise StoreUnavailableError(f"Cannot read blob {content_id}: {e}") from e

    def delete(self, content_id: str) -> None:
        filepath = self.get_blob_path(content_id)
        try:
            filepath.unlink()
        except FileNotFoundError as e:
            raise NotFoundError(f"No blob for content {content_id}") from e
        except OSError as e:
            raise StoreUnavailableError(f"Cannot delete blob {content_id}: {e}") from e
        logger.debug(f"Deleted blob [content_id={content_id}]")

    def discard(self, content_id: str, message_id: int) -> None:
        self.delete(content_id)

    def list_content_ids(self) -> List[str]:
        """
        List all content identifiers present in the store directory.

        Returns:
            List of content identifiers (without the blob suffix)
        """
        return [path.stem for path in self.root.glob(f"*{BLOB_SUFFIX}")]
