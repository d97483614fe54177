"""Abstract content store: named bytes in, identifiers out."""

from abc import ABC, abstractmethod
from typing import Tuple


class ContentStoreClient(ABC):
    """
    Store named bytes under a tag, fetch them by content identifier and
    delete them by content identifier.
    """

    @abstractmethod
    def upload(self, name: str, data: bytes, tag: str) -> Tuple[str, int]:
        """
        Upload a complete object.

        Returns:
            Tuple of (content_id, message_id)

        Raises:
            StoreUnavailableError: On transport or authentication failure
        """

    @abstractmethod
    def download(self, content_id: str) -> bytes:
        """
        Fetch a complete object.

        Raises:
            NotFoundError: If the object no longer exists
            StoreUnavailableError: On transport or authentication failure
        """

    @abstractmethod
    def delete(self, content_id: str) -> None:
        """
        Delete an object.

        Raises:
            NotFoundError: If the object or its mapping does not exist
            StoreUnavailableError: On transport or authentication failure
        """

    @abstractmethod
    def discard(self, content_id: str, message_id: int) -> None:
        """
        Delete an object by the identifiers its upload returned, without
        consulting the mapping registry.

        Raises:
            NotFoundError: If the object does not exist
            StoreUnavailableError: On transport or authentication failure
        """

    def close(self) -> None:
        """Release transport resources."""
