"""Custom exception classes shared by the catalog, store and node layers."""


class TGFSException(Exception):
    """
    Base exception class for all filesystem errors.
    """
    pass


class NotFoundError(TGFSException):
    """
    Raised when a catalog entry, mapping entry or stored object is missing.
    """
    pass


class AlreadyExistsError(TGFSException):
    """
    Raised when creating a name that already exists under the same parent.
    """
    pass


class InvalidNameError(TGFSException):
    """
    Raised when a file name is empty, too long or contains a separator.
    """
    pass


class PayloadTooLargeError(TGFSException):
    """
    Raised when a write exceeds the content store's object size limit.
    """
    pass


class StoreUnavailableError(TGFSException):
    """
    Raised when the content store is unreachable or rejects credentials.
    """
    pass


class PersistenceError(TGFSException):
    """
    Raised when a catalog or mapping registry write fails.
    """
    pass
