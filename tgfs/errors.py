"""Translation of domain errors into the runtime's errno signals."""

import errno
import functools
from typing import Callable, TypeVar

from common.exceptions import NotFoundError, TGFSException
from common.logging_config import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable)


def errno_for(exc: TGFSException) -> int:
    """
    Map a domain error to an errno value.

    NotFound becomes ENOENT; every other kind is a generic I/O failure.
    """
    if isinstance(exc, NotFoundError):
        return errno.ENOENT
    return errno.EIO


def to_os_error(exc: TGFSException) -> OSError:
    code = errno_for(exc)
    return OSError(code, f"{errno.errorcode[code]}: {exc}")


def fs_operation(func: F) -> F:
    """
    Decorate a node callback so domain errors surface as ``OSError``.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except TGFSException as e:
            if not isinstance(e, NotFoundError):
                logger.error(f"{func.__qualname__} failed: {e}")
            raise to_os_error(e) from e

    return wrapper
