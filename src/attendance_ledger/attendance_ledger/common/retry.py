from __future__ import annotations

from typing import Callable, TypeVar

from ..core.exceptions import StorageError
from .logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def read_with_retry(fn: Callable[[], T]) -> T:
    """Run an idempotent read, retrying once on StorageError.

    Writes must never go through here: a failed write surfaces to the caller
    after its transaction rolled back.
    """
    try:
        return fn()
    except StorageError as exc:
        logger.warning("Read failed, retrying once: %s", exc)
        return fn()
