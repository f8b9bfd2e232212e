# app/ports.py

import time
from typing import Optional, Protocol

from .models import ExtractedFields, ReceiptRecord


class StoragePort(Protocol):
    def upload(self, image: bytes, filename: str, deadline: Optional[float] = None) -> str:
        """Stores the image and returns a public URL for it."""
        ...


class ExtractionPort(Protocol):
    def extract(self, image: bytes, deadline: Optional[float] = None) -> Optional[ExtractedFields]:
        ...


class ReceiptRepository(Protocol):
    def save(self, record: ReceiptRecord) -> ReceiptRecord:
        """Persists the record and returns a copy carrying id and timestamps."""
        ...


def remaining_timeout(deadline: Optional[float]) -> Optional[float]:
    """
    Converts an absolute time.monotonic() deadline into a per-call timeout.
    Returns None when there is no deadline; raises TimeoutError once it has passed.
    """
    if deadline is None:
        return None
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise TimeoutError("request deadline exceeded")
    return remaining
