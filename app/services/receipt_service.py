# app/services/receipt_service.py

import logging
from typing import BinaryIO, Optional, Union

from ..errors import (
    DateError,
    DateResolutionFailed,
    ExtractionFailed,
    PersistenceFailed,
    StorageError,
    UploadFailed,
)
from ..models import ReceiptRecord
from ..ports import ExtractionPort, ReceiptRepository, StoragePort
from .dates import resolve_date

logger = logging.getLogger(__name__)


def _buffer_image(image: Union[bytes, bytearray, BinaryIO]) -> bytes:
    # Storage and extraction both read the image, so it is read into memory once.
    if isinstance(image, (bytes, bytearray)):
        return bytes(image)
    if hasattr(image, "seek"):
        image.seek(0)
    return image.read()


class ReceiptService:
    """
    Runs the receipt ingestion workflow:
    upload image -> extract fields -> resolve date -> build record -> save.

    Every stage runs once, in order. The first failure is raised as a stage
    error wrapping its cause; earlier stages are not undone, so an image that
    was uploaded stays in storage when a later stage fails.
    """

    def __init__(self, repository: ReceiptRepository, extractor: ExtractionPort, storage: StoragePort):
        self.repository = repository
        self.extractor = extractor
        self.storage = storage

    def create_receipt(
        self,
        date: str,
        payer: str,
        payment_method: str,
        image: Union[bytes, bytearray, BinaryIO],
        filename: str,
        deadline: Optional[float] = None,
    ) -> ReceiptRecord:
        image_bytes = _buffer_image(image)

        # 1. Upload
        try:
            image_url = self.storage.upload(image_bytes, filename, deadline=deadline)
        except Exception as e:
            logger.warning("Image upload failed for %s: %s", filename, e)
            raise UploadFailed(e) from e
        if not image_url:
            logger.warning("Storage returned no image reference for %s", filename)
            raise UploadFailed(StorageError("storage returned an empty image reference"))
        logger.info("Image stored at %s", image_url)

        # 2. Extract
        try:
            extracted = self.extractor.extract(image_bytes, deadline=deadline)
        except Exception as e:
            logger.warning("Field extraction failed for %s: %s", image_url, e)
            raise ExtractionFailed(e) from e
        logger.info("Extracted fields: %s", extracted)

        # 3. Resolve date
        try:
            final_date = resolve_date(date or "", extracted.date if extracted else "")
        except DateError as e:
            logger.warning("Could not determine receipt date: %s", e)
            raise DateResolutionFailed(e) from e

        # 4. Build
        record = ReceiptRecord(
            date=final_date,
            store=extracted.store if extracted else "",
            items=extracted.items if extracted else "",
            total_amount=extracted.total_amount if extracted else 0,
            payer=payer,
            payment_method=payment_method,
            image_url=image_url,
        )

        # 5. Save
        try:
            saved = self.repository.save(record)
        except Exception as e:
            logger.warning("Saving receipt failed: %s", e)
            raise PersistenceFailed(e) from e
        logger.info("Receipt saved with id %s", saved.id)
        return saved
