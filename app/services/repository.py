# app/services/repository.py

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..db import ReceiptRow
from ..errors import RepositoryError
from ..models import ReceiptRecord

logger = logging.getLogger(__name__)


def _to_record(row: ReceiptRow) -> ReceiptRecord:
    return ReceiptRecord(
        id=row.id,
        date=row.date,
        store=row.store,
        items=row.items,
        total_amount=row.total_amount,
        payer=row.payer,
        payment_method=row.payment_method,
        image_url=row.image_url,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlReceiptRepository:
    """Stores receipts in the `receipts` table through SQLAlchemy sessions."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def save(self, record: ReceiptRecord) -> ReceiptRecord:
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        saved = record.model_copy(update={
            "id": str(uuid.uuid4()),
            "created_at": now,
            "updated_at": now,
        })

        session = self.session_factory()
        try:
            session.add(ReceiptRow(
                id=saved.id,
                date=saved.date,
                store=saved.store,
                items=saved.items,
                total_amount=saved.total_amount,
                payer=saved.payer,
                payment_method=saved.payment_method,
                image_url=saved.image_url,
                created_at=saved.created_at,
                updated_at=saved.updated_at,
            ))
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise RepositoryError(f"insert into receipts failed: {e}") from e
        finally:
            session.close()

        logger.debug("Inserted receipt %s", saved.id)
        return saved

    def get(self, receipt_id: str) -> Optional[ReceiptRecord]:
        session = self.session_factory()
        try:
            row = session.get(ReceiptRow, receipt_id)
            return _to_record(row) if row else None
        except SQLAlchemyError as e:
            raise RepositoryError(f"lookup of receipt {receipt_id} failed: {e}") from e
        finally:
            session.close()

    def ping(self):
        """Raises RepositoryError if the database is unreachable."""
        session = self.session_factory()
        try:
            session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise RepositoryError(f"database ping failed: {e}") from e
        finally:
            session.close()
