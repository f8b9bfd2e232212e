# app/services/dates.py

import logging
import re
from datetime import datetime

from ..errors import InvalidDate, NoDateAvailable

logger = logging.getLogger(__name__)

USER_SOURCE = "user-supplied"
EXTRACTED_SOURCE = "extracted"

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


def is_iso_date(value: str) -> bool:
    if not _ISO_DATE.fullmatch(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def resolve_date(user_date: str, extracted_date: str) -> str:
    """
    Decides which date a receipt is stored under.

    A non-empty user date always wins, and must be a valid YYYY-MM-DD date:
    an invalid user date is an error even if the extracted date is usable.
    Otherwise the extracted date is used under the same format rule.
    Raises NoDateAvailable when both are empty.
    """
    if user_date:
        if not is_iso_date(user_date):
            raise InvalidDate(user_date, USER_SOURCE)
        logger.debug("Using user-supplied date: %s", user_date)
        return user_date

    if extracted_date:
        if not is_iso_date(extracted_date):
            raise InvalidDate(extracted_date, EXTRACTED_SOURCE)
        logger.debug("Using extracted date: %s", extracted_date)
        return extracted_date

    raise NoDateAvailable()
