from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    # Python-side so rows inserted in one transaction still order by creation.
    return datetime.now(timezone.utc)
