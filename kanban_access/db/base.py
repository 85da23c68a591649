from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the format stored in every DateTime column"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
