"""Single source of the current instant, so services can take `now` explicitly."""
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
