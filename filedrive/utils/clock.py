from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treats naive datetimes (as returned by some drivers) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Request-scoped "now"
def request_time() -> datetime:
    """
    FastAPI dependency capturing the current instant once per request.

    Every share validity check made while serving a request compares against
    this single value.
    """
    return utcnow()
