from datetime import datetime, UTC


def utcnow() -> datetime:
    # stored naive; every datetime column holds UTC
    return datetime.now(UTC).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


def parse_datetime(value: str) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into a naive UTC datetime."""
    return to_utc_naive(datetime.fromisoformat(value))


def isoformat(value):
    if value is None:
        return None
    return to_utc_naive(value).isoformat(timespec="milliseconds") + "Z"
