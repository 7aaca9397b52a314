import uuid


def new_id() -> str:
    return uuid.uuid4().hex


def is_valid_id(value) -> bool:
    """True if value is an identifier this store could have issued (32 lowercase hex chars)."""
    if not isinstance(value, str):
        return False
    try:
        return uuid.UUID(hex=value).hex == value
    except ValueError:
        return False
