def bool_param(value):
    if value in (None, ""):
        return None
    return str(value).strip().lower() in ("1", "true", "yes")


def int_param(value):
    """Integer filter value; ``None`` when absent, ``-1`` (matches no row) when unparseable."""

    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return -1
