from __future__ import annotations

import logging
import re
from typing import Any


_EMAIL_RE = re.compile(r"(?<![\w.+-])([\w.+-])[\w.+-]*@([\w-]+(?:\.[\w-]+)+)")


def mask_email(text: str) -> str:
    """Mask e-mail addresses in a string.

    Only the first character of the local part survives, the domain is kept
    so delivery problems can still be grouped by provider.
    """

    if not text:
        return text
    return _EMAIL_RE.sub(r"\1***@\2", text)


class MaskEmailFilter(logging.Filter):
    """Logging filter to mask e-mail addresses in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):  # pragma: no cover
            message = str(getattr(record, "msg", ""))

        record.msg = mask_email(str(message))
        record.args = ()

        for key in ("email", "to", "recipient"):
            if hasattr(record, key):
                value: Any = getattr(record, key)
                if isinstance(value, str):
                    setattr(record, key, mask_email(value))
                elif isinstance(value, (list, tuple)):
                    setattr(record, key, [mask_email(str(item)) for item in value])

        return True
