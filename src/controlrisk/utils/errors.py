"""Error message formatting for run results and execution logs."""

from __future__ import annotations

import os
import re

_SECRET_PATTERNS = [
    (re.compile(r"sk-[a-zA-Z0-9_-]{20,}"), "[REDACTED_KEY]"),
    (re.compile(r"Bearer\s+\S+"), "Bearer [REDACTED]"),
    (re.compile(r"(?i)(api[-_]?key|token|password)\s*[:=]\s*\S+"), r"\1: [REDACTED]"),
    (re.compile(r"Authorization:\s*\S+"), "Authorization: [REDACTED]"),
]


def describe_error(error: BaseException) -> str:
    """Human-readable message for an exception, with credentials redacted.

    Exceptions raised without a message fall back to their class name.
    """
    message = str(error) or type(error).__name__
    for pattern, replacement in _SECRET_PATTERNS:
        message = pattern.sub(replacement, message)

    home = os.environ.get("HOME") or os.environ.get("USERPROFILE") or ""
    if home and len(home) > 1:
        message = message.replace(home, "[USER_HOME]")

    return message
