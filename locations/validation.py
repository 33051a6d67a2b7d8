"""
Label validation for location sources.

A source label may only contain ASCII letters, ASCII digits, underscores
and spaces, and must not be empty. The label is always bound as a query
parameter, so this is a data-quality gate on the token alphabet rather than
an injection filter.
"""

import re

# Compiled once at import; re.Pattern is immutable and safe to share.
# \Z instead of $ so a trailing newline is rejected too.
LABEL_PATTERN = re.compile(r"[a-zA-Z0-9_ ]+\Z")


def is_valid_label(value: str) -> bool:
    """
    Check whether a source label uses only the allowed alphabet.

    Args:
        value: The label to check

    Returns:
        True if the whole label matches ``[a-zA-Z0-9_ ]+``, False otherwise
    """
    if not isinstance(value, str):
        return False
    return LABEL_PATTERN.match(value) is not None
