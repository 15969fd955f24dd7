from __future__ import annotations

from typing import Optional

# Printer status bits, as reported by the platform print system.
STATUS_ERROR = 0x00000002
STATUS_OFFLINE = 0x00000080
STATUS_NOT_AVAILABLE = 0x00001000

# Checked in order; the first matching bit wins.
_STATUS_DESCRIPTIONS = (
    (STATUS_OFFLINE, "The printer is offline. Check the power and cable."),
    (STATUS_ERROR, "The printer reported an error. Check paper and ink."),
    (STATUS_NOT_AVAILABLE, "The printer is not available."),
)


def describe_status(status: Optional[int]) -> Optional[str]:
    """User-facing description of a bad status, or None when healthy/unknown."""
    if not status:
        return None
    for bit, description in _STATUS_DESCRIPTIONS:
        if status & bit:
            return description
    return None
