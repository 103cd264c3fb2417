"""
Shared enumerations.
"""

import enum


class RefreshTrigger(str, enum.Enum):
    """
    Why a list view is being reloaded.

    Every trigger runs the same full fetch; the value only ends up in logs.
    """
    USER = "user"  # Explicit refresh button or after an action
    FOCUS = "focus"  # Window regained focus
    VISIBLE = "visible"  # Page became visible again
