"""
Session Key Derivation

A session is one calendar day of a user's conversation, in a fixed
reference timezone.
"""

from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo


def derive_session_key(user_id: str, now: datetime, tz: tzinfo | str = timezone.utc) -> str:
    """
    Derive the session key for a user at a point in time.

    Naive datetimes are taken to be UTC.

    Args:
        user_id: Opaque user identifier from the transport layer
        now: Moment the message is handled
        tz: Reference timezone (tzinfo or IANA name)

    Returns:
        "<user_id>_<YYYY-MM-DD>" for the calendar date of `now` in `tz`
    """
    if isinstance(tz, str):
        tz = ZoneInfo(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local_date = now.astimezone(tz).date()
    return f"{user_id}_{local_date.isoformat()}"
