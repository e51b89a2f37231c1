from datetime import datetime, timedelta, timezone

from memory.session_key import derive_session_key


def test_same_day_same_key():
    """Test that every moment of one calendar day maps to one key."""
    start = datetime(2024, 5, 17, 0, 0, tzinfo=timezone.utc)
    keys = {derive_session_key("U1", start + timedelta(minutes=m)) for m in range(0, 24 * 60, 37)}
    assert keys == {"U1_2024-05-17"}


def test_different_days_different_keys():
    """Test that the key changes across the date boundary."""
    before = datetime(2024, 5, 17, 23, 59, 59, tzinfo=timezone.utc)
    after = before + timedelta(seconds=1)
    assert derive_session_key("U1", before) != derive_session_key("U1", after)
    assert derive_session_key("U1", after) == "U1_2024-05-18"


def test_key_is_per_user():
    """Test that two users on the same day get different keys."""
    now = datetime(2024, 5, 17, 12, tzinfo=timezone.utc)
    assert derive_session_key("U1", now) != derive_session_key("U2", now)


def test_reference_timezone_decides_the_date():
    """Test that the date is taken in the reference timezone, not the input's."""
    now = datetime(2024, 5, 17, 20, 0, tzinfo=timezone.utc)  # 04:00 next day in Taipei
    assert derive_session_key("U1", now) == "U1_2024-05-17"
    assert derive_session_key("U1", now, "Asia/Taipei") == "U1_2024-05-18"


def test_naive_datetime_is_utc():
    """Test that naive datetimes are treated as UTC."""
    naive = datetime(2024, 5, 17, 23, 30)
    aware = naive.replace(tzinfo=timezone.utc)
    assert derive_session_key("U1", naive) == derive_session_key("U1", aware)


def test_deterministic():
    now = datetime(2024, 1, 1, 8, tzinfo=timezone.utc)
    assert derive_session_key("U1", now) == derive_session_key("U1", now)
