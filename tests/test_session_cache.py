from memory.session_cache import SessionCache


def test_create_and_get(clock):
    cache = SessionCache(clock=clock)
    handle = cache.create("U1", "S1")

    assert cache.get("U1", "S1") is handle
    assert cache.get("U1", "S2") is None
    assert ("U1", "S1") in cache


def test_expires_fixed_window_from_creation(clock):
    """Test that access does not extend the window by default."""
    cache = SessionCache(ttl_minutes=30, clock=clock)
    cache.create("U1", "S1")

    clock.advance(minutes=20)
    assert cache.get("U1", "S1") is not None
    clock.advance(minutes=10)
    assert cache.get("U1", "S1") is None
    assert len(cache) == 0


def test_sliding_window(clock):
    cache = SessionCache(ttl_minutes=30, refresh_on_access=True, clock=clock)
    cache.create("U1", "S1")

    clock.advance(minutes=20)
    assert cache.get("U1", "S1") is not None
    clock.advance(minutes=20)
    assert cache.get("U1", "S1") is not None
    clock.advance(minutes=30)
    assert cache.get("U1", "S1") is None


def test_sweep_removes_only_expired(clock):
    cache = SessionCache(ttl_minutes=30, clock=clock)
    cache.create("U1", "S1")
    clock.advance(minutes=15)
    cache.create("U2", "S2")
    clock.advance(minutes=15)

    assert cache.sweep() == 1
    assert cache.get("U2", "S2") is not None


def test_evict(clock):
    cache = SessionCache(clock=clock)
    cache.create("U1", "S1")
    assert cache.evict("U1", "S1") is True
    assert cache.evict("U1", "S1") is False
    assert cache.get("U1", "S1") is None


def test_handle_history_is_bounded(clock):
    cache = SessionCache(max_messages=4, clock=clock)
    handle = cache.create("U1", "S1")
    for i in range(6):
        handle.add_message("user", f"m{i}")

    assert [m.text for m in handle.history] == ["m2", "m3", "m4", "m5"]
