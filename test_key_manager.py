"""
Test Suite — KeyManager round-robin rotation.

Usage:
  pytest test_key_manager.py
  python3 test_key_manager.py
"""
import threading
from collections import Counter

import pytest

from core.errors import ConfigurationError
from core.key_manager import KeyManager, mask_key


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


# ══════════════════════════════════════════════
# Default rotation
# ══════════════════════════════════════════════
def test_rotation_visits_each_key_in_order_then_wraps():
    manager = KeyManager(["k1", "k2", "k3"])
    assert [manager.get_key() for _ in range(3)] == ["k1", "k2", "k3"]
    assert manager.get_key() == "k1"


def test_blank_default_keys_are_filtered():
    manager = KeyManager(["", "  k1 ", "   ", "k2"])
    assert manager.get_all_keys() == ["k1", "k2"]
    assert manager.key_count() == 2


@pytest.mark.parametrize("keys", [[], ["", "   "], None])
def test_no_usable_default_keys_is_a_configuration_error(keys):
    with pytest.raises(ConfigurationError):
        KeyManager(keys)


def test_failed_key_is_still_returned_without_cooldown():
    manager = KeyManager(["k1", "k2"])
    assert manager.get_key() == "k1"
    manager.report_failure("k2")
    assert manager.get_key() == "k2"


# ══════════════════════════════════════════════
# Custom key override
# ══════════════════════════════════════════════
def test_custom_keys_start_at_first_key_regardless_of_default_cursor():
    manager = KeyManager(["d1", "d2", "d3"])
    manager.get_key()
    manager.get_key()

    manager.set_custom_keys(["c1", "c2"])
    assert manager.is_using_custom_keys() is True
    assert manager.key_count() == 2
    assert [manager.get_key() for _ in range(3)] == ["c1", "c2", "c1"]


def test_clearing_custom_keys_restarts_default_rotation():
    manager = KeyManager(["d1", "d2", "d3"])
    manager.get_key()
    manager.set_custom_keys(["c1"])
    manager.get_key()

    manager.clear_custom_keys()
    assert manager.is_using_custom_keys() is False
    assert manager.get_key() == "d1"


def test_all_blank_custom_keys_behave_like_clear():
    manager = KeyManager(["d1", "d2"])
    manager.set_custom_keys(["c1"])
    manager.set_custom_keys(["", "  "])
    assert manager.is_using_custom_keys() is False
    assert manager.status() == {"isUsingCustomKeys": False, "keyCount": 2}
    assert manager.get_key() == "d1"


def test_replacing_custom_keys_resets_cursor():
    manager = KeyManager(["d1"])
    manager.set_custom_keys(["a", "b", "c"])
    manager.get_key()
    manager.get_key()
    manager.set_custom_keys(["x", "y"])
    assert manager.get_key() == "x"


def test_status_reports_active_set():
    manager = KeyManager(["d1"])
    manager.set_custom_keys([" c1 ", "c2", ""])
    assert manager.status() == {"isUsingCustomKeys": True, "keyCount": 2}
    assert manager.get_all_keys() == ["c1", "c2"]


# ══════════════════════════════════════════════
# Failure cooldown (opt-in)
# ══════════════════════════════════════════════
def test_cooldown_skips_recently_failed_key():
    clock = FakeClock()
    manager = KeyManager(["a", "b", "c"], failure_cooldown=10, clock=clock)

    assert manager.get_key() == "a"
    manager.report_failure("b")
    assert manager.get_key() == "c"
    assert manager.get_key() == "a"
    assert manager.get_key() == "c"

    clock.now = 11
    assert manager.get_key() == "a"
    assert manager.get_key() == "b"


def test_cooldown_falls_back_to_rotation_when_every_key_failed():
    clock = FakeClock()
    manager = KeyManager(["a", "b"], failure_cooldown=10, clock=clock)
    manager.report_failure("a")
    manager.report_failure("b")
    assert [manager.get_key() for _ in range(3)] == ["a", "b", "a"]


# ══════════════════════════════════════════════
# Concurrency
# ══════════════════════════════════════════════
def test_concurrent_get_key_hands_out_keys_evenly():
    manager = KeyManager(["k1", "k2", "k3", "k4"])
    seen = Counter()
    lock = threading.Lock()

    def worker():
        local = Counter(manager.get_key() for _ in range(250))
        with lock:
            seen.update(local)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(seen.values()) == 2000
    assert set(seen.values()) == {500}


def test_mask_key_hides_all_but_last_four():
    assert mask_key("AIzaSecret1234") == "…1234"
    assert mask_key("abc") == "…"


# ══════════════════════════════════════════════
# CLI Runner
# ══════════════════════════════════════════════
def main():
    raise SystemExit(pytest.main([__file__, "-q"]))


if __name__ == "__main__":
    main()
