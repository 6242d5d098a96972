from __future__ import annotations

import copy
import threading

from sleepwake.utils.thread_safety import ThreadSafeConfigManager


class _InMemoryConfigManager:
    def __init__(self, initial, fail_saves=False):
        self._config = copy.deepcopy(initial)
        self.fail_saves = fail_saves
        self.load_count = 0

    def load_config(self):
        self.load_count += 1
        return copy.deepcopy(self._config)

    def save_config(self, config):
        if self.fail_saves:
            return False
        self._config = copy.deepcopy(config)
        return True


def test_config_transaction_rolls_back_on_error():
    base = _InMemoryConfigManager({"sleep_time": "22:00", "playlist": "Night"})
    manager = ThreadSafeConfigManager(base)

    try:
        with manager.config_transaction() as txn:
            config = txn.load()
            config["sleep_time"] = "23:30"
            txn.save(config)
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    assert manager.load_config(use_cache=False)["sleep_time"] == "22:00"


def test_unsaved_mutations_do_not_leak():
    manager = ThreadSafeConfigManager(_InMemoryConfigManager({"schedule": {"sleep": "22:00"}}))

    try:
        with manager.config_transaction() as txn:
            config = txn.load()
            config["schedule"]["sleep"] = "01:00"
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    assert manager.load_config()["schedule"]["sleep"] == "22:00"


def test_listeners_receive_saved_config():
    manager = ThreadSafeConfigManager(_InMemoryConfigManager({"wake_time": "07:00"}))
    received = []
    manager.add_change_listener(received.append)

    assert manager.save_config({"wake_time": "06:30"}) is True

    assert received == [{"wake_time": "06:30"}]


def test_listener_added_once_and_removable():
    manager = ThreadSafeConfigManager(_InMemoryConfigManager({}))
    received = []
    manager.add_change_listener(received.append)
    manager.add_change_listener(received.append)

    manager.save_config({"a": 1})
    manager.remove_change_listener(received.append)
    manager.save_config({"a": 2})

    assert received == [{"a": 1}]
    assert manager.get_stats()["change_listeners_count"] == 0


def test_failing_listener_does_not_break_save_or_others():
    manager = ThreadSafeConfigManager(_InMemoryConfigManager({}))
    received = []

    def broken(config):
        raise RuntimeError("listener failed")

    manager.add_change_listener(broken)
    manager.add_change_listener(received.append)

    assert manager.save_config({"playlist": "x"}) is True
    assert received == [{"playlist": "x"}]


def test_failed_save_notifies_nobody():
    manager = ThreadSafeConfigManager(_InMemoryConfigManager({"a": 1}, fail_saves=True))
    received = []
    manager.add_change_listener(received.append)

    assert manager.save_config({"a": 2}) is False
    assert received == []
    assert manager.get_transaction_history() == []


def test_rollback_does_not_notify_listeners():
    manager = ThreadSafeConfigManager(_InMemoryConfigManager({"a": 1}))
    received = []
    manager.add_change_listener(received.append)

    try:
        with manager.config_transaction() as txn:
            config = txn.load()
            config["a"] = 2
            txn.save(config)
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    assert received == [{"a": 2}]


def test_cache_serves_repeated_loads():
    base = _InMemoryConfigManager({"a": 1})
    manager = ThreadSafeConfigManager(base, cache_ttl=60.0)

    manager.load_config()
    manager.load_config()
    assert base.load_count == 1

    manager.invalidate_cache()
    manager.load_config()
    assert base.load_count == 2


def test_concurrent_saves_all_land():
    manager = ThreadSafeConfigManager(_InMemoryConfigManager({}), cache_ttl=0.0)

    def save(index):
        manager.set_config_value(f"key_{index}", index)

    threads = [threading.Thread(target=save, args=(i,)) for i in range(12)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    config = manager.load_config(use_cache=False)
    assert all(config[f"key_{i}"] == i for i in range(12))
    assert len(manager.get_transaction_history()) == 10
