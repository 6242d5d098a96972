#!/usr/bin/env python3
"""
🔐 Thread-Safe Configuration Management for SleepWake
Serialises config access between:
- Flask request handlers saving settings
- The scheduling engine reading snapshots when timers are (re)armed
- Worker threads reading ramp parameters
"""

import copy
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

ConfigListener = Callable[[Dict[str, Any]], None]


@dataclass
class ConfigTransaction:
    """A recorded configuration change."""
    original_config: Dict[str, Any]
    new_config: Dict[str, Any]
    timestamp: float
    thread_id: str


class ThreadSafeConfigManager:
    """
    Thread-safe wrapper around a ``ConfigManager``.

    Features:
    - Re-entrant lock around every load/save
    - Short-lived snapshot cache
    - Change listeners notified after a successful save
    - Transactions with rollback
    """

    def __init__(self, base_config_manager, cache_ttl: float = 1.0):
        self._base_manager = base_config_manager
        self._lock = threading.RLock()
        self._config_cache: Optional[Dict[str, Any]] = None
        self._cache_timestamp: float = 0.0
        self._cache_ttl = cache_ttl
        self._change_listeners: list[ConfigListener] = []
        self._transaction_history: list[ConfigTransaction] = []
        self._max_history: int = 10
        self._logger = logging.getLogger('sleepwake.config')

    def add_change_listener(self, callback: ConfigListener) -> None:
        """Register ``callback`` to receive the new config after each save."""
        with self._lock:
            if callback not in self._change_listeners:
                self._change_listeners.append(callback)
                self._logger.debug("📢 Added config change listener: %s", getattr(callback, "__name__", callback))

    def remove_change_listener(self, callback: ConfigListener) -> None:
        with self._lock:
            if callback in self._change_listeners:
                self._change_listeners.remove(callback)

    def _notify_listeners(self, new_config: Dict[str, Any]) -> None:
        with self._lock:
            listeners = list(self._change_listeners)
        for listener in listeners:
            try:
                listener(copy.deepcopy(new_config))
            except Exception as e:
                self._logger.error(
                    "❌ Error in config change listener %s: %s",
                    getattr(listener, "__name__", listener),
                    e,
                )

    def _is_cache_valid(self) -> bool:
        return (
            self._config_cache is not None and
            time.monotonic() - self._cache_timestamp < self._cache_ttl
        )

    def _update_cache(self, config: Dict[str, Any]) -> None:
        self._config_cache = copy.deepcopy(config)
        self._cache_timestamp = time.monotonic()

    def load_config(self, use_cache: bool = True) -> Dict[str, Any]:
        """
        Load configuration with thread-safe caching.

        Returns:
            Configuration dictionary (deep copy, safe to mutate)
        """
        with self._lock:
            if use_cache and self._is_cache_valid():
                return copy.deepcopy(self._config_cache)
            config = self._base_manager.load_config()
            self._update_cache(config)
            return copy.deepcopy(config)

    def save_config(self, config: Dict[str, Any], notify_listeners: bool = True) -> bool:
        """
        Save configuration and notify listeners.

        Returns:
            True if saved successfully
        """
        thread_id = threading.current_thread().name
        with self._lock:
            original = self.load_config(use_cache=False)
            if not self._base_manager.save_config(config):
                self._logger.error("❌ Config save failed for %s", thread_id)
                return False
            # Re-read so listeners see the validated form, not the raw input
            saved = self.load_config(use_cache=False)
            self._transaction_history.append(
                ConfigTransaction(
                    original_config=original,
                    new_config=copy.deepcopy(saved),
                    timestamp=time.time(),
                    thread_id=thread_id,
                )
            )
            if len(self._transaction_history) > self._max_history:
                self._transaction_history.pop(0)

        self._logger.info("✅ Config saved successfully by %s", thread_id)
        # Listeners run outside the lock so they may load config themselves
        if notify_listeners:
            self._notify_listeners(saved)
        return True

    @contextmanager
    def config_transaction(self):
        """
        Context manager for atomic config operations.

        Usage:
            with manager.config_transaction() as transaction:
                config = transaction.load()
                config['sleep_time'] = '23:00'
                transaction.save(config)
        """
        transaction = ConfigTransactionContext(self)
        try:
            yield transaction
        except Exception as e:
            self._logger.error("❌ Transaction failed, rolling back: %s", e)
            transaction.rollback()
            raise

    def set_config_value(self, key: str, value: Any) -> bool:
        with self._lock:
            config = self.load_config(use_cache=False)
            config[key] = value
            return self.save_config(config)

    def get_transaction_history(self) -> list[ConfigTransaction]:
        with self._lock:
            return copy.deepcopy(self._transaction_history)

    def invalidate_cache(self) -> None:
        """Force the next load to hit the disk."""
        with self._lock:
            self._config_cache = None
            self._cache_timestamp = 0.0
            self._logger.debug("🗑️ Config cache invalidated")

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "cache_valid": self._is_cache_valid(),
                "transaction_history_count": len(self._transaction_history),
                "change_listeners_count": len(self._change_listeners),
                "current_thread": threading.current_thread().name,
                "active_threads": threading.active_count(),
            }


class ConfigTransactionContext:
    """Context for atomic configuration transactions."""

    def __init__(self, config_manager: ThreadSafeConfigManager):
        self._config_manager = config_manager
        self._original_config: Optional[Dict[str, Any]] = None
        self._pending_save: bool = False

    def load(self) -> Dict[str, Any]:
        config = self._config_manager.load_config(use_cache=False)
        if self._original_config is None:
            self._original_config = copy.deepcopy(config)
        return config

    def save(self, config: Dict[str, Any]) -> bool:
        self._pending_save = True
        return self._config_manager.save_config(config)

    def rollback(self) -> bool:
        """Restore the config seen by the first ``load`` if anything was saved."""
        if self._pending_save and self._original_config is not None:
            return self._config_manager.save_config(self._original_config, notify_listeners=False)
        return False


# Global thread-safe config manager
_thread_safe_config_manager: Optional[ThreadSafeConfigManager] = None


def initialize_thread_safe_config(base_config_manager) -> ThreadSafeConfigManager:
    """Initialize the global thread-safe config manager."""
    global _thread_safe_config_manager
    _thread_safe_config_manager = ThreadSafeConfigManager(base_config_manager)
    return _thread_safe_config_manager


def get_thread_safe_config_manager() -> ThreadSafeConfigManager:
    if _thread_safe_config_manager is None:
        raise RuntimeError("Thread-safe config manager not initialized. Call initialize_thread_safe_config() first.")
    return _thread_safe_config_manager


def load_config_safe() -> Dict[str, Any]:
    return get_thread_safe_config_manager().load_config()


def invalidate_config_cache() -> None:
    get_thread_safe_config_manager().invalidate_cache()
