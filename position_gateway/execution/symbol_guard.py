# 🔒 SYMBOL GUARD
# At most ONE in-flight reconciliation per (symbol, account).
#
# Two concurrent targets for the same symbol would otherwise both read the
# same stale position and both issue flatten + enter.
# Distinct symbols never wait on each other.
#
# A key's lock lives only while a request holds or waits on it, so arbitrary
# symbols from HTTP input do not accumulate.

from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator, Tuple
import logging

logger = logging.getLogger(__name__)

Key = Tuple[str, str]


class SymbolGuard:

    def __init__(self):
        self._lock = Lock()

        # (symbol, account) -> Lock
        self._locks: Dict[Key, Lock] = {}

        # (symbol, account) -> holders + waiters
        self._users: Dict[Key, int] = {}

    def _acquire_entry(self, key: Key) -> Lock:
        with self._lock:
            lock = self._locks.setdefault(key, Lock())
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _release_entry(self, key: Key) -> None:
        with self._lock:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, symbol: str, account: str) -> Iterator[None]:
        key = (symbol, account)
        lock = self._acquire_entry(key)

        try:
            if lock.locked():
                logger.info(f"⏳ Waiting for in-flight reconciliation | {symbol} | {account}")

            with lock:
                yield
        finally:
            self._release_entry(key)

    def is_busy(self, symbol: str, account: str) -> bool:
        with self._lock:
            lock = self._locks.get((symbol, account))
        return bool(lock and lock.locked())

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._locks)
