import threading
import weakref
from contextlib import contextmanager
from typing import Hashable


class KeyedLocks:
    """One re-entrant lock per key, created on first use.

    Serializes writers that share a key (a player, a player/level pair)
    while writers with different keys run in parallel. Process-local; the
    database row locks taken inside cover multi-process deployments.

    Locks are held weakly: once no thread holds or waits on a key's lock it
    is dropped, so the registry does not grow with every player seen.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = weakref.WeakValueDictionary()

    def __len__(self):
        return len(self._locks)

    def get(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable):
        # The local reference keeps the lock alive while held or awaited
        lock = self.get(key)
        with lock:
            yield


player_locks = KeyedLocks()
level_progress_locks = KeyedLocks()
