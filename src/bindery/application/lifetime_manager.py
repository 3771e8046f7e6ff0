import logging
import threading
from contextlib import nullcontext
from contextvars import ContextVar, Token
from typing import Any, ContextManager, Dict, Hashable, Optional, Set

from bindery.domain import ILifetimeManager, display_name

logger = logging.getLogger(__name__)


class LifetimeManager(ILifetimeManager):
    """Caches shared instances and tracks which identifiers are scoped.

    Singleton instances live in one cache for the whole container. Scoped
    instances live in the cache of the active scope: ``begin_scope`` installs
    a fresh one in the current context, so concurrent requests or tasks each
    see their own. Outside of any scope a root scoped cache is used.

    Construction of a shared identifier is guarded by a per-identifier lock so
    two threads resolving the same uncached singleton build it only once.

    Attributes:
        _instances: Cache of singleton instances by canonical identifier.
        _root_scoped: Scoped instances resolved outside of any scope.
        _current_scope: Scoped cache of the active scope, ``None`` outside one.
        _scoped: Identifiers whose instances belong to a scope.
        _locks: Per-identifier build locks.
    """

    def __init__(self, thread_safe: bool = True) -> None:
        """Initialize the lifetime manager with empty caches.

        Args:
            thread_safe: When false, build locks are no-ops.
        """
        self._instances: Dict[Hashable, Any] = {}
        self._root_scoped: Dict[Hashable, Any] = {}
        self._current_scope: ContextVar[Optional[Dict[Hashable, Any]]] = ContextVar(
            f"bindery_scope_{id(self)}", default=None
        )
        self._scoped: Set[Hashable] = set()
        self._locks: Dict[Hashable, threading.RLock] = {}
        self._locks_lock = threading.Lock()
        self._thread_safe = thread_safe

    def _scoped_cache(self) -> Dict[Hashable, Any]:
        current = self._current_scope.get()
        return self._root_scoped if current is None else current

    def _cache_for(self, identifier: Hashable) -> Dict[Hashable, Any]:
        return self._scoped_cache() if identifier in self._scoped else self._instances

    def get(self, identifier: Hashable) -> Any:
        return self._cache_for(identifier)[identifier]

    def contains(self, identifier: Hashable) -> bool:
        return identifier in self._cache_for(identifier)

    def store(self, identifier: Hashable, instance: Any) -> None:
        self._cache_for(identifier)[identifier] = instance

    def forget(self, identifier: Hashable) -> None:
        self._instances.pop(identifier, None)
        self._scoped_cache().pop(identifier, None)

    def instances(self) -> Dict[Hashable, Any]:
        """Get a copy of the instances visible from the current scope."""
        return {**self._instances, **self._scoped_cache()}

    def mark_scoped(self, identifier: Hashable) -> None:
        self._scoped.add(identifier)

    def unmark_scoped(self, identifier: Hashable) -> None:
        self._scoped.discard(identifier)

    def is_scoped(self, identifier: Hashable) -> bool:
        return identifier in self._scoped

    def begin_scope(self) -> Token:
        """Start a scope with an empty scoped cache in the current context.

        Returns:
            A token for ``end_scope``, which restores the enclosing scope.
        """
        return self._current_scope.set({})

    def end_scope(self, token: Token) -> None:
        """Drop the scoped cache installed by ``begin_scope``."""
        self._current_scope.get().clear()
        self._current_scope.reset(token)

    def lock_for(self, identifier: Hashable) -> ContextManager:
        """Get the build lock of an identifier.

        Locks are re-entrant so a thread that already holds one can resolve
        the same identifier again (the build stack reports that as a cycle).
        """
        if not self._thread_safe:
            return nullcontext()
        with self._locks_lock:
            lock = self._locks.get(identifier)
            if lock is None:
                lock = self._locks[identifier] = threading.RLock()
            return lock

    def clear_cache(self) -> None:
        """Clear singleton instances and the scoped instances of the current scope.

        Useful for testing or resetting container state.
        """
        self._instances.clear()
        self._root_scoped.clear()
        self._scoped_cache().clear()

    def reset(self) -> None:
        """Clear cached instances and forget which identifiers are scoped."""
        self.clear_cache()
        self._scoped.clear()

    def clear_scoped_cache(self) -> None:
        """Clear the scoped instances of the current scope.

        Each scoped identifier is dropped while holding its build lock, so a
        scope end never interleaves with an in-flight build of that identifier.
        """
        cache = self._scoped_cache()
        scoped = list(self._scoped)
        for identifier in scoped:
            with self.lock_for(identifier):
                cache.pop(identifier, None)
        logger.debug(f"Forgot scoped instances: {', '.join(display_name(i) for i in scoped) or 'none'}")
