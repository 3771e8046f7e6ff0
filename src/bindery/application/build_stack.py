"""Application layer - Build stack and parameter override frames."""

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from bindery.domain import CircularDependencyError, ResolutionContext


class BuildStack:
    """Tracks the targets under construction and the active parameter overrides.

    Uses thread-local storage so that concurrent resolutions never share
    stacks. Frames are pushed and popped through context managers, which
    guarantees the pop on every exit path.

    Attributes:
        _local: Thread-local storage holding a ``ResolutionContext``.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    def _get_context(self) -> ResolutionContext:
        """Get the current thread's resolution context."""
        if not hasattr(self._local, "context"):
            self._local.context = ResolutionContext()
        return self._local.context

    @contextmanager
    def frame(self, target: Any) -> Iterator[None]:
        """Push ``target`` for the duration of the block.

        Raises:
            CircularDependencyError: If ``target`` is already being built.

        Example:
            >>> with stack.frame(ServiceA):
            ...     with stack.frame(ServiceB):
            ...         stack.frame(ServiceA).__enter__()  # Raises CircularDependencyError
        """
        stack = self._get_context().stack
        if target in stack:
            raise CircularDependencyError(stack[stack.index(target) :] + [target])

        stack.append(target)
        try:
            yield
        finally:
            stack.pop()

    @contextmanager
    def overrides(self, parameters: Optional[Mapping[str, Any]]) -> Iterator[Dict[str, Any]]:
        """Push a parameter override frame for the duration of the block."""
        frames = self._get_context().overrides
        frame = dict(parameters or {})
        frames.append(frame)
        try:
            yield frame
        finally:
            frames.pop()

    def current_overrides(self) -> Dict[str, Any]:
        """Return the topmost override frame only."""
        frames = self._get_context().overrides
        return frames[-1] if frames else {}

    def top(self) -> Any:
        """Return the target currently being built, or ``None``."""
        stack = self._get_context().stack
        return stack[-1] if stack else None

    def snapshot(self) -> List[Any]:
        return list(self._get_context().stack)

    @property
    def depth(self) -> int:
        return len(self._get_context().stack)

    def clear(self) -> None:
        """Clear the current thread's stacks.

        Useful for testing or error recovery.
        """
        if hasattr(self._local, "context"):
            self._local.context.stack.clear()
            self._local.context.overrides.clear()


class RedirectStack:
    """Tracks identifiers being redirected to another recipe.

    A redirect is keyed on the build target that requested it, so the same
    identifier may be redirected again while an outer redirect is still
    building (e.g. a decorator whose inner dependency is bound contextually).

    Attributes:
        _local: Thread-local storage holding ``(level, identifier)`` pairs.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    def _get_chain(self) -> List[Tuple[Any, Any]]:
        if not hasattr(self._local, "chain"):
            self._local.chain = []
        return self._local.chain

    @contextmanager
    def frame(self, level: Any, identifier: Any) -> Iterator[None]:
        """Push a redirect of ``identifier`` requested while building ``level``.

        Raises:
            CircularDependencyError: If the same redirect is already active at that level.
        """
        chain = self._get_chain()
        entry = (level, identifier)
        if entry in chain:
            start = chain.index(entry)
            raise CircularDependencyError([target for _, target in chain[start:]] + [identifier])

        chain.append(entry)
        try:
            yield
        finally:
            chain.pop()

    def clear(self) -> None:
        if hasattr(self._local, "chain"):
            self._local.chain.clear()
