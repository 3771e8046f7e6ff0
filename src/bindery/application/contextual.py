"""Application layer - Contextual bindings."""

import logging
from typing import TYPE_CHECKING, Any, Dict, Hashable, Iterable, Sequence, Tuple

from bindery.domain import display_name

if TYPE_CHECKING:
    from bindery.application.container import Container

logger = logging.getLogger(__name__)

MISSING = object()


class ContextualBindingMap:
    """Stores dependency substitutions that only apply while a target is built.

    Keys are ``(build_target, dependency)`` where ``dependency`` is an
    identifier or ``"$name"`` for a primitive parameter.
    """

    def __init__(self) -> None:
        self._bindings: Dict[Hashable, Dict[Hashable, Any]] = {}

    def add(self, target: Hashable, dependency: Hashable, value: Any) -> None:
        self._bindings.setdefault(target, {})[dependency] = value
        logger.debug(f"Contextual binding: {display_name(target)} needs {display_name(dependency)}")

    def find(self, target: Any, dependency: Hashable, aliases: Iterable[Hashable] = ()) -> Any:
        """Look ``dependency`` up for ``target``, then each of its aliases.

        Returns:
            The contextual value, or ``MISSING`` if none applies.
        """
        overrides = self._bindings.get(target) if target is not None else None
        if not overrides:
            return MISSING
        if dependency in overrides:
            return overrides[dependency]
        for alias in aliases:
            if alias in overrides:
                return overrides[alias]
        return MISSING

    def clear(self) -> None:
        self._bindings.clear()


class ContextualBindingBuilder:
    """Fluent ``when(...).needs(...).give(...)`` registration.

    Example:
        >>> container.when(ReportService).needs("$connection").give("reporting")
        >>> container.when(PhotoController, VideoController).needs(Filesystem).give(S3Filesystem)
    """

    def __init__(self, container: "Container", targets: Sequence[Hashable]) -> None:
        self._container = container
        self._targets: Tuple[Hashable, ...] = tuple(targets)
        self._dependency: Any = MISSING

    def needs(self, dependency: Hashable) -> "ContextualBindingBuilder":
        """Name the dependency, an identifier or ``"$parameter"``."""
        self._dependency = dependency
        return self

    def give(self, value: Any) -> None:
        """Provide the substitution for every target."""
        if self._dependency is MISSING:
            raise ValueError("Call needs() before give().")
        for target in self._targets:
            self._container.add_contextual_binding(target, self._dependency, value)

    def give_tagged(self, tag: str) -> None:
        """Provide every instance registered under ``tag``."""
        self.give(lambda container: container.tagged(tag))
