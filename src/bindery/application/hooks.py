"""Application layer - Lifecycle hooks fired around resolution."""

import inspect
from typing import Any, Dict, Hashable, List, Mapping, Optional

from bindery.domain import HookCallback, HookPhase


class LifecycleHooks:
    """Registry of before-resolving, resolving and after-resolving callbacks.

    Global callbacks fire for every resolution. Type-scoped callbacks fire when
    their key equals the identifier or, for classes, matches by subclass or
    instance check. Global callbacks always fire before type-scoped ones.
    """

    def __init__(self) -> None:
        self._global: Dict[HookPhase, List[HookCallback]] = {phase: [] for phase in HookPhase}
        self._typed: Dict[HookPhase, Dict[Hashable, List[HookCallback]]] = {phase: {} for phase in HookPhase}
        self._attribute_callbacks: Dict[type, List[HookCallback]] = {}

    def register(self, phase: HookPhase, key: Optional[Hashable], callback: HookCallback) -> None:
        """Register a callback; ``key=None`` makes it global."""
        if key is None:
            self._global[phase].append(callback)
        else:
            self._typed[phase].setdefault(key, []).append(callback)

    def register_attribute(self, attribute_type: type, callback: HookCallback) -> None:
        self._attribute_callbacks.setdefault(attribute_type, []).append(callback)

    def fire_before(self, identifier: Hashable, overrides: Mapping[str, Any], container: Any) -> None:
        """Fire before-resolving callbacks with ``(identifier, overrides, container)``."""
        phase = HookPhase.BEFORE_RESOLVING
        for callback in self._global[phase]:
            callback(identifier, overrides, container)
        for key, callbacks in list(self._typed[phase].items()):
            if key == identifier or (inspect.isclass(key) and inspect.isclass(identifier) and issubclass(identifier, key)):
                for callback in callbacks:
                    callback(identifier, overrides, container)

    def fire(self, phase: HookPhase, identifier: Hashable, instance: Any, container: Any) -> None:
        """Fire resolving or after-resolving callbacks with ``(instance, container)``."""
        for callback in self._global[phase]:
            callback(instance, container)
        for key, callbacks in list(self._typed[phase].items()):
            if key == identifier or (inspect.isclass(key) and isinstance(instance, key)):
                for callback in callbacks:
                    callback(instance, container)

    def fire_attribute(self, attribute: Any, instance: Any, container: Any) -> None:
        """Fire after-resolving attribute callbacks with ``(attribute, instance, container)``."""
        for attribute_type, callbacks in list(self._attribute_callbacks.items()):
            if isinstance(attribute, attribute_type):
                for callback in callbacks:
                    callback(attribute, instance, container)

    def clear(self) -> None:
        for phase in HookPhase:
            self._global[phase].clear()
            self._typed[phase].clear()
        self._attribute_callbacks.clear()
