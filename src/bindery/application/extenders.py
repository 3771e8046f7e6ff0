"""Application layer - Post-construction extenders."""

from typing import Any, Callable, Dict, Hashable, List

Extender = Callable[[Any, Any], Any]


class ExtenderPipeline:
    """Ordered decorators applied to every fresh build of an identifier."""

    def __init__(self) -> None:
        self._extenders: Dict[Hashable, List[Extender]] = {}

    def add(self, identifier: Hashable, extender: Extender) -> None:
        self._extenders.setdefault(identifier, []).append(extender)

    def extenders_for(self, identifier: Hashable) -> List[Extender]:
        return list(self._extenders.get(identifier, ()))

    def apply(self, identifier: Hashable, instance: Any, container: Any) -> Any:
        """Feed ``instance`` through every extender of ``identifier`` in registration order."""
        for extender in self._extenders.get(identifier, ()):
            instance = extender(instance, container)
        return instance

    def forget(self, identifier: Hashable) -> None:
        self._extenders.pop(identifier, None)

    def clear(self) -> None:
        self._extenders.clear()
