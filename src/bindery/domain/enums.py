from enum import Enum


class Lifetime(str, Enum):
    """Defines the lifetime of a resolved instance.

    Attributes:
        TRANSIENT: New instance created on each resolution.
        SCOPED: Single instance per unit of work, forgotten at scope end.
        SINGLETON: Single instance shared across the entire container.
    """

    TRANSIENT = "transient"
    SCOPED = "scoped"
    SINGLETON = "singleton"

    @property
    def shared(self) -> bool:
        return self is not Lifetime.TRANSIENT

    def __str__(self) -> str:
        return self.value


class HookPhase(str, Enum):
    """Points in a resolution where lifecycle hooks are fired."""

    BEFORE_RESOLVING = "before_resolving"
    RESOLVING = "resolving"
    AFTER_RESOLVING = "after_resolving"

    def __str__(self) -> str:
        return self.value
