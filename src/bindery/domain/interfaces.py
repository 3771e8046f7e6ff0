from abc import ABC, abstractmethod
from typing import Any, Callable, ContextManager, Dict, Hashable, List, Mapping, Optional

from bindery.domain.models import Binding


class IContainer(ABC):
    """Abstract interface for the container operations collaborators rely on."""

    @abstractmethod
    def bind(self, identifier: Hashable, recipe: Any = None, shared: bool = False) -> None:
        """Register a recipe for an identifier.

        Args:
            identifier: The identifier to register.
            recipe: Factory, concrete class or identifier. ``None`` binds the identifier to itself.
            shared: Whether the produced instance is cached.
        """

    @abstractmethod
    def singleton(self, identifier: Hashable, recipe: Any = None) -> None:
        """Register a shared recipe for an identifier."""

    @abstractmethod
    def instance(self, identifier: Hashable, instance: Any) -> Any:
        """Register an already built object as the shared instance of an identifier."""

    @abstractmethod
    def alias(self, identifier: Hashable, alias: Hashable) -> None:
        """Make ``alias`` resolve to the same thing as ``identifier``."""

    @abstractmethod
    def make(self, identifier: Hashable, overrides: Optional[Mapping[str, Any]] = None) -> Any:
        """Resolve an identifier.

        Args:
            identifier: The identifier to resolve.
            overrides: Constructor arguments by parameter name.
        """

    @abstractmethod
    def bound(self, identifier: Hashable) -> bool:
        """Whether the identifier has a binding, an instance or an alias."""

    @abstractmethod
    def call(
        self,
        callback: Any,
        overrides: Optional[Mapping[str, Any]] = None,
        default_method: Optional[str] = None,
    ) -> Any:
        """Call a callable, injecting its parameters."""

    @abstractmethod
    def tagged(self, tag: str) -> List[Any]:
        """Resolve every identifier registered under a tag."""

    @abstractmethod
    def forget_scoped_instances(self) -> None:
        """End the current unit of work by forgetting scoped instances."""

    @abstractmethod
    def scope(self) -> ContextManager[Any]:
        """Run a unit of work with its own scoped instances."""

    @abstractmethod
    def get_bindings(self) -> Dict[Hashable, Binding]:
        """Get a copy of the current binding registry."""


class IResolver(ABC):
    """Abstract interface for reflective construction."""

    @abstractmethod
    def build(self, recipe: Any, container: IContainer) -> Any:
        """Produce an object from a factory or a concrete class.

        Args:
            recipe: The factory or class to build.
            container: The container to resolve dependencies from.

        Returns:
            Instance with all dependencies injected.

        Raises:
            BindingResolutionError: If the recipe cannot be built.
        """


class ILifetimeManager(ABC):
    """Abstract interface for the shared instance cache."""

    @abstractmethod
    def get(self, identifier: Hashable) -> Any:
        """Return the cached instance of an identifier."""

    @abstractmethod
    def contains(self, identifier: Hashable) -> bool:
        """Whether an instance is cached for an identifier."""

    @abstractmethod
    def store(self, identifier: Hashable, instance: Any) -> None:
        """Cache an instance for an identifier."""

    @abstractmethod
    def forget(self, identifier: Hashable) -> None:
        """Drop the cached instance of an identifier."""

    @abstractmethod
    def lock_for(self, identifier: Hashable) -> ContextManager:
        """Lock guarding construction of a shared identifier."""

    @abstractmethod
    def clear_cache(self) -> None:
        """Clear every cached instance."""

    @abstractmethod
    def clear_scoped_cache(self) -> None:
        """Clear only the instances of scoped identifiers."""

    @abstractmethod
    def begin_scope(self) -> Any:
        """Install an empty scoped cache, returning a token for ``end_scope``."""

    @abstractmethod
    def end_scope(self, token: Any) -> None:
        """Restore the scoped cache that was active before ``begin_scope``."""


HookCallback = Callable[..., Any]
