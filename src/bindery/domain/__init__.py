"""
Domain layer - Core models, metadata and errors.

This layer contains the value objects, declarative metadata and error
taxonomy of the container. It has no dependencies on other layers.
"""

from .attributes import (
    ContextualAttribute,
    Give,
    Tagged,
    binds_to,
    get_type_metadata,
    scoped,
    singleton,
    with_attributes,
)
from .enums import HookPhase, Lifetime
from .exceptions import (
    AliasCycleError,
    BindingResolutionError,
    CircularDependencyError,
    ContainerError,
    UnknownIdentifierError,
    UnresolvablePrimitiveError,
    display_name,
)
from .interfaces import HookCallback, IContainer, ILifetimeManager, IResolver
from .models import Binding, EnvironmentBinding, ResolutionContext, TypeMetadata

__all__ = [
    # Enums
    "Lifetime",
    "HookPhase",
    # Exceptions
    "ContainerError",
    "BindingResolutionError",
    "CircularDependencyError",
    "UnresolvablePrimitiveError",
    "AliasCycleError",
    "UnknownIdentifierError",
    "display_name",
    # Interfaces
    "IContainer",
    "IResolver",
    "ILifetimeManager",
    "HookCallback",
    # Models
    "Binding",
    "EnvironmentBinding",
    "TypeMetadata",
    "ResolutionContext",
    # Declarative metadata
    "ContextualAttribute",
    "Give",
    "Tagged",
    "binds_to",
    "singleton",
    "scoped",
    "with_attributes",
    "get_type_metadata",
]
