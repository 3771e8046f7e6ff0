"""
bindery: Type-hint driven Inversion-of-Control container.

Public API exports for the bindery package.
"""

# Application exports
from bindery.application.container import Container

# Configuration
from bindery.config import ContainerSettings

# Domain exports
from bindery.domain.attributes import ContextualAttribute, Give, Tagged, binds_to, scoped, singleton, with_attributes
from bindery.domain.enums import Lifetime
from bindery.domain.exceptions import (
    AliasCycleError,
    BindingResolutionError,
    CircularDependencyError,
    ContainerError,
    UnknownIdentifierError,
    UnresolvablePrimitiveError,
)

__version__ = "0.1.0"

__all__ = [
    # Container
    "Container",
    "ContainerSettings",
    # Enums
    "Lifetime",
    # Declarative metadata
    "binds_to",
    "singleton",
    "scoped",
    "with_attributes",
    "ContextualAttribute",
    "Give",
    "Tagged",
    # Exceptions
    "ContainerError",
    "BindingResolutionError",
    "CircularDependencyError",
    "UnresolvablePrimitiveError",
    "AliasCycleError",
    "UnknownIdentifierError",
]
