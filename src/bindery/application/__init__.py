"""
Application layer - Resolution engine and its collaborators.

This layer contains the container and the registries, caches and builders it
orchestrates. It depends only on the Domain layer.
"""

from .alias_table import AliasTable
from .bound_method import BoundMethod
from .build_stack import BuildStack, RedirectStack
from .container import Container
from .contextual import ContextualBindingBuilder, ContextualBindingMap
from .extenders import ExtenderPipeline
from .hooks import LifecycleHooks
from .lifetime_manager import LifetimeManager
from .resolver import DependencyResolver

__all__ = [
    "Container",
    "AliasTable",
    "BoundMethod",
    "BuildStack",
    "ContextualBindingBuilder",
    "ContextualBindingMap",
    "DependencyResolver",
    "ExtenderPipeline",
    "LifecycleHooks",
    "LifetimeManager",
    "RedirectStack",
]
