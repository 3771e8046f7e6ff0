import functools
import inspect
import logging
import threading
from contextlib import contextmanager, nullcontext
from typing import Any, Callable, ClassVar, Dict, Hashable, Iterable, Iterator, List, Mapping, Optional, Set, Union

from bindery.application.alias_table import AliasTable
from bindery.application.bound_method import BoundMethod
from bindery.application.build_stack import BuildStack, RedirectStack
from bindery.application.contextual import MISSING, ContextualBindingBuilder, ContextualBindingMap
from bindery.application.extenders import Extender, ExtenderPipeline
from bindery.application.hooks import LifecycleHooks
from bindery.application.lifetime_manager import LifetimeManager
from bindery.application.resolver import DependencyResolver, is_factory
from bindery.config import ContainerSettings
from bindery.domain import (
    Binding,
    BindingResolutionError,
    CircularDependencyError,
    HookCallback,
    HookPhase,
    IContainer,
    Lifetime,
    UnknownIdentifierError,
    display_name,
    get_type_metadata,
)

logger = logging.getLogger(__name__)

ReboundCallback = Callable[["Container", Any], Any]


class Container(IContainer):
    """Inversion-of-control container.

    Registers recipes under identifiers, builds concrete classes by inspecting
    their constructors, caches shared instances and runs extenders and
    lifecycle hooks around every resolution.

    Attributes:
        settings: Runtime settings (environment, thread safety).
        build_stack: Per-thread stack of targets under construction and parameter overrides.
        _bindings: Registered recipes by canonical identifier.
        _aliases: Alias table.
        _lifetime_manager: Shared instance cache and scoped identifiers.
        _contextual: Contextual binding map.
        _extenders: Post-construction extenders.
        _hooks: Lifecycle hooks.
        _resolver: Reflection-based builder.
    """

    _instance: ClassVar[Optional["Container"]] = None

    def __init__(self, settings: Optional[ContainerSettings] = None, **overrides: Any) -> None:
        """Initialize an empty container.

        Args:
            settings: Container settings. Read from ``BINDERY_*`` environment variables when omitted.
            **overrides: Individual settings overriding ``settings``.

        Example:
            >>> container = Container(environment="testing")
        """
        if settings is None:
            settings = ContainerSettings(**overrides)
        elif overrides:
            settings = settings.model_copy(update=overrides)
        self.settings = settings

        self._bindings: Dict[Hashable, Binding] = {}
        self._aliases = AliasTable()
        self._lifetime_manager = LifetimeManager(thread_safe=settings.thread_safe)
        self._contextual = ContextualBindingMap()
        self._extenders = ExtenderPipeline()
        self._hooks = LifecycleHooks()
        self._rebound_callbacks: Dict[Hashable, List[ReboundCallback]] = {}
        self._tags: Dict[str, List[Hashable]] = {}
        self._resolved: Set[Hashable] = set()
        self._metadata_checked: Set[Hashable] = set()
        self._lock = threading.RLock() if settings.thread_safe else nullcontext()

        self.build_stack = BuildStack()
        self._redirects = RedirectStack()
        self._resolver = DependencyResolver(self.build_stack, self._hooks)
        self._bound_method = BoundMethod(self._resolver)

    @property
    def environment(self) -> str:
        return self.settings.environment

    # Global container

    @classmethod
    def get_instance(cls) -> "Container":
        """Get the process-wide container, creating it on first use.

        Reserved for application entry points; library code should receive
        the container it works with.
        """
        if Container._instance is None:
            Container._instance = cls()
        return Container._instance

    @classmethod
    def set_instance(cls, container: Optional["Container"] = None) -> Optional["Container"]:
        """Replace the process-wide container, or tear it down with ``None``."""
        Container._instance = container
        return container

    # Registration

    def bind(self, identifier: Hashable, recipe: Any = None, shared: bool = False) -> None:
        """Register a recipe for an identifier.

        Replacing a binding drops the cached instance. If the identifier was
        already resolved, rebinding callbacks fire with the new instance.

        Args:
            identifier: A class or string identifier.
            recipe: A factory ``(container, overrides)``, a class, or another identifier.
                ``None`` binds the identifier to itself.
            shared: Whether the built instance is cached.

        Raises:
            TypeError: If the recipe is not a factory, a class or an identifier string.

        Example:
            >>> container.bind("clock", lambda c: SystemClock())
            >>> container.bind(Mailer, SmtpMailer, shared=True)
        """
        self._register(identifier, recipe, Lifetime.SINGLETON if shared else Lifetime.TRANSIENT)

    def bind_if(self, identifier: Hashable, recipe: Any = None, shared: bool = False) -> None:
        """Bind only if the identifier is not bound yet."""
        if not self.bound(identifier):
            self.bind(identifier, recipe, shared)

    def singleton(self, identifier: Hashable, recipe: Any = None) -> None:
        """Register a shared binding: built once, then reused."""
        self._register(identifier, recipe, Lifetime.SINGLETON)

    def singleton_if(self, identifier: Hashable, recipe: Any = None) -> None:
        if not self.bound(identifier):
            self.singleton(identifier, recipe)

    def scoped(self, identifier: Hashable, recipe: Any = None) -> None:
        """Register a binding shared until the current scope ends.

        Example:
            >>> container.scoped(RequestContext)
            >>> with container.scope():
            ...     assert container.make(RequestContext) is container.make(RequestContext)
        """
        self._register(identifier, recipe, Lifetime.SCOPED)

    def scoped_if(self, identifier: Hashable, recipe: Any = None) -> None:
        if not self.bound(identifier):
            self.scoped(identifier, recipe)

    def _register(self, identifier: Hashable, recipe: Any, lifetime: Lifetime) -> None:
        if recipe is None:
            recipe = identifier
        if not (is_factory(recipe) or inspect.isclass(recipe) or isinstance(recipe, str)):
            raise TypeError(
                f"Cannot bind [{display_name(identifier)}] to {type(recipe).__name__}; "
                "expected a factory, a class or an identifier."
            )

        with self._lock:
            self._lifetime_manager.forget(identifier)
            self._aliases.drop(identifier)
            self._bindings[identifier] = Binding(identifier=identifier, recipe=recipe, lifetime=lifetime)
            if lifetime is Lifetime.SCOPED:
                self._lifetime_manager.mark_scoped(identifier)
            else:
                self._lifetime_manager.unmark_scoped(identifier)
            was_resolved = self.resolved(identifier)

        logger.debug(f"Bound {display_name(identifier)} as {lifetime}")
        if was_resolved:
            self._rebound(identifier)

    def instance(self, identifier: Hashable, instance: Any, alias: Optional[Hashable] = None) -> Any:
        """Register an already built object as the shared instance of an identifier.

        Args:
            identifier: The identifier to register.
            instance: The object to return for it.
            alias: Optional alias registered for ``identifier`` at the same time.

        Returns:
            The instance.
        """
        if alias is not None:
            self.alias(identifier, alias)

        with self._lock:
            was_bound = self.bound(identifier)
            self._aliases.drop(identifier)
            self._lifetime_manager.store(identifier, instance)

        logger.debug(f"Registered instance for {display_name(identifier)}")
        if was_bound:
            self._rebound(identifier)
        return instance

    def alias(self, identifier: Hashable, alias: Hashable) -> None:
        """Make ``alias`` another name for ``identifier``.

        Raises:
            AliasCycleError: If the alias would resolve to itself.
        """
        with self._lock:
            self._aliases.alias(identifier, alias)

    def set(self, identifier: Hashable, recipe: Any) -> "Container":
        """Replace the recipe of a bound identifier, keeping its lifetime.

        Raises:
            UnknownIdentifierError: If the identifier is not bound.
        """
        if not self.bound(identifier):
            raise UnknownIdentifierError(identifier)
        binding = self._bindings.get(identifier)
        self._register(identifier, recipe, binding.lifetime if binding else Lifetime.TRANSIENT)
        return self

    def tag(self, identifiers: Union[Hashable, Iterable[Hashable]], tags: Union[str, Iterable[str]]) -> None:
        """Group identifiers under one or more tags."""
        if not isinstance(identifiers, (list, tuple, set, frozenset)):
            identifiers = [identifiers]
        if isinstance(tags, str):
            tags = [tags]

        with self._lock:
            for tag in tags:
                tagged = self._tags.setdefault(tag, [])
                for identifier in identifiers:
                    if identifier not in tagged:
                        tagged.append(identifier)

    def tagged(self, tag: str) -> List[Any]:
        """Resolve every identifier registered under ``tag``, in tagging order."""
        return [self.make(identifier) for identifier in list(self._tags.get(tag, ()))]

    def when(self, *targets: Hashable) -> ContextualBindingBuilder:
        """Start a contextual binding for one or more build targets.

        Example:
            >>> container.when(Greeter).needs("$name").give("Ada")
        """
        return ContextualBindingBuilder(self, targets)

    def add_contextual_binding(self, target: Hashable, dependency: Hashable, value: Any) -> None:
        if not (isinstance(dependency, str) and dependency.startswith("$")):
            dependency = self._aliases.canonical(dependency)
        with self._lock:
            self._contextual.add(self._aliases.canonical(target), dependency, value)

    def find_contextual(self, dependency: Hashable) -> Any:
        """Contextual value of ``dependency`` for the target being built, or ``MISSING``."""
        if not (isinstance(dependency, str) and dependency.startswith("$")):
            dependency = self._aliases.canonical(dependency)
        return self._contextual.find(
            self.build_stack.top(), dependency, self._aliases.aliases_of(dependency)
        )

    # Extenders and lifecycle hooks

    def extend(self, identifier: Hashable, extender: Extender) -> None:
        """Decorate an identifier's instances with ``extender(instance, container)``.

        A cached instance is extended immediately; otherwise the extender runs
        on every later build, after previously registered extenders.
        """
        identifier = self._aliases.canonical(identifier)

        with self._lifetime_manager.lock_for(identifier):
            if self._lifetime_manager.contains(identifier):
                extended = extender(self._lifetime_manager.get(identifier), self)
                self._lifetime_manager.store(identifier, extended)
                rebind = True
            else:
                self._extenders.add(identifier, extender)
                rebind = self.resolved(identifier)

        if rebind:
            self._rebound(identifier)

    def forget_extenders(self, identifier: Hashable) -> None:
        self._extenders.forget(self._aliases.canonical(identifier))

    def extenders_for(self, identifier: Hashable) -> List[Extender]:
        return self._extenders.extenders_for(self._aliases.canonical(identifier))

    def before_resolving(self, identifier: Any, callback: Optional[HookCallback] = None) -> None:
        """Register ``callback(identifier, overrides, container)``; a lone callable is global."""
        self._register_hook(HookPhase.BEFORE_RESOLVING, identifier, callback)

    def resolving(self, identifier: Any, callback: Optional[HookCallback] = None) -> None:
        """Register ``callback(instance, container)``; a lone callable is global."""
        self._register_hook(HookPhase.RESOLVING, identifier, callback)

    def after_resolving(self, identifier: Any, callback: Optional[HookCallback] = None) -> None:
        """Register ``callback(instance, container)``; a lone callable is global."""
        self._register_hook(HookPhase.AFTER_RESOLVING, identifier, callback)

    def after_resolving_attribute(self, attribute_type: type, callback: HookCallback) -> None:
        """Register ``callback(attribute, instance, container)`` for a declarative attribute type."""
        with self._lock:
            self._hooks.register_attribute(attribute_type, callback)

    def _register_hook(self, phase: HookPhase, identifier: Any, callback: Optional[HookCallback]) -> None:
        with self._lock:
            if callback is None:
                self._hooks.register(phase, None, identifier)
            else:
                self._hooks.register(phase, self._aliases.canonical(identifier), callback)

    def rebinding(self, identifier: Hashable, callback: ReboundCallback) -> Any:
        """Register ``callback(container, instance)`` fired when the identifier is rebound.

        Returns:
            The current instance if the identifier is bound, else ``None``.
        """
        identifier = self._aliases.canonical(identifier)
        with self._lock:
            self._rebound_callbacks.setdefault(identifier, []).append(callback)
        if self.bound(identifier):
            return self.make(identifier)
        return None

    def refresh(self, identifier: Hashable, target: Any, method: str) -> Any:
        """Call ``target.method(instance)`` whenever the identifier is rebound."""
        return self.rebinding(identifier, lambda container, instance: getattr(target, method)(instance))

    def _rebound(self, identifier: Hashable) -> None:
        callbacks = self._rebound_callbacks.get(self._aliases.canonical(identifier), [])
        instance = self.make(identifier)
        logger.debug(f"Rebound {display_name(identifier)}, notifying {len(callbacks)} callback(s)")
        for callback in list(callbacks):
            callback(self, instance)

    # Resolution

    def make(self, identifier: Hashable, overrides: Optional[Mapping[str, Any]] = None) -> Any:
        """Resolve an identifier.

        Args:
            identifier: The identifier to resolve.
            overrides: Constructor arguments by parameter name. A non-empty map
                bypasses the shared instance cache and is never cached.

        Returns:
            The resolved object.

        Raises:
            BindingResolutionError: If the target cannot be built.
            UnknownIdentifierError: If the identifier is neither bound nor buildable.

        Example:
            >>> logger = container.make("logger")
            >>> report = container.make(ReportService, {"title": "Q3"})
        """
        return self._resolve(identifier, overrides)

    def make_with(self, identifier: Hashable, overrides: Optional[Mapping[str, Any]] = None) -> Any:
        return self.make(identifier, overrides)

    def get(self, identifier: Hashable) -> Any:
        """Resolve an identifier, reporting unregistered failures as ``UnknownIdentifierError``."""
        try:
            return self.make(identifier)
        except BindingResolutionError as e:
            if self.has(identifier) or isinstance(e, CircularDependencyError):
                raise
            raise UnknownIdentifierError(identifier, str(e)) from e

    def factory(self, identifier: Hashable) -> Callable[[], Any]:
        """Return a zero-argument callable that resolves ``identifier`` on each call."""
        return functools.partial(self.make, identifier)

    def call(
        self,
        callback: Any,
        overrides: Optional[Mapping[str, Any]] = None,
        default_method: Optional[str] = None,
    ) -> Any:
        """Call a callable, resolving its parameters like constructor parameters.

        Example:
            >>> container.call("app.controllers.UserController@show", {"user_id": 1})
            >>> container.call(UserController, default_method="index")
        """
        return self._bound_method.call(self, callback, overrides, default_method)

    def _resolve(
        self, identifier: Hashable, overrides: Optional[Mapping[str, Any]] = None, raise_events: bool = True
    ) -> Any:
        identifier = self._aliases.canonical(identifier)
        self._apply_declared_metadata(identifier)
        overrides = dict(overrides or {})

        if raise_events:
            self._hooks.fire_before(identifier, overrides, self)

        concrete = self.find_contextual(identifier)
        needs_contextual_build = bool(overrides) or concrete is not MISSING

        if needs_contextual_build or not self.is_shared(identifier):
            return self._build_and_store(identifier, overrides, concrete, needs_contextual_build, raise_events)

        with self._lifetime_manager.lock_for(identifier):
            if self._lifetime_manager.contains(identifier):
                instance = self._lifetime_manager.get(identifier)
                if raise_events:
                    self._fire_resolving(identifier, instance)
                return instance
            return self._build_and_store(identifier, overrides, concrete, needs_contextual_build, raise_events)

    def _build_and_store(
        self,
        identifier: Hashable,
        overrides: Dict[str, Any],
        concrete: Any,
        needs_contextual_build: bool,
        raise_events: bool,
    ) -> Any:
        with self.build_stack.overrides(overrides):
            recipe = concrete if concrete is not MISSING else self._recipe_for(identifier)

            if isinstance(recipe, (list, tuple)):
                raise BindingResolutionError(
                    f"Contextual binding for [{display_name(identifier)}] is a sequence; "
                    "only variadic parameters accept sequences.",
                    self.build_stack.snapshot(),
                )

            if recipe is identifier or recipe == identifier or is_factory(recipe):
                instance = self._resolver.build(recipe, self)
            else:
                with self._redirects.frame(self.build_stack.top(), identifier):
                    instance = self._resolve(recipe, overrides)

            instance = self._extenders.apply(identifier, instance, self)

            if not needs_contextual_build and self.is_shared(identifier):
                self._lifetime_manager.store(identifier, instance)

            if raise_events:
                self._fire_resolving(identifier, instance)

            if not needs_contextual_build:
                self._resolved.add(identifier)

        return instance

    def _recipe_for(self, identifier: Hashable) -> Any:
        binding = self._bindings.get(identifier)
        return binding.recipe if binding is not None else identifier

    def _fire_resolving(self, identifier: Hashable, instance: Any) -> None:
        self._hooks.fire(HookPhase.RESOLVING, identifier, instance, self)
        self._hooks.fire(HookPhase.AFTER_RESOLVING, identifier, instance, self)

    def _apply_declared_metadata(self, identifier: Hashable) -> None:
        """Turn ``@binds_to``/``@singleton``/``@scoped`` metadata into registrations, once per identifier."""
        if identifier in self._metadata_checked:
            return

        with self._lock:
            if identifier in self._metadata_checked:
                return
            self._metadata_checked.add(identifier)

            metadata = get_type_metadata(identifier)
            if metadata is None or identifier in self._bindings:
                return

            target = metadata.select_binding(self.environment)
            if target is not None:
                self._bindings[identifier] = Binding(
                    identifier=identifier,
                    recipe=target.concrete,
                    lifetime=metadata.lifetime or Lifetime.TRANSIENT,
                )
                logger.debug(f"Bound {display_name(identifier)} to {display_name(target.concrete)} from metadata")
            if metadata.lifetime is Lifetime.SCOPED:
                self._lifetime_manager.mark_scoped(identifier)

    # Lifecycle queries

    def is_shared(self, identifier: Hashable) -> bool:
        """Whether resolutions of ``identifier`` are cached."""
        identifier = self._aliases.canonical(identifier)
        self._apply_declared_metadata(identifier)

        if self._lifetime_manager.contains(identifier):
            return True
        binding = self._bindings.get(identifier)
        if binding is not None:
            return binding.shared
        metadata = get_type_metadata(identifier)
        return metadata is not None and metadata.lifetime is not None

    def resolved(self, identifier: Hashable) -> bool:
        """Whether the identifier was resolved or has a cached instance."""
        identifier = self._aliases.canonical(identifier)
        return identifier in self._resolved or self._lifetime_manager.contains(identifier)

    def bound(self, identifier: Hashable) -> bool:
        return (
            identifier in self._bindings
            or self._lifetime_manager.contains(identifier)
            or self._aliases.is_alias(identifier)
        )

    def has(self, identifier: Hashable) -> bool:
        return self.bound(identifier)

    def is_alias(self, name: Hashable) -> bool:
        return self._aliases.is_alias(name)

    def get_alias(self, name: Hashable) -> Hashable:
        """Canonical identifier behind ``name``."""
        return self._aliases.canonical(name)

    def get_aliases(self) -> Dict[Hashable, Hashable]:
        return self._aliases.as_dict()

    def get_bindings(self) -> Dict[Hashable, Binding]:
        return dict(self._bindings)

    def keys(self) -> List[Hashable]:
        return list(self._bindings)

    # Forgetting state

    def forget_instance(self, identifier: Hashable) -> None:
        self._lifetime_manager.forget(identifier)

    def forget_instances(self) -> None:
        self._lifetime_manager.clear_cache()

    def forget_scoped_instances(self) -> None:
        """End the current unit of work: scoped instances are rebuilt on next resolution."""
        self._lifetime_manager.clear_scoped_cache()

    @contextmanager
    def scope(self) -> Iterator["Container"]:
        """Run a unit of work with its own scoped instances.

        The scope belongs to the current context, so concurrent tasks or
        threads each entering a scope never share scoped instances. Scoped
        instances are forgotten when the block exits and the enclosing
        scope, if any, becomes current again.
        """
        token = self._lifetime_manager.begin_scope()
        try:
            yield self
        finally:
            self._lifetime_manager.end_scope(token)
            logger.debug("Scope ended")

    def remove(self, identifier: Hashable) -> None:
        """Remove every trace of an identifier: binding, instance, resolved flag and aliases to it."""
        with self._lock:
            self._bindings.pop(identifier, None)
            self._lifetime_manager.forget(identifier)
            self._lifetime_manager.unmark_scoped(identifier)
            self._resolved.discard(identifier)
            self._metadata_checked.discard(identifier)
            self._aliases.prune_target(identifier)
            self._aliases.drop(identifier)
        logger.debug(f"Removed {display_name(identifier)}")

    def flush(self) -> None:
        """Clear all bindings, instances, aliases, resolved flags and tags.

        Hooks, extenders, contextual bindings and rebinding callbacks are kept.
        """
        with self._lock:
            self._bindings.clear()
            self._aliases.clear()
            self._lifetime_manager.reset()
            self._resolved.clear()
            self._metadata_checked.clear()
            self._tags.clear()
        logger.debug("Container flushed")

    # Indexer access

    def __getitem__(self, identifier: Hashable) -> Any:
        return self.make(identifier)

    def __setitem__(self, identifier: Hashable, value: Any) -> None:
        self.bind(identifier, value if is_factory(value) else (lambda: value))

    def __contains__(self, identifier: Hashable) -> bool:
        return self.bound(identifier)

    def __delitem__(self, identifier: Hashable) -> None:
        self.remove(identifier)
