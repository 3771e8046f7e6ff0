import functools
import inspect
import types
from typing import TYPE_CHECKING, Annotated, Any, Callable, Dict, List, NamedTuple, Optional, Tuple, Union
from typing import get_args, get_origin, get_type_hints

from pydantic import ImportString, TypeAdapter, ValidationError

from bindery.application.build_stack import BuildStack
from bindery.application.contextual import MISSING
from bindery.application.hooks import LifecycleHooks
from bindery.domain import (
    BindingResolutionError,
    CircularDependencyError,
    ContextualAttribute,
    IResolver,
    UnknownIdentifierError,
    UnresolvablePrimitiveError,
    display_name,
)
from bindery.domain.attributes import attributes_of

if TYPE_CHECKING:
    from bindery.application.container import Container

_IMPORT_STRING = TypeAdapter(ImportString)

_PRIMITIVE_MODULES = frozenset({"builtins", "typing", "collections.abc"})

_UNION_TYPES: Tuple[Any, ...] = (Union, types.UnionType)


def is_factory(recipe: Any) -> bool:
    """Whether a recipe is invoked rather than built reflectively."""
    return inspect.isfunction(recipe) or inspect.ismethod(recipe) or isinstance(recipe, functools.partial)


@functools.lru_cache(maxsize=1024)
def _factory_arity(factory: Callable) -> int:
    try:
        signature = inspect.signature(factory)
    except (TypeError, ValueError):
        return 2

    positional = 0
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return 2
        if parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            positional += 1
    return min(positional, 2)


def call_factory(factory: Callable, container: Any, overrides: Dict[str, Any]) -> Any:
    """Invoke a factory with as many of ``(container, overrides)`` as it accepts."""
    return factory(*(container, overrides)[: _factory_arity(factory)])


def import_target(path: str) -> Any:
    """Import ``package.module.Name`` (or ``package.module:Name``).

    Raises:
        UnknownIdentifierError: If nothing importable lives at ``path``.
    """
    try:
        return _IMPORT_STRING.validate_python(path)
    except ValidationError as e:
        raise UnknownIdentifierError(path, "no binding exists and it is not an importable class") from e


class ParameterInfo(NamedTuple):
    """Introspected view of one parameter of a constructor or callable."""

    name: str
    kind: Any
    default: Any
    cls: Optional[type]
    nullable: bool
    attributes: Tuple[Any, ...]

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    @property
    def variadic(self) -> bool:
        return self.kind is inspect.Parameter.VAR_POSITIONAL


def _unwrap_annotation(annotation: Any) -> Tuple[Optional[type], bool, Tuple[Any, ...]]:
    """Split an annotation into ``(class or None, nullable, Annotated metadata)``."""
    attributes: Tuple[Any, ...] = ()
    nullable = False

    if get_origin(annotation) is Annotated:
        annotation, *extra = get_args(annotation)
        attributes += tuple(extra)

    if get_origin(annotation) in _UNION_TYPES:
        members = get_args(annotation)
        remaining = [member for member in members if member is not type(None)]
        nullable = len(remaining) != len(members)
        annotation = remaining[0] if len(remaining) == 1 else None
        if get_origin(annotation) is Annotated:
            annotation, *extra = get_args(annotation)
            attributes += tuple(extra)

    if inspect.isclass(annotation) and annotation.__module__ not in _PRIMITIVE_MODULES:
        return annotation, nullable, attributes
    return None, nullable, attributes


class DependencyResolver(IResolver):
    """Builds recipes and resolves constructor and callable parameters.

    Uses ``inspect`` signatures and ``typing`` hints (including ``Annotated``
    metadata) to decide, per parameter, between caller overrides, contextual
    values, container resolution and declared defaults.

    Attributes:
        _build_stack: Shared build stack of the owning container.
        _hooks: Lifecycle hooks used for attribute callbacks.
    """

    def __init__(self, build_stack: BuildStack, hooks: LifecycleHooks) -> None:
        self._build_stack = build_stack
        self._hooks = hooks

    def build(self, recipe: Any, container: "Container") -> Any:
        """Produce an object from a factory or a concrete class.

        Args:
            recipe: A factory, a class, or an import path string.
            container: The container to resolve dependencies from.

        Returns:
            The freshly built object.

        Raises:
            BindingResolutionError: If the target is not instantiable.
            UnknownIdentifierError: If an import path names nothing buildable.

        Example:
            >>> class UserService:
            ...     def __init__(self, db: DatabaseConnection, table: str = "users"):
            ...         self.db = db
            ...         self.table = table
            >>>
            >>> service = resolver.build(UserService, container)
        """
        if is_factory(recipe):
            with self._build_stack.frame(recipe):
                return call_factory(recipe, container, self._build_stack.current_overrides())

        if isinstance(recipe, str):
            target = import_target(recipe)
            if not (inspect.isclass(target) or is_factory(target)):
                raise UnknownIdentifierError(recipe, f"it imports {type(target).__name__}, not a class")
            return self.build(target, container)

        if not inspect.isclass(recipe):
            raise BindingResolutionError(
                f"Target [{display_name(recipe)}] is neither a class nor a factory.", self._build_stack.snapshot()
            )

        if inspect.isabstract(recipe) or getattr(recipe, "_is_protocol", False):
            self._raise_not_instantiable(recipe)

        if not inspect.isfunction(recipe.__init__):
            # object.__init__ or a constructor implemented in C, nothing to introspect
            with self._build_stack.frame(recipe):
                try:
                    instance = recipe()
                except TypeError as e:
                    raise BindingResolutionError(
                        f"Target [{display_name(recipe)}] cannot be built without arguments: {e}",
                        self._build_stack.snapshot(),
                    ) from e
        else:
            with self._build_stack.frame(recipe):
                args, kwargs = self.resolve_arguments(recipe, container)
            instance = recipe(*args, **kwargs)

        for attribute in attributes_of(recipe):
            self._hooks.fire_attribute(attribute, instance, container)
        return instance

    def _raise_not_instantiable(self, recipe: type) -> None:
        stack = self._build_stack.snapshot()
        if stack:
            chain = ", ".join(display_name(item) for item in stack)
            message = f"Target [{display_name(recipe)}] is not instantiable while building [{chain}]."
        else:
            message = f"Target [{display_name(recipe)}] is not instantiable."
        raise BindingResolutionError(message, stack)

    def parameters_of(self, target: Any) -> List[ParameterInfo]:
        """Introspect the parameters of a class constructor or a callable.

        Raises:
            BindingResolutionError: If the signature or type hints cannot be read.
        """
        try:
            signature = inspect.signature(target)
            if inspect.isclass(target):
                hint_source = target.__init__
            elif is_factory(target):
                hint_source = target
            else:
                hint_source = type(target).__call__
            hints = get_type_hints(getattr(hint_source, "func", hint_source), include_extras=True)
        except (NameError, TypeError, ValueError) as e:
            raise BindingResolutionError(
                f"Unable to inspect parameters of [{display_name(target)}]: {e}", self._build_stack.snapshot()
            ) from e

        parameters = []
        for name, parameter in signature.parameters.items():
            annotation = hints.get(name, parameter.annotation)
            if annotation is inspect.Parameter.empty:
                annotation = None
            cls, nullable, attributes = _unwrap_annotation(annotation)
            parameters.append(ParameterInfo(name, parameter.kind, parameter.default, cls, nullable, attributes))
        return parameters

    def resolve_arguments(self, target: Any, container: "Container") -> Tuple[List[Any], Dict[str, Any]]:
        """Resolve every parameter of ``target`` into positional and keyword arguments."""
        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        for parameter in self.parameters_of(target):
            if parameter.kind is inspect.Parameter.VAR_KEYWORD:
                continue
            value = self.resolve_dependency(parameter, target, container)
            if parameter.variadic:
                args.extend(value)
            elif parameter.kind is inspect.Parameter.KEYWORD_ONLY:
                kwargs[parameter.name] = value
            else:
                args.append(value)
        return args, kwargs

    def resolve_dependency(self, parameter: ParameterInfo, owner: Any, container: "Container") -> Any:
        """Resolve a single parameter.

        Order: caller override, ``Annotated`` contextual attribute, then the
        primitive or class rules. Variadic parameters always yield a tuple.
        """
        overrides = self._build_stack.current_overrides()
        if parameter.name in overrides:
            value = overrides[parameter.name]
            if parameter.variadic:
                value = tuple(value) if isinstance(value, (list, tuple)) else (value,)
        else:
            attribute = next((a for a in parameter.attributes if isinstance(a, ContextualAttribute)), None)
            if attribute is not None:
                value = attribute.resolve(container)
            elif parameter.cls is None:
                value = self._resolve_primitive(parameter, owner, container)
            else:
                value = self._resolve_class(parameter, container)

        for attribute in parameter.attributes:
            self._hooks.fire_attribute(attribute, value, container)
        return value

    def _resolve_primitive(self, parameter: ParameterInfo, owner: Any, container: "Container") -> Any:
        concrete = container.find_contextual(f"${parameter.name}")
        if concrete is not MISSING:
            return call_factory(concrete, container, {}) if is_factory(concrete) else concrete

        if parameter.has_default:
            return parameter.default
        if parameter.variadic:
            return ()
        if parameter.nullable:
            return None

        raise UnresolvablePrimitiveError(parameter.name, owner, self._build_stack.snapshot())

    def _resolve_class(self, parameter: ParameterInfo, container: "Container") -> Any:
        concrete = container.find_contextual(parameter.cls)
        if parameter.has_default and concrete is MISSING and not container.bound(parameter.cls):
            return parameter.default

        if parameter.variadic:
            return self._resolve_variadic_class(parameter.cls, concrete, container)
        return container.make(parameter.cls)

    def _resolve_variadic_class(self, cls: type, concrete: Any, container: "Container") -> Tuple[Any, ...]:
        try:
            if isinstance(concrete, (list, tuple)):
                return tuple(container.make(item) for item in concrete)
            return (container.make(cls),)
        except CircularDependencyError:
            raise
        except BindingResolutionError:
            return ()
