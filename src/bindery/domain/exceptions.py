import inspect
from typing import Any, Hashable, Optional, Sequence


def display_name(identifier: Any) -> str:
    """Human readable name for an identifier, recipe or build-stack frame."""
    if isinstance(identifier, str):
        return identifier
    if inspect.isclass(identifier) or inspect.isfunction(identifier) or inspect.ismethod(identifier):
        return identifier.__qualname__
    return repr(identifier)


class ContainerError(Exception):
    """Base exception for container errors."""


class BindingResolutionError(ContainerError):
    """Raised when a registered or buildable target cannot be produced.

    This occurs when:
    - The concrete type is abstract or a protocol.
    - Introspection of the constructor fails.
    - A required dependency cannot be produced.

    Attributes:
        build_stack: Targets under construction when the error was raised,
                     outermost first.
    """

    def __init__(self, message: str, build_stack: Optional[Sequence[Any]] = None) -> None:
        self.build_stack = list(build_stack or [])
        super().__init__(message)


class CircularDependencyError(BindingResolutionError):
    """Raised when a target is required while it is already being built.

    Attributes:
        dependency_chain: Targets involved in the cycle, first and last equal.
    """

    def __init__(self, dependency_chain: Sequence[Any]) -> None:
        self.dependency_chain = list(dependency_chain)
        message = f"Circular dependency detected: {' -> '.join(display_name(item) for item in self.dependency_chain)}"
        super().__init__(message, self.dependency_chain[:-1])


class UnresolvablePrimitiveError(BindingResolutionError):
    """Raised when a non-class parameter has nothing to be filled with.

    The parameter has no override, no contextual value, no default, and is
    neither variadic nor optional.

    Attributes:
        parameter: Name of the parameter.
        declaring: The class or callable that declares it.
    """

    def __init__(self, parameter: str, declaring: Any, build_stack: Optional[Sequence[Any]] = None) -> None:
        self.parameter = parameter
        self.declaring = declaring
        message = f"Unresolvable dependency resolving [${parameter}] in class [{display_name(declaring)}]"
        super().__init__(message, build_stack)


class AliasCycleError(ContainerError):
    """Raised when an alias would point back at itself."""

    def __init__(self, identifier: Hashable, alias: Hashable) -> None:
        self.identifier = identifier
        self.alias = alias
        if identifier == alias:
            message = f"[{display_name(identifier)}] is aliased to itself."
        else:
            message = f"Aliasing [{display_name(alias)}] to [{display_name(identifier)}] would create a cycle."
        super().__init__(message)


class UnknownIdentifierError(ContainerError, LookupError):
    """Raised when an identifier is neither registered nor buildable.

    Attributes:
        identifier: The identifier that was requested.
    """

    def __init__(self, identifier: Hashable, reason: Optional[str] = None) -> None:
        self.identifier = identifier
        self.reason = reason
        message = f"Identifier [{display_name(identifier)}] is not registered in the container"
        if reason:
            message += f". Reason: {reason}"
        super().__init__(message)
