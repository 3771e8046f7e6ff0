"""
Declarative container metadata.

Class decorators record how a type wants to be bound and how long its
instances live. Parameter-level attributes are attached with
``typing.Annotated`` and are resolved through the container at build time.

Example:
    >>> @binds_to(SmtpMailer)
    ... @binds_to(FakeMailer, environments=("testing",))
    ... class Mailer(abc.ABC):
    ...     ...
    >>>
    >>> @singleton
    ... class SmtpMailer(Mailer):
    ...     def __init__(self, host: Annotated[str, Give("mail.host")]):
    ...         self.host = host
"""

from typing import TYPE_CHECKING, Any, Hashable, Iterable, Optional, Type, TypeVar

from bindery.domain.enums import Lifetime
from bindery.domain.models import EnvironmentBinding, TypeMetadata

if TYPE_CHECKING:
    from bindery.domain.interfaces import IContainer

T = TypeVar("T", bound=type)

METADATA_ATTRIBUTE = "__bindery_metadata__"


def get_type_metadata(cls: Any) -> Optional[TypeMetadata]:
    """Return metadata declared directly on ``cls``; subclasses do not inherit it."""
    if not isinstance(cls, type):
        return None
    return cls.__dict__.get(METADATA_ATTRIBUTE)


def _ensure_metadata(cls: type) -> TypeMetadata:
    metadata = get_type_metadata(cls)
    if metadata is None:
        metadata = TypeMetadata()
        setattr(cls, METADATA_ATTRIBUTE, metadata)
    return metadata


def binds_to(concrete: Any, environments: Optional[Iterable[str]] = None):
    """Declare the concrete class an abstract type should resolve to.

    Repeatable. Decorators apply bottom-up, so the declaration closest to the
    ``class`` statement is recorded first.
    """

    def decorator(cls: T) -> T:
        metadata = _ensure_metadata(cls)
        metadata.bindings.append(EnvironmentBinding(concrete=concrete, environments=tuple(environments or ())))
        return cls

    return decorator


def singleton(cls: T) -> T:
    """Mark a class as shared for the lifetime of the container."""
    _ensure_metadata(cls).lifetime = Lifetime.SINGLETON
    return cls


def scoped(cls: T) -> T:
    """Mark a class as shared until the current scope ends."""
    _ensure_metadata(cls).lifetime = Lifetime.SCOPED
    return cls


def with_attributes(*attributes: Any):
    """Attach arbitrary attribute objects observed by after-resolving attribute callbacks."""

    def decorator(cls: T) -> T:
        _ensure_metadata(cls).attributes.extend(attributes)
        return cls

    return decorator


class ContextualAttribute:
    """Base class for ``Annotated`` parameter attributes resolved through the container."""

    def resolve(self, container: "IContainer") -> Any:
        raise NotImplementedError


class Give(ContextualAttribute):
    """Inject whatever the container produces for an identifier."""

    def __init__(self, identifier: Hashable) -> None:
        self.identifier = identifier

    def resolve(self, container: "IContainer") -> Any:
        return container.make(self.identifier)

    def __repr__(self) -> str:
        return f"Give({self.identifier!r})"


class Tagged(ContextualAttribute):
    """Inject every instance registered under a tag."""

    def __init__(self, tag: str) -> None:
        self.tag = tag

    def resolve(self, container: "IContainer") -> Any:
        return container.tagged(self.tag)

    def __repr__(self) -> str:
        return f"Tagged({self.tag!r})"


def attributes_of(cls: Type) -> list:
    metadata = get_type_metadata(cls)
    return list(metadata.attributes) if metadata else []
