from typing import Any, Dict, Hashable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from bindery.domain.enums import Lifetime


class Binding(BaseModel):
    """Value object representing a registered recipe for an identifier.

    Attributes:
        identifier: The canonical identifier the recipe is registered under.
        recipe: Factory function, concrete class or identifier to redirect to.
        lifetime: How long the produced instance should live.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    identifier: Hashable = Field(..., description="The identifier the recipe is registered under.")
    recipe: Any = Field(..., description="Factory, concrete class or identifier used to build the instance.")
    lifetime: Lifetime = Field(default=Lifetime.TRANSIENT, description="The lifetime of the binding.")

    @property
    def shared(self) -> bool:
        return self.lifetime.shared


class EnvironmentBinding(BaseModel):
    """A preferred binding target declared on a class, optionally per environment."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    concrete: Any = Field(..., description="The concrete class the declaring type should resolve to.")
    environments: Tuple[str, ...] = Field(
        default=(),
        description="Environments the binding applies to. Empty means unconditional.",
    )

    @property
    def unconditional(self) -> bool:
        return not self.environments


class TypeMetadata(BaseModel):
    """Declarative container metadata attached to a class by decorators.

    Attributes:
        bindings: Preferred binding targets in declaration order.
        lifetime: Lifecycle tag, if any.
        attributes: Arbitrary class-level attributes for after-resolving callbacks.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    bindings: List[EnvironmentBinding] = Field(default_factory=list)
    lifetime: Optional[Lifetime] = Field(default=None)
    attributes: List[Any] = Field(default_factory=list)

    def select_binding(self, environment: str) -> Optional[EnvironmentBinding]:
        """Pick the binding for an environment.

        The first binding naming the environment wins; otherwise the first
        unconditional binding is used.
        """
        for binding in self.bindings:
            if environment in binding.environments:
                return binding
        for binding in self.bindings:
            if binding.unconditional:
                return binding
        return None


class ResolutionContext(BaseModel):
    """Per-thread resolution state.

    Attributes:
        stack: Targets currently being built, outermost first.
        overrides: Parameter override frames, one per active resolution.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    stack: List[Any] = Field(default_factory=list, description="Targets currently being built.")
    overrides: List[Dict[str, Any]] = Field(default_factory=list, description="Parameter override frames.")
