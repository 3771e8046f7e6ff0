"""Integration tests for edge cases and unusual scenarios."""

from abc import ABC, abstractmethod
from typing import Optional

import pytest

from bindery import (
    AliasCycleError,
    BindingResolutionError,
    CircularDependencyError,
    Container,
    UnknownIdentifierError,
    UnresolvablePrimitiveError,
)


class Repository(ABC):
    @abstractmethod
    def find(self, key):
        pass


class Service:
    def __init__(self, repository: Repository):
        self.repository = repository


class Controller:
    def __init__(self, service: Service):
        self.service = service


class NodeA:
    def __init__(self, c: "NodeC"):
        self.c = c


class NodeB:
    def __init__(self, a: NodeA):
        self.a = a


class NodeC:
    def __init__(self, b: NodeB):
        self.b = b


class Selfish:
    def __init__(self, me: "Selfish"):
        self.me = me


class TestErrorReporting:
    """Test that failures deep in a graph are reported with context."""

    def test_not_instantiable_names_full_chain(self):
        """Test that the error lists every target under construction."""
        container = Container()

        with pytest.raises(BindingResolutionError) as exc_info:
            container.make(Controller)

        assert exc_info.value.build_stack == [Controller, Service]
        assert "Repository" in str(exc_info.value)
        assert "Controller, " in str(exc_info.value)

    def test_unresolvable_primitive_deep_in_graph(self):
        """Test that primitive failures propagate unchanged."""

        class Connection:
            def __init__(self, dsn: str):
                self.dsn = dsn

        class Store:
            def __init__(self, connection: Connection):
                self.connection = connection

        container = Container()

        with pytest.raises(UnresolvablePrimitiveError) as exc_info:
            container.make(Store)

        assert exc_info.value.declaring is Connection
        assert exc_info.value.build_stack == [Store, Connection]

    def test_state_is_clean_after_failure(self):
        """Test that a failure leaves nothing behind for the next resolution."""
        container = Container()

        with pytest.raises(BindingResolutionError):
            container.make(Controller)

        assert container.build_stack.depth == 0
        assert container.build_stack.current_overrides() == {}
        assert container.resolved(Controller) is False

    def test_failure_fixed_by_registration(self):
        """Test that re-invoking make after registering the missing binding succeeds."""

        class MemoryRepository(Repository):
            def find(self, key):
                return key

        container = Container()
        with pytest.raises(BindingResolutionError):
            container.make(Controller)

        container.bind(Repository, MemoryRepository)

        assert container.make(Controller).service.repository.find("x") == "x"

    def test_failing_factory_propagates(self):
        """Test that exceptions from factories are not wrapped."""
        container = Container()

        def broken(c):
            raise ConnectionError("database unavailable")

        container.singleton("db", broken)

        with pytest.raises(ConnectionError):
            container.make("db")
        assert container.resolved("db") is False
        assert container.build_stack.depth == 0

    def test_get_distinguishes_unknown_from_broken(self):
        """Test that get separates unregistered identifiers from broken ones."""
        container = Container()
        container.bind(Service)

        with pytest.raises(UnknownIdentifierError):
            container.get(Repository)
        with pytest.raises(BindingResolutionError):
            container.get(Service)


class TestCycleSafety:
    """Test that cyclic graphs raise instead of overflowing the stack."""

    def test_three_node_cycle(self):
        """Test a cycle spanning three classes."""
        container = Container()

        with pytest.raises(CircularDependencyError) as exc_info:
            container.make(NodeB)

        assert exc_info.value.dependency_chain == [NodeB, NodeA, NodeC, NodeB]

    def test_self_dependency(self):
        """Test a class depending on itself."""
        container = Container()

        with pytest.raises(CircularDependencyError, match="Selfish -> Selfish"):
            container.make(Selfish)

    def test_get_reports_cycle_of_unregistered_graph(self):
        """Test that get keeps the cycle diagnostics of an autowired graph."""
        with pytest.raises(CircularDependencyError) as exc_info:
            Container().get(NodeA)

        assert exc_info.value.dependency_chain == [NodeA, NodeC, NodeB, NodeA]

    def test_cycle_through_aliases(self):
        """Test that redirect cycles through aliases are detected."""
        container = Container()
        container.bind("cache", "cache.redis")
        container.alias("store", "cache.redis")
        container.bind("store", "cache")

        with pytest.raises(BindingResolutionError):
            container.make("cache")

    def test_alias_cycle_rejected_at_registration(self):
        """Test that an alias loop is refused before any resolution."""
        container = Container()
        container.alias("a", "b")
        container.alias("b", "c")

        with pytest.raises(AliasCycleError):
            container.alias("c", "a")


class TestUnusualRecipes:
    """Test unusual but valid registrations."""

    def test_bound_method_factory(self):
        """Test that a bound method can act as a factory."""

        class Settings:
            def __init__(self):
                self.values = {"debug": True}

            def make_debug(self, container):
                return self.values["debug"]

        container = Container()
        container.bind("debug", Settings().make_debug)

        assert container.make("debug") is True

    def test_identifier_redirect_chain(self):
        """Test that string identifiers can redirect to other identifiers."""
        container = Container()
        container.singleton("db.primary", lambda: object())
        container.bind("db", "db.primary")

        assert container.make("db") is container.make("db.primary")

    def test_none_instance(self):
        """Test that None can be registered as an instance."""
        container = Container()
        container.instance("nothing", None)

        assert container.make("nothing") is None
        assert container.bound("nothing") is True

    def test_optional_class_dependency_with_default(self):
        """Test that an unbound optional collaborator keeps its default."""

        class Cache:
            pass

        class Service:
            def __init__(self, cache: Optional[Cache] = None):
                self.cache = cache

        assert Container().make(Service).cache is None

    def test_class_without_annotations_uses_defaults(self):
        """Test that untyped parameters with defaults are fine."""

        class Legacy:
            def __init__(self, retries=3, timeout=None):
                self.retries = retries
                self.timeout = timeout

        legacy = Container().make(Legacy)

        assert legacy.retries == 3
        assert legacy.timeout is None

    def test_tuple_identifier(self):
        """Test that any hashable value can be an identifier."""
        container = Container()
        container.bind(("cache", "default"), lambda: "memory")

        assert container.make(("cache", "default")) == "memory"
