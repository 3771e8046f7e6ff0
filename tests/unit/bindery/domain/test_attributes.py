"""Unit tests for declarative container metadata."""

import pytest

from bindery.application.container import Container
from bindery.domain.attributes import (
    ContextualAttribute,
    Give,
    Tagged,
    attributes_of,
    binds_to,
    get_type_metadata,
    scoped,
    singleton,
    with_attributes,
)
from bindery.domain.enums import Lifetime


class TestClassDecorators:
    """Test cases for class-level metadata decorators."""

    def test_undecorated_class_has_no_metadata(self):
        """Test that plain classes carry no metadata."""

        class Plain:
            pass

        assert get_type_metadata(Plain) is None
        assert attributes_of(Plain) == []

    def test_non_class_has_no_metadata(self):
        """Test that string identifiers never carry metadata."""
        assert get_type_metadata("logger") is None

    def test_singleton_decorator(self):
        """Test that @singleton records a singleton lifetime."""

        @singleton
        class Config:
            pass

        assert get_type_metadata(Config).lifetime is Lifetime.SINGLETON

    def test_scoped_decorator(self):
        """Test that @scoped records a scoped lifetime."""

        @scoped
        class RequestContext:
            pass

        assert get_type_metadata(RequestContext).lifetime is Lifetime.SCOPED

    def test_binds_to_records_declaration_order(self):
        """Test that the decorator closest to the class is recorded first."""

        class SmtpMailer:
            pass

        class FakeMailer:
            pass

        @binds_to(SmtpMailer)
        @binds_to(FakeMailer, environments=["testing"])
        class Mailer:
            pass

        bindings = get_type_metadata(Mailer).bindings

        assert [binding.concrete for binding in bindings] == [FakeMailer, SmtpMailer]
        assert bindings[0].environments == ("testing",)
        assert bindings[1].unconditional is True

    def test_decorators_combine(self):
        """Test that lifetime and binding metadata live side by side."""

        class Impl:
            pass

        @singleton
        @binds_to(Impl)
        class Service:
            pass

        metadata = get_type_metadata(Service)

        assert metadata.lifetime is Lifetime.SINGLETON
        assert metadata.select_binding("production").concrete is Impl

    def test_metadata_is_not_inherited(self):
        """Test that subclasses do not pick up their parent's metadata."""

        @singleton
        class Base:
            pass

        class Child(Base):
            pass

        assert get_type_metadata(Base) is not None
        assert get_type_metadata(Child) is None

    def test_with_attributes(self):
        """Test that arbitrary attribute objects are recorded in order."""
        first, second = object(), object()

        @with_attributes(first, second)
        class Listener:
            pass

        assert attributes_of(Listener) == [first, second]


class TestContextualAttributes:
    """Test cases for Annotated parameter attributes."""

    def test_base_attribute_must_be_specialised(self):
        """Test that the base class cannot resolve anything."""
        with pytest.raises(NotImplementedError):
            ContextualAttribute().resolve(Container())

    def test_give_resolves_identifier(self):
        """Test that Give resolves its identifier from the container."""
        container = Container()
        container.instance("config.name", "bindery")

        assert Give("config.name").resolve(container) == "bindery"

    def test_tagged_resolves_tag(self):
        """Test that Tagged resolves every tagged identifier."""
        container = Container()
        container.instance("first", 1)
        container.instance("second", 2)
        container.tag(["first", "second"], "numbers")

        assert Tagged("numbers").resolve(container) == [1, 2]

    def test_attribute_repr(self):
        """Test readable representations for diagnostics."""
        assert repr(Give("db")) == "Give('db')"
        assert repr(Tagged("reports")) == "Tagged('reports')"
