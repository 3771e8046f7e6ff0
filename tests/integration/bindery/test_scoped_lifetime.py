"""Integration tests for scoped lifetimes and units of work."""

import itertools

from bindery import Container, scoped


class Database:
    pass


class UnitOfWork:
    _ids = itertools.count(1)

    def __init__(self, db: Database):
        self.db = db
        self.id = next(self._ids)


class UserRepository:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow


class OrderRepository:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow


@scoped
class RequestContext:
    pass


class TestScopedLifetime:
    """Test scoped identifiers across units of work."""

    def make_container(self):
        container = Container()
        container.singleton(Database)
        container.scoped(UnitOfWork)
        return container

    def test_scoped_instance_shared_within_scope(self):
        """Test that repositories in one unit of work share it."""
        container = self.make_container()

        with container.scope():
            users = container.make(UserRepository)
            orders = container.make(OrderRepository)

        assert users.uow is orders.uow

    def test_scoped_instance_renewed_per_scope(self):
        """Test that each unit of work gets its own scoped instance."""
        container = self.make_container()

        with container.scope():
            first = container.make(UnitOfWork)
        with container.scope():
            second = container.make(UnitOfWork)

        assert first is not second
        assert first.id != second.id

    def test_singletons_outlive_scopes(self):
        """Test that singleton collaborators of scoped instances are kept."""
        container = self.make_container()

        with container.scope():
            first = container.make(UnitOfWork)
        with container.scope():
            second = container.make(UnitOfWork)

        assert first.db is second.db

    def test_declared_scoped_class(self):
        """Test that @scoped classes behave like scoped registrations."""
        container = Container()

        with container.scope():
            first = container.make(RequestContext)
            assert container.make(RequestContext) is first

        assert container.make(RequestContext) is not first

    def test_override_inside_scope_is_not_cached(self):
        """Test that an overridden build does not replace the scoped instance."""
        container = self.make_container()
        replacement = Database()

        with container.scope():
            shared = container.make(UnitOfWork)
            overridden = container.make(UnitOfWork, {"db": replacement})

            assert overridden.db is replacement
            assert container.make(UnitOfWork) is shared

    def test_flush_forgets_scoped_registrations(self):
        """Test that flushing drops the scoped set along with the bindings."""
        container = self.make_container()
        container.flush()
        container.singleton(UnitOfWork)
        first = container.make(UnitOfWork)

        container.forget_scoped_instances()

        assert container.make(UnitOfWork) is first
