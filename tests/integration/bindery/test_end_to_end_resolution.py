"""Integration tests for complete resolution scenarios."""

from abc import ABC, abstractmethod
from typing import Annotated, Optional

from bindery import Container, Give, Tagged, binds_to, singleton


class ConsoleLogger:
    def __init__(self):
        self.lines = []

    def log(self, message):
        self.lines.append(message)


class SystemClock:
    def now(self):
        return 0


class Greeter:
    def __init__(self, name: str):
        self.name = name

    def greet(self):
        return f"Hello, {self.name}!"


class TestBasicScenarios:
    """Test the canonical logger, clock and greeter scenarios."""

    def test_shared_logger(self):
        """Test that a shared factory binding returns the same logger."""
        container = Container()
        container.bind("logger", lambda c: ConsoleLogger(), shared=True)

        assert container.make("logger") is container.make("logger")

    def test_transient_clock(self):
        """Test that a transient factory binding returns distinct clocks of the same type."""
        container = Container()
        container.bind("clock", lambda c: SystemClock())

        first = container.make("clock")
        second = container.make("clock")

        assert first is not second
        assert type(first) is type(second) is SystemClock

    def test_contextual_greeter(self):
        """Test that a contextual primitive fills the greeter's name."""
        container = Container()
        container.bind("Greeter", Greeter)
        container.when(Greeter).needs("$name").give("Ada")

        greeter = container.make("Greeter")

        assert isinstance(greeter, Greeter)
        assert greeter.name == "Ada"
        assert greeter.greet() == "Hello, Ada!"


class PaymentGateway(ABC):
    @abstractmethod
    def charge(self, amount: int) -> str:
        pass


class StripeGateway(PaymentGateway):
    def __init__(self, api_key: str):
        self.api_key = api_key

    def charge(self, amount: int) -> str:
        return f"stripe:{amount}"


class FakeGateway(PaymentGateway):
    def charge(self, amount: int) -> str:
        return f"fake:{amount}"


class OrderRepository:
    def __init__(self, logger: ConsoleLogger):
        self.logger = logger
        self.orders = []

    def save(self, order):
        self.orders.append(order)
        self.logger.log(f"saved {order}")


class CheckoutService:
    def __init__(
        self,
        gateway: PaymentGateway,
        orders: OrderRepository,
        logger: ConsoleLogger,
        currency: str = "EUR",
        audit: Optional["AuditTrail"] = None,
    ):
        self.gateway = gateway
        self.orders = orders
        self.logger = logger
        self.currency = currency
        self.audit = audit

    def checkout(self, amount: int) -> str:
        receipt = self.gateway.charge(amount)
        self.orders.save(receipt)
        return receipt


class AuditTrail:
    pass


class TestApplicationGraph:
    """Test resolving a realistic service graph."""

    def make_container(self):
        container = Container()
        container.singleton(ConsoleLogger)
        container.singleton(OrderRepository)
        container.bind(PaymentGateway, StripeGateway)
        container.when(StripeGateway).needs("$api_key").give("sk_test")
        return container

    def test_graph_is_wired(self):
        """Test that every collaborator is injected."""
        container = self.make_container()

        service = container.make(CheckoutService)

        assert isinstance(service.gateway, StripeGateway)
        assert service.gateway.api_key == "sk_test"
        assert service.currency == "EUR"
        assert service.audit is None

    def test_singletons_are_shared_across_graph(self):
        """Test that the shared logger is the same everywhere."""
        container = self.make_container()

        service = container.make(CheckoutService)

        assert service.logger is service.orders.logger
        assert service.orders is container.make(OrderRepository)

    def test_checkout_flow(self):
        """Test running a use case on the resolved graph."""
        container = self.make_container()

        receipt = container.make(CheckoutService).checkout(42)

        assert receipt == "stripe:42"
        assert container.make(ConsoleLogger).lines == ["saved stripe:42"]

    def test_optional_collaborator_used_when_bound(self):
        """Test that a bound optional collaborator replaces the default."""
        container = self.make_container()
        container.singleton(AuditTrail)

        assert isinstance(container.make(CheckoutService).audit, AuditTrail)

    def test_swap_gateway_for_tests(self):
        """Test replacing an implementation at runtime."""
        container = self.make_container()
        container.bind(PaymentGateway, FakeGateway)

        assert container.make(CheckoutService).checkout(5) == "fake:5"

    def test_call_use_case(self):
        """Test invoking a use case method through method injection."""
        container = self.make_container()

        def refund(amount: int, gateway: PaymentGateway, logger: ConsoleLogger):
            logger.log(f"refund {amount}")
            return gateway.charge(-amount)

        assert container.call(refund, {"amount": 10}) == "stripe:-10"
        assert container.make(ConsoleLogger).lines == ["refund 10"]


class Formatter(ABC):
    @abstractmethod
    def format(self, value) -> str:
        pass


class JsonFormatter(Formatter):
    def format(self, value) -> str:
        return f"json({value})"


class CsvFormatter(Formatter):
    def format(self, value) -> str:
        return f"csv({value})"


@singleton
@binds_to(JsonFormatter)
@binds_to(CsvFormatter, environments=("reporting",))
class ExportFormatter(ABC):
    pass


class Exporter:
    def __init__(
        self,
        formatter: ExportFormatter,
        formatters: Annotated[list, Tagged("formatters")],
        title: Annotated[str, Give("export.title")],
    ):
        self.formatter = formatter
        self.formatters = formatters
        self.title = title


class TestDeclarativeGraph:
    """Test resolution driven by decorators and Annotated metadata."""

    def make_container(self, environment="production"):
        container = Container(environment=environment)
        container.instance("export.title", "Quarterly")
        container.tag([JsonFormatter, CsvFormatter], "formatters")
        return container

    def test_declared_binding_and_attributes(self):
        """Test that metadata and attributes drive the build."""
        container = self.make_container()

        exporter = container.make(Exporter)

        assert isinstance(exporter.formatter, JsonFormatter)
        assert [type(f) for f in exporter.formatters] == [JsonFormatter, CsvFormatter]
        assert exporter.title == "Quarterly"

    def test_declared_singleton(self):
        """Test that the declared lifetime applies to the declared binding."""
        container = self.make_container()

        assert container.make(Exporter).formatter is container.make(Exporter).formatter

    def test_environment_specific_binding(self):
        """Test that the environment picks the declared binding."""
        container = self.make_container("reporting")

        assert isinstance(container.make(Exporter).formatter, CsvFormatter)


class TestExtendersAndHooks:
    """Test extenders and hooks working together on a real graph."""

    def test_decorating_a_service(self):
        """Test wrapping a service with extenders and observing it with hooks."""

        class LoggingGateway(PaymentGateway):
            def __init__(self, inner: PaymentGateway, logger: ConsoleLogger):
                self.inner = inner
                self.logger = logger

            def charge(self, amount: int) -> str:
                self.logger.log(f"charging {amount}")
                return self.inner.charge(amount)

        container = Container()
        container.singleton(ConsoleLogger)
        container.singleton(PaymentGateway, FakeGateway)
        container.extend(PaymentGateway, lambda gateway, c: LoggingGateway(gateway, c.make(ConsoleLogger)))
        resolved = []
        container.after_resolving(PaymentGateway, lambda gateway, c: resolved.append(gateway))

        gateway = container.make(PaymentGateway)

        assert gateway.charge(3) == "fake:3"
        assert container.make(ConsoleLogger).lines == ["charging 3"]
        assert resolved[-1] is gateway
        assert container.make(PaymentGateway) is gateway
