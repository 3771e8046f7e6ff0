import inspect
from typing import Any, Awaitable, Callable, Hashable

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from bindery.domain import IContainer


def create_fastapi_dependency(container: IContainer, identifier: Hashable) -> Callable[[], Any]:
    """Create a FastAPI Depends() callable that resolves from the container.

    The resolved instance lifetime follows the registration in the container
    (transient, singleton or scoped).

    Args:
        container: The container to resolve from.
        identifier: The identifier to resolve when the dependency is called.

    Returns:
        A callable that FastAPI can use with Depends().

    Example:
        >>> container = Container()
        >>> container.singleton(Clock, SystemClock)
        >>> current_clock = create_fastapi_dependency(container, Clock)
        >>> @app.get("/time")
        >>> def read_time(clock: Clock = Depends(current_clock)):
        ...     return {"now": clock.now().isoformat()}
    """

    def dependency() -> Any:
        """Resolve the dependency from the container."""
        return container.make(identifier)

    return dependency


def create_scoped_dependency(identifier: Hashable) -> Callable[[Request], Any]:
    """Create a FastAPI dependency resolving from the container attached to the request.

    Requires the ScopedContainerMiddleware to be installed.

    Args:
        identifier: The identifier to resolve.

    Returns:
        A callable that resolves from ``request.state.container``.

    Example:
        >>> unit_of_work = create_scoped_dependency("db.session")
        >>> @app.post("/orders")
        >>> def place_order(session=Depends(unit_of_work)):
        ...     return {"committed": session.commit()}
    """

    def scoped_dependency(request: Request) -> Any:
        """Resolve from the request's container."""
        if not hasattr(request.state, "container"):
            raise RuntimeError(
                "Request does not have a container attached. Did you forget to add ScopedContainerMiddleware?"
            )
        container: IContainer = request.state.container
        return container.make(identifier)

    return scoped_dependency


class ScopedContainerMiddleware(BaseHTTPMiddleware):
    """Middleware treating each HTTP request as one unit of work.

    The container is exposed as ``request.state.container``. Each request
    runs in its own container scope, so overlapping requests never share
    scoped instances and they are forgotten once the response is produced.

    Attributes:
        container: The container serving the application.

    Example:
        >>> container = Container()
        >>> container.scoped("db.session", lambda c: Session(c.make(Engine)))
        >>> api = FastAPI()
        >>> api.add_middleware(ScopedContainerMiddleware, container=container)
    """

    def __init__(self, app: FastAPI, container: IContainer):
        """Initialize the middleware.

        Args:
            app: The ASGI application being wrapped.
            container: The container serving the application.
        """
        super().__init__(app)
        self.container = container

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Attach the container, run the endpoint, then end the scope.

        Args:
            request: The incoming HTTP request.
            call_next: Downstream handler producing the response.

        Returns:
            Whatever response the downstream handler produced.
        """
        request.state.container = self.container

        with self.container.scope():
            return await call_next(request)


def create_action_endpoint(container: IContainer, action: Any) -> Callable[[Request], Awaitable[Any]]:
    """Create an endpoint that dispatches a route action through ``container.call``.

    Path parameters and the request itself are passed as overrides, every other
    parameter of the action is injected by the container.

    Args:
        container: The container used to call the action.
        action: Anything ``container.call`` accepts, e.g. ``"app.controllers.UserController@show"``.

    Returns:
        An async endpoint for ``app.add_api_route``.

    Example:
        >>> app.add_api_route("/users/{user_id}", create_action_endpoint(container, (UserController, "show")))
    """

    async def endpoint(request: Request) -> Any:
        """Call the action with the request's path parameters."""
        overrides = {**request.path_params, "request": request}
        result = container.call(action, overrides)
        if inspect.isawaitable(result):
            result = await result
        return result

    return endpoint
