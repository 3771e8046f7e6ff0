"""Application layer - Method injection for ``Container.call``."""

import inspect
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Tuple

from bindery.application.resolver import DependencyResolver

if TYPE_CHECKING:
    from bindery.application.container import Container


class BoundMethod:
    """Calls a callable after resolving its parameters from the container.

    Accepted callbacks:
    - ``"package.module.Class@method"`` or ``"identifier@method"``;
    - ``"package.module.Class"`` together with ``default_method``;
    - a class, made by the container, then ``default_method`` or ``__call__``;
    - a ``(target, "method")`` pair, whose target is made when it is a class or a string;
    - any other callable.

    Example:
        >>> container.call("app.http.controllers.UserController@show", {"user_id": 7})
        >>> container.call(lambda mailer: mailer.flush())
    """

    def __init__(self, resolver: DependencyResolver) -> None:
        self._resolver = resolver

    def call(
        self,
        container: "Container",
        callback: Any,
        overrides: Optional[Mapping[str, Any]] = None,
        default_method: Optional[str] = None,
    ) -> Any:
        """Resolve the callback's parameters and invoke it.

        Raises:
            TypeError: If the callback cannot be turned into a callable.
        """
        target = self._resolve_callback(container, callback, default_method)
        with container.build_stack.overrides(overrides) as frame:
            args, kwargs = self._method_dependencies(container, target, frame)
        return target(*args, **kwargs)

    def _resolve_callback(self, container: "Container", callback: Any, default_method: Optional[str]) -> Callable:
        if isinstance(callback, str):
            identifier, _, method = callback.partition("@")
            method = method or default_method
            if not identifier or not method:
                raise TypeError(f"Invalid callback provided: {callback!r}")
            return self._method_of(container.make(identifier), method)

        if isinstance(callback, (tuple, list)) and len(callback) == 2 and isinstance(callback[1], str):
            owner, method = callback
            if inspect.isclass(owner) or isinstance(owner, str):
                owner = container.make(owner)
            return self._method_of(owner, method)

        if inspect.isclass(callback):
            return self._method_of(container.make(callback), default_method or "__call__")

        if callable(callback):
            return callback

        raise TypeError(f"Invalid callback provided: {callback!r}")

    @staticmethod
    def _method_of(owner: Any, method: str) -> Callable:
        target = getattr(owner, method, None)
        if not callable(target):
            raise TypeError(f"Method [{method}] is not callable on {type(owner).__name__}.")
        return target

    def _method_dependencies(
        self, container: "Container", target: Callable, overrides: Dict[str, Any]
    ) -> Tuple[List[Any], Dict[str, Any]]:
        remaining = dict(overrides)
        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        accepts_kwargs = False

        for parameter in self._resolver.parameters_of(target):
            if parameter.kind is inspect.Parameter.VAR_KEYWORD:
                accepts_kwargs = True
                continue

            if parameter.name in remaining:
                value = remaining.pop(parameter.name)
                if parameter.variadic:
                    value = tuple(value) if isinstance(value, (list, tuple)) else (value,)
            elif parameter.cls is not None and parameter.cls in remaining:
                value = remaining.pop(parameter.cls)
                if parameter.variadic:
                    value = (value,)
            else:
                value = self._resolver.resolve_dependency(parameter, target, container)

            if parameter.variadic:
                args.extend(value)
            elif parameter.kind is inspect.Parameter.KEYWORD_ONLY:
                kwargs[parameter.name] = value
            else:
                args.append(value)

        if accepts_kwargs:
            kwargs.update({name: value for name, value in remaining.items() if isinstance(name, str)})
        return args, kwargs
