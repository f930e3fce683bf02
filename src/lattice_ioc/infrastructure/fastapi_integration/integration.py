import logging
from typing import Any, Awaitable, Callable, Type, TypeVar, Union

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from lattice_ioc.application import Container
from lattice_ioc.domain import ScopeContext, TeardownError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCOPE_CONTEXT_STATE = "scope_context"


def create_fastapi_dependency(container: Container, name: str) -> Callable[[], Any]:
    """Create a FastAPI Depends() callable that looks up a component by name.

    The instance follows its definition's scope: container-lifetime components
    are shared, per-resolution components are fresh on every request.

    Args:
        container: The built container to look up from.
        name: Definition name.

    Returns:
        A callable that FastAPI can use with Depends().

    Example:
        >>> get_users = create_fastapi_dependency(container, "user_service")
        >>>
        >>> @app.get("/users")
        >>> def list_users(service: UserService = Depends(get_users)):
        ...     return service.list()
    """

    def dependency() -> Any:
        """Look the component up in the container."""
        return container.get(name)

    return dependency


def create_capability_dependency(container: Container, capability: Union[Type[T], Any]) -> Callable[[], T]:
    """Create a FastAPI Depends() callable that looks up a capability provider.

    Args:
        container: The built container to look up from.
        capability: Capability key, typically an abstract type.

    Returns:
        A callable that FastAPI can use with Depends().
    """

    def dependency() -> T:
        """Look the capability provider up in the container."""
        return container.get_by_capability(capability)

    return dependency


def create_context_dependency(container: Container, name: str) -> Callable[[Request], Any]:
    """Create a FastAPI dependency resolving within the request's scope context.

    Requires ContextScopeMiddleware to be installed. The request's context is
    activated explicitly, so the lookup works in whichever thread or task
    FastAPI runs the dependency.

    Args:
        container: The container the middleware was installed with.
        name: Definition name, typically a contextual one.

    Returns:
        A callable that resolves from the request's scope context.

    Example:
        >>> app.add_middleware(ContextScopeMiddleware, container=container)
        >>> get_request_state = create_context_dependency(container, "request_state")
        >>>
        >>> @app.get("/process")
        >>> def process(state: RequestState = Depends(get_request_state)):
        ...     return {"request_id": state.request_id}
    """

    def context_dependency(request: Request) -> Any:
        """Resolve the component against the request's scope context."""
        scope_context: ScopeContext = getattr(request.state, SCOPE_CONTEXT_STATE, None)
        if scope_context is None:
            raise RuntimeError(
                "Request does not have a scope context. Did you forget to add ContextScopeMiddleware?"
            )
        with container.activate(scope_context):
            return container.get(name)

    return context_dependency


class ContextScopeMiddleware(BaseHTTPMiddleware):
    """Middleware that opens a contextual scope for each request.

    The context is entered before the endpoint runs and exited after the
    response is produced, which tears down every contextual instance created
    for the request. The handle is available as ``request.state.scope_context``.

    Attributes:
        container: The built container to open contexts on.
        kind: Contextual scope kind opened per request.

    Example:
        >>> app = FastAPI()
        >>> app.add_middleware(ContextScopeMiddleware, container=container)
    """

    def __init__(self, app: FastAPI, container: Container, kind: str = "request"):
        """Initialize the middleware.

        Args:
            app: The FastAPI/Starlette application.
            container: The built container to open contexts on.
            kind: Contextual scope kind opened per request.
        """
        super().__init__(app)
        self.container = container
        self.kind = kind

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Open a scope context for the request and execute the endpoint.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or endpoint handler.

        Returns:
            The response from the endpoint.
        """
        scope_context = self.container.enter_context(self.kind)
        setattr(request.state, SCOPE_CONTEXT_STATE, scope_context)

        try:
            response = await call_next(request)
            return response
        finally:
            try:
                self.container.exit_context(scope_context)
            except TeardownError as e:
                # The response is already produced.
                logger.error("Teardown of %s context %s failed: %s", self.kind, scope_context.context_id, e)
