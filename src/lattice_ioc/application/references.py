from typing import Any, Generic, TypeVar

from lattice_ioc.domain import IContainer

T = TypeVar("T")


class ScopedReference(Generic[T]):
    """Indirection to a component, re-resolved against the container at every use.

    Injected in place of a contextual component when the consumer outlives the
    context (so it never captures one request's instance), and in place of
    optional dependencies that lie on a cycle (so they resolve lazily).

    Attribute access and calls are forwarded to the instance resolved at that
    moment; ``resolve()`` returns it explicitly.

    Example:
        >>> class Auditor:
        ...     def __init__(self, request_context: ScopedReference[RequestContext]):
        ...         self.request_context = request_context
        ...
        ...     def audit(self):
        ...         return self.request_context.user_id  # current request's context
    """

    __slots__ = ("_container", "_identity")

    def __init__(self, container: IContainer, identity: str) -> None:
        self._container = container
        self._identity = identity

    @property
    def identity(self) -> str:
        return self._identity

    def resolve(self) -> T:
        """Look up the target in the currently active context.

        Raises:
            ScopeNotActiveError: If the target is contextual and no context is active.
        """
        return self._container.get(self._identity)

    def __getattr__(self, item: str) -> Any:
        if item in ScopedReference.__slots__:
            raise AttributeError(item)
        return getattr(self.resolve(), item)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.resolve()(*args, **kwargs)

    def __repr__(self) -> str:
        return f"ScopedReference({self._identity!r})"
