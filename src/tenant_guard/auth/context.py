"""
tenant_guard.auth.context

Request-scoped principal propagation.

Responsibilities:
- Attach a `Principal` to the current logical request without parameter threading.
- Guarantee release of the principal on every exit path.
- Fail closed when protected code runs without a principal.

The principal lives in a `ContextVar`. Tasks spawned inside a scope
(`asyncio.create_task`, `asyncio.gather`) start with a copy of the current context,
so fan-out within one request sees the same principal while concurrently executing
requests never see each other's.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import ParamSpec, TypeVar

import structlog

from tenant_guard.auth.models import Principal
from tenant_guard.errors import ConfigurationError

P = ParamSpec("P")
T = TypeVar("T")

_current_principal: ContextVar[Principal | None] = ContextVar("current_principal", default=None)


@contextmanager
def principal_scope(principal: Principal) -> Iterator[Principal]:
    token = _current_principal.set(principal)
    try:
        with structlog.contextvars.bound_contextvars(
            tenant_id=principal.tenant_id,
            user_id=principal.user_id,
        ):
            yield principal
    finally:
        # Runs on return, exception and CancelledError alike.
        _current_principal.reset(token)


def establish(
    principal: Principal, unit_of_work: Callable[P, T], /, *args: P.args, **kwargs: P.kwargs
) -> T:
    with principal_scope(principal):
        return unit_of_work(*args, **kwargs)


async def establish_async(
    principal: Principal,
    unit_of_work: Callable[P, Awaitable[T]],
    /,
    *args: P.args,
    **kwargs: P.kwargs,
) -> T:
    with principal_scope(principal):
        return await unit_of_work(*args, **kwargs)


def current() -> Principal:
    principal = _current_principal.get()
    if principal is None:
        raise ConfigurationError("No active principal in request context")
    return principal


def current_or_none() -> Principal | None:
    return _current_principal.get()


# --- Module Notes -----------------------------------------------------------
# Never store the principal in a module global or on app.state: both are shared by
# every in-flight request.
