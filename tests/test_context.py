"""
tests.test_context

Request-scoped principal propagation.
"""

from __future__ import annotations

import asyncio

import pytest
import structlog

from tenant_guard.auth.context import (
    current,
    current_or_none,
    establish,
    establish_async,
    principal_scope,
)
from tenant_guard.errors import ConfigurationError


def test_current_without_scope_fails_closed() -> None:
    assert current_or_none() is None
    with pytest.raises(ConfigurationError):
        current()


def test_scope_is_released_on_exception(make_principal) -> None:
    p = make_principal("T1")
    with pytest.raises(RuntimeError):
        with principal_scope(p):
            assert current() is p
            raise RuntimeError("boom")
    assert current_or_none() is None


def test_nested_scope_restores_outer(make_principal) -> None:
    outer = make_principal("T1", user_id="outer")
    inner = make_principal("T2", user_id="inner")
    with principal_scope(outer):
        with principal_scope(inner):
            assert current().tenant_id == "T2"
        assert current() is outer


def test_establish_runs_unit_of_work_with_principal(make_principal) -> None:
    p = make_principal("T9")
    assert establish(p, lambda suffix: current().tenant_id + suffix, "-x") == "T9-x"
    assert current_or_none() is None


def test_scope_binds_log_context(make_principal) -> None:
    with principal_scope(make_principal("T1", user_id="u-42")):
        ctx = structlog.contextvars.get_contextvars()
        assert ctx["tenant_id"] == "T1"
        assert ctx["user_id"] == "u-42"
    assert "tenant_id" not in structlog.contextvars.get_contextvars()


def test_principal_attributes_are_read_only(make_principal) -> None:
    p = make_principal(attributes={"senior": True})
    with pytest.raises(TypeError):
        p.attributes["senior"] = False  # type: ignore[index]


@pytest.mark.asyncio
async def test_concurrent_requests_do_not_see_each_other(make_principal) -> None:
    seen: dict[str, list[str | None]] = {"T1": [], "T2": []}

    async def request(expected: str) -> None:
        for _ in range(5):
            await asyncio.sleep(0)
            seen[expected].append(current().tenant_id)

    await asyncio.gather(
        establish_async(make_principal("T1"), request, "T1"),
        establish_async(make_principal("T2"), request, "T2"),
    )
    assert seen == {"T1": ["T1"] * 5, "T2": ["T2"] * 5}
    assert current_or_none() is None


@pytest.mark.asyncio
async def test_fanout_inherits_principal(make_principal) -> None:
    async def read_tenant() -> str | None:
        await asyncio.sleep(0)
        return current().tenant_id

    with principal_scope(make_principal("T3")):
        results = await asyncio.gather(read_tenant(), asyncio.create_task(read_tenant()))
    assert results == ["T3", "T3"]


@pytest.mark.asyncio
async def test_scope_is_released_on_cancellation(make_principal) -> None:
    started = asyncio.Event()
    after_cancel: list[object] = []

    async def long_running() -> None:
        try:
            with principal_scope(make_principal("T1")):
                started.set()
                await asyncio.sleep(10)
        finally:
            after_cancel.append(current_or_none())

    task = asyncio.create_task(long_running())
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert after_cancel == [None]
