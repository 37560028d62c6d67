import pytest

from briq_router.core.utils.atomic import compensating


@pytest.mark.asyncio
async def test_unwinds_in_reverse_order_on_error():
    calls = []

    async def async_undo():
        calls.append("second")

    with pytest.raises(RuntimeError):
        async with compensating("test") as comp:
            comp.push("first", lambda: calls.append("first"))
            comp.push("second", async_undo)
            raise RuntimeError("boom")

    assert calls == ["second", "first"]


@pytest.mark.asyncio
async def test_cleared_stack_is_not_unwound():
    calls = []

    with pytest.raises(ValueError):
        async with compensating("test") as comp:
            comp.push("refund", lambda: calls.append("refund"))
            comp.clear()
            raise ValueError("after commit")

    assert calls == []


@pytest.mark.asyncio
async def test_success_runs_nothing():
    calls = []
    async with compensating("test") as comp:
        comp.push("refund", lambda: calls.append("refund"))
    assert calls == []
