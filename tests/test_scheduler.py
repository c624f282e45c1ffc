import asyncio

from services.scheduler import FlowTimers


def test_same_name_replaces_pending_timer():
    fired = []

    async def scenario():
        timers = FlowTimers()
        timers.call_later("t", 0.01, lambda: fired.append("first"))
        timers.call_later("t", 0.02, lambda: fired.append("second"))
        assert timers.pending() == ["t"]
        await asyncio.sleep(0.05)
        return timers

    timers = asyncio.run(scenario())
    assert fired == ["second"]
    assert not timers.is_pending("t")


def test_close_cancels_and_blocks_new_timers():
    fired = []

    async def scenario():
        timers = FlowTimers()
        timers.call_later("a", 0.01, lambda: fired.append("a"))
        timers.call_later("b", 0.01, lambda: fired.append("b"))
        timers.close()
        scheduled = timers.call_later("c", 0.01, lambda: fired.append("c"))
        await asyncio.sleep(0.03)
        return timers, scheduled

    timers, scheduled = asyncio.run(scenario())
    assert fired == []
    assert scheduled is False
    assert timers.closed


def test_cancel_single_timer():
    fired = []

    async def scenario():
        timers = FlowTimers()
        timers.call_later("a", 0.01, lambda: fired.append("a"))
        timers.call_later("b", 0.01, lambda: fired.append("b"))
        assert timers.cancel("a")
        assert not timers.cancel("missing")
        await asyncio.sleep(0.03)

    asyncio.run(scenario())
    assert fired == ["b"]
