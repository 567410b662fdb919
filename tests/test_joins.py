"""Tests for Injector.when joins."""
import asyncio
import threading

import pytest

from ready_set import Injector


class TestSingleKey:
    def test_fires_after_set_returns(self, injector, turns, recorder):
        cb = recorder()
        injector.when("db", cb)
        injector.set("db", "conn")
        assert cb.calls == []
        turns.drain()
        assert cb.calls == [("conn",)]

    def test_list_with_one_key(self, injector, turns, recorder):
        cb = recorder()
        injector.when(["db"], cb)
        injector.set("db", "conn")
        turns.drain()
        assert cb.calls == [("conn",)]

    def test_present_key_fires_inline(self, injector, turns, recorder):
        injector.set("db", "conn")
        cb = recorder()
        injector.when("db", cb)
        assert cb.calls == [("conn",)]
        assert turns.pending == 0

    def test_fires_exactly_once(self, injector, turns, recorder):
        cb = recorder()
        injector.when("db", cb)
        injector.set("db", 1)
        injector.set("db", 2)
        turns.drain()
        assert cb.calls == [(1,)]


class TestEmptyKeys:
    def test_target_called_immediately(self, injector, turns, recorder):
        cb = recorder()
        injector.when([], cb)
        assert cb.calls == [()]
        assert turns.pending == 0


class TestMultiKey:
    def test_needs_every_key(self, injector, turns, recorder):
        cb = recorder()
        injector.when(["a", "b"], cb)
        injector.set("a", 1)
        turns.drain()
        assert cb.calls == []
        injector.set("b", 2)
        turns.drain()
        assert cb.calls == [(1, 2)]

    @pytest.mark.parametrize("order", [("a", "b", "c"), ("c", "b", "a"), ("b", "c", "a")])
    def test_values_are_positional_regardless_of_order(self, injector, turns, recorder, order):
        values = {"a": 1, "b": 2, "c": 3}
        cb = recorder()
        injector.when(["a", "b", "c"], cb)
        for name in order:
            injector.set(name, values[name])
            turns.drain()
        assert cb.calls == [(1, 2, 3)]

    def test_duplicate_key_fills_every_position(self, injector, turns, recorder):
        cb = recorder()
        injector.when(["k", "k"], cb)
        assert injector.list_unfulfilled()[0].waiters == 1
        injector.set("k", "v")
        turns.drain()
        assert cb.calls == [("v", "v")]

    def test_duplicates_mixed_with_other_keys(self, injector, turns, recorder):
        cb = recorder()
        injector.when(["a", "b", "a"], cb)
        injector.set("a", 1)
        turns.drain()
        assert cb.calls == []
        injector.set("b", 2)
        turns.drain()
        assert cb.calls == [(1, 2, 1)]

    def test_already_present_keys_defer_one_turn(self, injector, turns, recorder):
        injector.set("a", 1)
        injector.set("b", 2)
        cb = recorder()
        injector.when(["a", "b"], cb)
        assert cb.calls == []
        assert turns.run_once() == 1
        assert cb.calls == [(1, 2)]

    def test_back_to_back_joins_fire_in_call_order(self, injector, turns):
        injector.set("a", 1)
        injector.set("b", 2)
        order = []
        injector.when(["a", "b"], lambda a, b: order.append("first"))
        injector.when(["b", "a"], lambda b, a: order.append("second"))
        turns.drain()
        assert order == ["first", "second"]

    def test_partially_present_keys(self, injector, turns, recorder):
        injector.set("a", 1)
        cb = recorder()
        injector.when(["a", "b"], cb)
        assert [item.name for item in injector.list_unfulfilled()] == ["b"]
        injector.set("b", 2)
        turns.drain()
        assert cb.calls == [(1, 2)]

    def test_target_sees_first_value_of_each_key(self, injector, turns, recorder):
        cb = recorder()
        injector.when(["a", "b"], cb)
        injector.set("a", 1)
        injector.set("a", 10)
        injector.set("b", 2)
        turns.drain()
        assert cb.calls == [(1, 2)]

    def test_join_can_publish_further_keys(self, injector, turns, recorder):
        downstream = recorder()
        injector.when(["a", "b"], lambda a, b: injector.set("sum", a + b))
        injector.when("sum", downstream)
        injector.set("a", 1)
        injector.set("b", 2)
        turns.drain()
        assert downstream.calls == [(3,)]


class TestOnEventLoop:
    @pytest.mark.anyio
    async def test_default_scheduler_uses_running_loop(self):
        injector = Injector()
        seen = []
        injector.when(["a", "b"], lambda a, b: seen.append((a, b)))
        injector.set("a", 1)
        injector.set("b", 2)
        assert seen == []
        await injector.scheduler.settle()
        assert seen == [(1, 2)]

    @pytest.mark.anyio
    async def test_producer_task_releases_consumer(self):
        injector = Injector()
        ready = asyncio.Event()
        result = {}

        def on_ready(db, cache):
            result["value"] = (db, cache)
            ready.set()

        async def producer():
            injector.set("db", "conn")
            await asyncio.sleep(0)
            injector.set("cache", "redis")

        injector.when(["db", "cache"], on_ready)
        await producer()
        await asyncio.wait_for(ready.wait(), timeout=1)
        assert result["value"] == ("conn", "redis")

    @pytest.mark.anyio
    async def test_set_from_worker_thread_releases_waiter(self):
        injector = Injector()
        seen = []
        injector.when("db", seen.append)
        worker = threading.Thread(target=injector.set, args=("db", "conn"))
        worker.start()
        worker.join()
        await injector.scheduler.settle()
        assert seen == ["conn"]
