"""Tests for Injector.inject."""


class TestInject:
    def test_key_as_string(self, injector, recorder):
        injector.set("my", "value")
        target = recorder()
        assert injector.inject("my", target) is True
        assert target.calls == [("value",)]

    def test_keys_as_list(self, injector, recorder):
        injector.set("a", 1)
        injector.set("b", 2)
        target = recorder()
        injector.inject(["a", "b", "a"], target)
        assert target.calls == [(1, 2, 1)]

    def test_missing_without_handler_cancels(self, injector, recorder):
        injector.set("my", "value")
        target = recorder()
        assert injector.inject(["my", "none"], target) is False
        assert target.calls == []

    def test_missing_handler_falsy_cancels(self, injector, recorder):
        injector.set("k1", 1)
        target = recorder()
        missing = recorder(result=None)
        injector.inject(["k1", "k2"], target, missing)
        assert missing.calls == [("k2",)]
        assert target.calls == []

    def test_missing_handler_truthy_passes_none(self, injector, recorder):
        injector.set("k1", 1)
        target = recorder()
        injector.inject(["k1", "k2"], target, recorder(result=True))
        assert target.calls == [(1, None)]

    def test_later_keys_not_checked_after_refusal(self, injector, recorder):
        missing = recorder(result=False)
        injector.inject(["x", "y", "z"], recorder(), missing)
        assert missing.calls == [("x",)]

    def test_forgiven_key_does_not_halt_iteration(self, injector, recorder):
        injector.set("z", 26)
        missing = recorder(result=True)
        target = recorder()
        injector.inject(["x", "y", "z"], target, missing)
        assert missing.calls == [("x",), ("y",)]
        assert target.calls == [(None, None, 26)]

    def test_present_none_value_is_not_missing(self, injector, recorder):
        injector.set("maybe", None)
        target = recorder()
        missing = recorder(result=False)
        assert injector.inject("maybe", target, missing) is True
        assert missing.calls == []
        assert target.calls == [(None,)]

    def test_empty_keys_calls_target(self, injector, recorder):
        target = recorder()
        injector.inject([], target)
        assert target.calls == [()]

    def test_inject_does_not_wait(self, injector, turns, recorder):
        target = recorder()
        injector.inject("later", target)
        injector.set("later", 1)
        turns.drain()
        assert target.calls == []
        assert injector.list_unfulfilled() is None
