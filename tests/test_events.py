import logging

from hub_simulator import EventRegistry


def test_dispatch_in_registration_order():
    registry = EventRegistry()
    calls = []
    registry.on("UserJoined", lambda name: calls.append(("first", name)))
    registry.on("UserJoined", lambda name: calls.append(("second", name)))
    registry.on("UserJoined", lambda name: calls.append(("third", name)))

    assert registry.dispatch("UserJoined", "Bob") == 3
    assert calls == [("first", "Bob"), ("second", "Bob"), ("third", "Bob")]


def test_dispatch_without_handlers_is_noop():
    registry = EventRegistry()
    assert registry.dispatch("ReceiveMessage", "Bob", "hi", "ts") == 0


def test_duplicate_registration_is_ignored():
    registry = EventRegistry()
    calls = []

    def handler(name):
        calls.append(name)

    registry.on("UserLeft", handler)
    registry.on("UserLeft", handler)
    registry.dispatch("UserLeft", "Carol")

    assert calls == ["Carol"]
    assert registry.handlers("UserLeft") == (handler,)


def test_off_removes_only_that_handler():
    registry = EventRegistry()
    calls = []

    def keep(*args):
        calls.append("keep")

    def drop(*args):
        calls.append("drop")

    registry.on("ReceiveMessage", keep)
    registry.on("ReceiveMessage", drop)
    registry.off("ReceiveMessage", drop)
    registry.dispatch("ReceiveMessage", "Bob", "hi", "ts")

    assert calls == ["keep"]


def test_off_unknown_event_or_handler_is_noop():
    registry = EventRegistry()
    registry.off("Nope", print)
    registry.on("UserJoined", print)
    registry.off("UserJoined", len)
    assert registry.handlers("UserJoined") == (print,)


def test_off_matches_bound_methods():
    class View:
        def __init__(self):
            self.seen = []

        def on_joined(self, name):
            self.seen.append(name)

    view = View()
    registry = EventRegistry()
    registry.on("UserJoined", view.on_joined)
    registry.off("UserJoined", view.on_joined)
    registry.dispatch("UserJoined", "Bob")

    assert view.seen == []
    assert registry.event_names() == []


def test_reregistered_handler_moves_to_end():
    registry = EventRegistry()
    calls = []

    def a(_):
        calls.append("a")

    def b(_):
        calls.append("b")

    registry.on("UserJoined", a)
    registry.on("UserJoined", b)
    registry.off("UserJoined", a)
    registry.on("UserJoined", a)
    registry.dispatch("UserJoined", "x")

    assert calls == ["b", "a"]


def test_raising_handler_does_not_stop_others(caplog):
    registry = EventRegistry()
    calls = []
    reported = []

    def broken(name):
        raise RuntimeError("boom")

    registry.on("UserJoined", broken)
    registry.on("UserJoined", lambda name: calls.append(name))
    registry.on_handler_error = lambda event, handler, exc: reported.append(
        (event, handler, str(exc))
    )

    with caplog.at_level(logging.ERROR, logger="hub_simulator.events"):
        assert registry.dispatch("UserJoined", "Bob") == 2

    assert calls == ["Bob"]
    assert reported == [("UserJoined", broken, "boom")]
    assert "Error in UserJoined handler" in caplog.text


def test_handler_removed_during_dispatch_still_runs_this_round():
    registry = EventRegistry()
    calls = []

    def second(name):
        calls.append("second")

    def first(name):
        calls.append("first")
        registry.off("UserJoined", second)

    registry.on("UserJoined", first)
    registry.on("UserJoined", second)
    registry.dispatch("UserJoined", "Bob")
    registry.dispatch("UserJoined", "Bob")

    assert calls == ["first", "second", "first"]


def test_unknown_event_names_can_be_subscribed():
    registry = EventRegistry()
    calls = []
    registry.on("TypingIndicator", calls.append)
    registry.dispatch("TypingIndicator", "Bob")
    assert calls == ["Bob"]


def test_clear():
    registry = EventRegistry()
    registry.on("UserJoined", print)
    registry.on("UserLeft", print)
    registry.clear("UserJoined")
    assert registry.event_names() == ["UserLeft"]
    registry.clear()
    assert registry.event_names() == []
