from __future__ import annotations

import logging
from dataclasses import dataclass

from froth.core.observable import Observable


@dataclass(frozen=True)
class _Snap:
    a: int = 0
    b: int = 0


def test_subscribe_receives_replaced_snapshot():
    state = Observable(_Snap())
    seen: list[_Snap] = []
    state.subscribe(seen.append)

    new = state.update(a=1, b=2)

    assert seen == [_Snap(a=1, b=2)]
    assert state.value is new


def test_unsubscribe_stops_notifications_and_ignores_unknown():
    state = Observable(_Snap())
    seen: list[_Snap] = []
    sub = state.subscribe(seen.append)
    other = Observable(_Snap()).subscribe(seen.append)

    state.unsubscribe(sub)
    state.unsubscribe(sub)
    state.unsubscribe(other)
    state.update(a=1)

    assert seen == []
    assert len(state) == 0


def test_failing_subscriber_does_not_block_others(caplog):
    state = Observable(_Snap())
    seen: list[int] = []

    def boom(_: _Snap) -> None:
        raise RuntimeError("boom")

    state.subscribe(boom)
    state.subscribe(lambda s: seen.append(s.a))

    with caplog.at_level(logging.ERROR):
        state.update(a=3)

    assert seen == [3]
    assert "State subscriber failed" in caplog.text


def test_unsubscribe_during_notification():
    state = Observable(_Snap())
    seen: list[str] = []
    holder = {}

    def once(_: _Snap) -> None:
        seen.append("once")
        state.unsubscribe(holder["sub"])

    holder["sub"] = state.subscribe(once)
    state.subscribe(lambda _: seen.append("always"))

    state.update(a=1)
    state.update(a=2)

    assert seen == ["once", "always", "always"]


def test_clear_drops_all_subscribers():
    state = Observable(_Snap())
    state.subscribe(lambda _: None)
    state.subscribe(lambda _: None)
    state.clear()
    assert len(state) == 0
