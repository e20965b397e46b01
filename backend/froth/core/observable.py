"""
可观察状态容器

每个门面（facade）持有一个 Observable，UI 层订阅它并在每次快照替换时刷新。
快照是不可变的 dataclass，更新时整体替换，读者不会看到更新到一半的状态。

所有修改都发生在同一个事件循环（UI 协调上下文）里，因此这里不加锁。
"""
from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True, eq=False)
class Subscription:
    handler: Callable[[Any], None]


class Observable(Generic[T]):
    """
    单值可观察容器

    使用示例：
        state = Observable(IdentityState())
        sub = state.subscribe(lambda snapshot: print(snapshot.user))
        state.update(is_loading=True)
        state.unsubscribe(sub)
    """

    def __init__(self, value: T) -> None:
        self._value = value
        self._subs: list[Subscription] = []

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, handler: Callable[[T], None]) -> Subscription:
        sub = Subscription(handler=handler)
        self._subs.append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        try:
            self._subs.remove(subscription)
        except ValueError:
            return

    def set(self, value: T) -> None:
        self._value = value
        # Copy first: handlers may unsubscribe while being notified.
        for sub in list(self._subs):
            try:
                sub.handler(value)
            except Exception:
                logger.exception(
                    "State subscriber failed",
                    extra={"state_type": type(value).__name__, "handler": repr(sub.handler)},
                )

    def update(self, **changes: Any) -> T:
        """替换当前快照中的若干字段并通知订阅者，返回新快照"""
        value = dataclasses.replace(self._value, **changes)  # type: ignore[type-var]
        self.set(value)
        return value

    def clear(self) -> None:
        self._subs.clear()

    def __len__(self) -> int:
        return len(self._subs)
