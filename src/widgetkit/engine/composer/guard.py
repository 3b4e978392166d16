# src/widgetkit/engine/composer/guard.py

import logging
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

class StaleResultError(Exception):
    """Raised when a result is committed after a newer request has started."""
    def __init__(self, token: int, latest: int):
        self.token = token
        self.latest = latest
        super().__init__(f"Result of request {token} is stale (latest is {latest})")

class LatestRequestGuard:
    """
    调用方使用的“最新请求优先”守卫。
    引擎本身无状态，不支持中途取消；编辑器这类高频触发方在提交结果前
    用 token 判断结果是否已过期。每个调用方各持有一个实例，不可共享。
    """

    def __init__(self):
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def begin(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest

    def commit(self, token: int, value: T, apply: Optional[Callable[[T], Any]] = None) -> T:
        if not self.is_current(token):
            raise StaleResultError(token, self._latest)
        if apply is not None:
            apply(value)
        return value

    async def run(self, factory: Callable[[], Awaitable[T]]) -> Tuple[int, T, bool]:
        """
        Start a request, await it and report whether it is still the latest.
        Returns (token, result, is_current).
        """
        token = self.begin()
        result = await factory()
        current = self.is_current(token)
        if not current:
            logger.debug(f"Discarding stale result of request {token} (latest is {self._latest})")
        return token, result, current
