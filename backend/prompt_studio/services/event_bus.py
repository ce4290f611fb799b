# prompt-studio/backend/prompt_studio/services/event_bus.py
"""
실행 이벤트 발행/구독
"""

from typing import Awaitable, Callable, List

from prompt_studio.schemas.events import ExecutionEvent
from prompt_studio.utils.logger import logger

Subscriber = Callable[[ExecutionEvent], Awaitable[None]]


class ExecutionEventBus:
    """
    비동기 이벤트 버스

    구독자는 등록 순서대로 호출됩니다. 구독자 하나가 실패해도
    오류를 기록만 하고 나머지 구독자와 실행은 계속됩니다.
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """구독 등록 후 해제 함수 반환"""
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber):
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event: ExecutionEvent):
        for callback in list(self._subscribers):
            try:
                await callback(event)
            except Exception as e:
                logger.error(
                    f"이벤트 구독자 오류: type={event.type}, error={str(e)}",
                    exc_info=True
                )
