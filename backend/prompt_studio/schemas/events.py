# prompt-studio/backend/prompt_studio/schemas/events.py
"""
실행 이벤트 스키마

오케스트레이터와 채점 서비스가 구독자(메모리 상태, WebSocket)에게 발행합니다.
"""

from typing import Literal, Union
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from prompt_studio.models.base import utcnow
from prompt_studio.schemas.grade import Grade
from prompt_studio.schemas.result import ExecutionResult, ExecutionStatus, PersistenceWarning


class _PairEvent(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    test_case_id: str
    model_id: str
    emitted_at: datetime = Field(default_factory=utcnow)


class StatusEvent(_PairEvent):
    type: Literal["status"] = "status"
    status: ExecutionStatus


class ResultEvent(_PairEvent):
    type: Literal["result"] = "result"
    result: ExecutionResult


class GradeEvent(_PairEvent):
    type: Literal["grade"] = "grade"
    grade: Grade


class WarningEvent(_PairEvent):
    type: Literal["warning"] = "warning"
    warning: PersistenceWarning


ExecutionEvent = Union[StatusEvent, ResultEvent, GradeEvent, WarningEvent]
