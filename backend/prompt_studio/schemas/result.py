# prompt-studio/backend/prompt_studio/schemas/result.py
"""
실행 결과 및 실행 상태 관련 스키마
"""

from enum import Enum
from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from prompt_studio.models.base import utcnow


class ExecutionStatus(str, Enum):
    """(테스트 케이스, 모델) 쌍의 실행 생명주기 상태"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"


class ResultStatus(str, Enum):
    """모델 호출의 논리적 결과"""
    COMPLETED = "completed"
    FAILED = "failed"


class LineChange(BaseModel):
    """추가 또는 삭제된 줄"""
    line: int = Field(..., ge=0, description="0부터 시작하는 줄 번호")
    content: str


class LineModification(BaseModel):
    """같은 위치에서 내용이 달라진 줄"""
    line: int = Field(..., ge=0, description="0부터 시작하는 줄 번호")
    expected: Optional[str] = None
    actual: Optional[str] = None


class Diff(BaseModel):
    """기대 결과와 실제 출력의 위치 기반 줄 비교"""
    added: List[LineChange] = Field(default_factory=list)
    removed: List[LineChange] = Field(default_factory=list)
    modified: List[LineModification] = Field(default_factory=list)
    similarity: float = Field(default=0.0, ge=0.0, le=100.0)


class ExecutionResult(BaseModel):
    """(테스트 케이스, 모델) 쌍의 현재 실행 결과"""
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    test_case_id: str
    model_id: str
    output: Optional[str] = None
    round_trip_output: Optional[str] = None
    translated_prompt: Optional[str] = None
    tokens_used: int = 0
    latency_ms: int = 0
    timestamp: datetime = Field(default_factory=utcnow)
    status: ResultStatus
    error: Optional[str] = None
    diff: Optional[Diff] = None


class RunRequest(BaseModel):
    """테스트 케이스 실행 요청"""
    model_config = ConfigDict(protected_namespaces=())

    model_ids: List[str] = Field(..., min_length=1)
    enable_round_trip: bool = False
    translation_model_id: Optional[str] = None


class PersistenceWarning(BaseModel):
    """메모리 상태에는 반영되었으나 영구 저장에 실패한 쓰기"""
    model_config = ConfigDict(protected_namespaces=())

    test_case_id: str
    model_id: str
    operation: str
    message: str


class RunSummary(BaseModel):
    """한 테스트 케이스 실행의 요약"""
    test_case_id: str
    results: List[ExecutionResult] = Field(default_factory=list)
    warnings: List[PersistenceWarning] = Field(default_factory=list)
    # 실행 도중 테스트 케이스가 삭제되어 중단된 경우
    cancelled: bool = False

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if r.status == ResultStatus.FAILED)


class StatusEntry(BaseModel):
    """상태 조회 응답 항목"""
    model_config = ConfigDict(protected_namespaces=())

    test_case_id: str
    model_id: str
    status: ExecutionStatus
