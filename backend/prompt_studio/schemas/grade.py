# prompt-studio/backend/prompt_studio/schemas/grade.py
"""
채점 관련 스키마
"""

from enum import Enum
from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from prompt_studio.models.base import utcnow
from prompt_studio.schemas.result import PersistenceWarning


class GradingMethod(str, Enum):
    """채점 방식"""
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class Grade(BaseModel):
    """(테스트 케이스, 모델) 쌍의 점수"""
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    test_case_id: str
    model_id: str
    score: int = Field(..., ge=0, le=100)
    method: GradingMethod
    comments: Optional[str] = None
    feedback: Optional[str] = None
    judge_model_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)


class GradeRequest(BaseModel):
    """채점 요청"""
    model_config = ConfigDict(protected_namespaces=())

    test_case_id: str
    model_id: str
    method: GradingMethod
    manual_score: Optional[int] = Field(default=None, ge=0, le=100)
    comments: Optional[str] = None
    judge_model_id: Optional[str] = None


class GradeOutcome(BaseModel):
    """채점 결과와 영구 저장 경고"""
    grade: Grade
    warnings: List[PersistenceWarning] = Field(default_factory=list)
