# prompt-studio/backend/prompt_studio/schemas/comparison.py
"""
모델 간 비교 스키마
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from prompt_studio.schemas.result import ResultStatus


class ModelSummary(BaseModel):
    """모델 하나의 전체 테스트 케이스 집계"""
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    total_results: int
    completed: int
    failed: int
    success_rate: float
    latency_ms: Dict[str, float]  # mean, median, p95, min, max
    mean_similarity: Optional[float] = None
    mean_score: Optional[float] = None
    graded_count: int = 0
    total_tokens: int = 0


class ModelCell(BaseModel):
    """비교표의 (테스트 케이스, 모델) 칸"""
    status: ResultStatus
    score: Optional[int] = None
    similarity: Optional[float] = None
    latency_ms: int = 0


class TestCaseRow(BaseModel):
    """비교표의 테스트 케이스 한 줄"""
    __test__ = False

    test_case_id: str
    name: str
    models: Dict[str, ModelCell] = Field(default_factory=dict)


class ComparisonReport(BaseModel):
    """모델 나란히 비교 결과"""
    models: List[ModelSummary] = Field(default_factory=list)
    rows: List[TestCaseRow] = Field(default_factory=list)
