# prompt-studio/backend/prompt_studio/services/comparison_service.py
"""
모델 비교 서비스

모델별 성공률, 지연 시간 통계, 평균 유사도/점수를 집계하고
테스트 케이스별로 모델 결과를 나란히 배치합니다.
"""

from typing import Dict, List, Optional

import numpy as np

from prompt_studio.schemas.comparison import ComparisonReport, ModelCell, ModelSummary, TestCaseRow
from prompt_studio.schemas.grade import Grade
from prompt_studio.schemas.result import ExecutionResult, ResultStatus
from prompt_studio.schemas.test_case import TestCase


def _mean_or_none(values: List[float]) -> Optional[float]:
    if not values:
        return None
    return float(np.mean(np.array(values, dtype=float)))


class ComparisonService:
    """모델 간 비교 리포트 생성"""

    def summarize(
        self,
        test_cases: List[TestCase],
        results: List[ExecutionResult],
        grades: List[Grade]
    ) -> ComparisonReport:
        grade_index: Dict[tuple, Grade] = {
            (g.test_case_id, g.model_id): g for g in grades
        }

        by_model: Dict[str, List[ExecutionResult]] = {}
        for result in results:
            by_model.setdefault(result.model_id, []).append(result)

        summaries = [
            self._summarize_model(model_id, model_results, grade_index)
            for model_id, model_results in sorted(by_model.items())
        ]

        rows = []
        for test_case in test_cases:
            row = TestCaseRow(test_case_id=test_case.id, name=test_case.name)
            for result in results:
                if result.test_case_id != test_case.id:
                    continue
                grade = grade_index.get((test_case.id, result.model_id))
                row.models[result.model_id] = ModelCell(
                    status=result.status,
                    score=grade.score if grade else None,
                    similarity=result.diff.similarity if result.diff else None,
                    latency_ms=result.latency_ms,
                )
            rows.append(row)

        return ComparisonReport(models=summaries, rows=rows)

    def _summarize_model(
        self,
        model_id: str,
        results: List[ExecutionResult],
        grade_index: Dict[tuple, Grade]
    ) -> ModelSummary:
        completed = [r for r in results if r.status == ResultStatus.COMPLETED]
        failed_count = len(results) - len(completed)

        # 실패한 호출은 지연 시간이 없으므로 성공한 결과만 통계에 포함
        if completed:
            latency_array = np.array([r.latency_ms for r in completed], dtype=float)
            latency_metrics = {
                "mean": float(np.mean(latency_array)),
                "median": float(np.median(latency_array)),
                "p95": float(np.percentile(latency_array, 95)),
                "min": float(np.min(latency_array)),
                "max": float(np.max(latency_array)),
            }
        else:
            latency_metrics = {"mean": 0.0, "median": 0.0, "p95": 0.0, "min": 0.0, "max": 0.0}

        similarities = [r.diff.similarity for r in completed if r.diff is not None]
        scores = [
            grade_index[(r.test_case_id, model_id)].score
            for r in results
            if (r.test_case_id, model_id) in grade_index
        ]

        return ModelSummary(
            model_id=model_id,
            total_results=len(results),
            completed=len(completed),
            failed=failed_count,
            success_rate=len(completed) / len(results) if results else 0.0,
            latency_ms=latency_metrics,
            mean_similarity=_mean_or_none(similarities),
            mean_score=_mean_or_none(scores),
            graded_count=len(scores),
            total_tokens=int(sum(r.tokens_used for r in results)),
        )
