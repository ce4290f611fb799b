# prompt-studio/backend/prompt_studio/utils/export.py
"""
결과 요약 CSV 생성
"""

import csv
import io
from typing import List

from prompt_studio.schemas.grade import Grade
from prompt_studio.schemas.result import ExecutionResult
from prompt_studio.schemas.test_case import TestCase

CSV_HEADER = ["Test Name", "Model", "Status", "Output", "Score", "Similarity", "Tokens", "Latency"]


def build_results_csv(
    test_cases: List[TestCase],
    results: List[ExecutionResult],
    grades: List[Grade]
) -> str:
    """
    테스트 케이스 순서대로 (테스트, 모델)별 한 줄씩 출력

    점수나 유사도가 없으면 'N/A'로 표시합니다.
    """
    grade_index = {(g.test_case_id, g.model_id): g for g in grades}

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for test_case in test_cases:
        for result in results:
            if result.test_case_id != test_case.id:
                continue

            grade = grade_index.get((test_case.id, result.model_id))
            similarity = f"{result.diff.similarity:.1f}" if result.diff else "N/A"

            writer.writerow([
                test_case.name,
                result.model_id,
                result.status.value,
                result.output or "",
                grade.score if grade else "N/A",
                similarity,
                result.tokens_used,
                result.latency_ms,
            ])

    return buffer.getvalue()
