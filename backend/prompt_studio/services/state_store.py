# prompt-studio/backend/prompt_studio/services/state_store.py
"""
메모리 평가 상태

테스트 케이스, 결과, 점수를 메모리에 보관합니다. 시작 시 저장소에서
복원되고, 실행 중에는 이벤트 버스를 구독해 결과와 점수를 반영합니다.
"""

from typing import Dict, List, Optional

from prompt_studio.schemas.events import ExecutionEvent, GradeEvent, ResultEvent
from prompt_studio.schemas.grade import Grade
from prompt_studio.schemas.result import ExecutionResult
from prompt_studio.schemas.test_case import TestCase
from prompt_studio.utils.logger import logger


class EvaluationStateStore:
    """테스트 케이스 ID -> 모델 ID -> 결과/점수 매핑"""

    def __init__(self, status_tracker):
        self.status_tracker = status_tracker
        self.test_cases: Dict[str, TestCase] = {}
        self.results: Dict[str, Dict[str, ExecutionResult]] = {}
        self.grades: Dict[str, Dict[str, Grade]] = {}

    async def rehydrate(self, repository):
        """저장소 내용으로 메모리 상태 재구성"""
        test_cases = await repository.get_all_test_cases()
        results = await repository.get_all_results()
        grades = await repository.get_all_grades()

        self.test_cases = {tc.id: tc for tc in test_cases}
        self.results = {}
        self.grades = {}

        for result in results:
            self.apply_result(result)
        for grade in grades:
            self.apply_grade(grade)

        self.status_tracker.rehydrate(
            (r.test_case_id, r.model_id) for r in results
        )

        logger.info(
            f"메모리 상태 복원 완료: test_cases={len(test_cases)}, "
            f"results={len(results)}, grades={len(grades)}"
        )

    async def handle_event(self, event: ExecutionEvent):
        """이벤트 버스 구독자"""
        if isinstance(event, ResultEvent):
            self.apply_result(event.result)
        elif isinstance(event, GradeEvent):
            self.apply_grade(event.grade)

    def apply_test_case(self, test_case: TestCase):
        self.test_cases[test_case.id] = test_case

    def apply_result(self, result: ExecutionResult):
        self.results.setdefault(result.test_case_id, {})[result.model_id] = result

    def apply_grade(self, grade: Grade):
        self.grades.setdefault(grade.test_case_id, {})[grade.model_id] = grade

    def get_test_case(self, test_case_id: str) -> Optional[TestCase]:
        return self.test_cases.get(test_case_id)

    def list_test_cases(self) -> List[TestCase]:
        return sorted(self.test_cases.values(), key=lambda tc: tc.created_at)

    def get_result(self, test_case_id: str, model_id: str) -> Optional[ExecutionResult]:
        return self.results.get(test_case_id, {}).get(model_id)

    def list_results(self, test_case_id: Optional[str] = None) -> List[ExecutionResult]:
        if test_case_id is not None:
            return list(self.results.get(test_case_id, {}).values())
        return [r for by_model in self.results.values() for r in by_model.values()]

    def list_grades(self, test_case_id: Optional[str] = None) -> List[Grade]:
        if test_case_id is not None:
            return list(self.grades.get(test_case_id, {}).values())
        return [g for by_model in self.grades.values() for g in by_model.values()]

    def remove_test_case(self, test_case_id: str):
        self.test_cases.pop(test_case_id, None)
        self.results.pop(test_case_id, None)
        self.grades.pop(test_case_id, None)
        self.status_tracker.reset_test_case(test_case_id)

    def remove_pair(self, test_case_id: str, model_id: str):
        self.results.get(test_case_id, {}).pop(model_id, None)
        self.grades.get(test_case_id, {}).pop(model_id, None)
        self.status_tracker.reset_pair(test_case_id, model_id)

    def remove_model(self, model_id: str):
        for by_model in self.results.values():
            by_model.pop(model_id, None)
        for by_model in self.grades.values():
            by_model.pop(model_id, None)
        self.status_tracker.reset_model(model_id)

    def clear(self):
        self.test_cases.clear()
        self.results.clear()
        self.grades.clear()
        self.status_tracker.clear()
