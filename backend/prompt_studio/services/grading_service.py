# prompt-studio/backend/prompt_studio/services/grading_service.py
"""
채점 서비스

수동 채점과 심사 모델을 이용한 자동 채점을 제공합니다.
"""

import re
from typing import List, Optional

from prompt_studio.core.config import settings
from prompt_studio.schemas.events import GradeEvent, WarningEvent
from prompt_studio.schemas.grade import Grade, GradeOutcome, GradingMethod
from prompt_studio.schemas.llm import PromptInput
from prompt_studio.schemas.result import ExecutionResult, PersistenceWarning
from prompt_studio.schemas.test_case import TestCase
from prompt_studio.utils.exceptions import (
    GradingError,
    ModelInvocationError,
    PersistenceError,
    ValidationError,
)
from prompt_studio.utils.logger import logger

JUDGE_PROMPT_TEMPLATE = """
You are an expert evaluator. You will be given a test case with a prompt and the model's response. Evaluate the quality of the response.

Test Case Information:
System Prompt: {system_prompt}
User Prompt: {user_prompt}
Source Text: {source_text}
Expected Result: {expected_result}

Model Response: {output}

Please evaluate this response and provide:
1. A numeric score from 0-100
2. Brief feedback explaining the score
3. Key strengths and weaknesses

Format your response as:
Score: [number]
Feedback: [your detailed feedback]"""

SCORE_PATTERN = re.compile(r"Score:\s*(\d{1,3})(?!\d)", re.IGNORECASE)


def build_judge_prompt(test_case: TestCase, result: ExecutionResult) -> str:
    return JUDGE_PROMPT_TEMPLATE.format(
        system_prompt=test_case.system_prompt or "None",
        user_prompt=test_case.user_prompt,
        source_text=test_case.source_text or "None",
        expected_result=test_case.expected_result or "None provided",
        output=result.output,
    )


def parse_judge_score(text: str) -> int:
    """
    심사 응답에서 점수 추출

    점수가 없거나 0~100 범위를 벗어나면 0을 반환합니다.
    """
    match = SCORE_PATTERN.search(text or "")
    if not match:
        return 0

    score = int(match.group(1))
    if score > 100:
        return 0
    return score


class GradingService:
    """
    (테스트 케이스, 모델) 결과 채점

    grade()는 점수만 계산하고, grade_and_save()는 저장 후 이벤트를 발행해
    메모리 상태에도 반영합니다.
    """

    def __init__(self, client, repository, event_bus):
        self.client = client
        self.repository = repository
        self.event_bus = event_bus

    async def grade(
        self,
        test_case: TestCase,
        result: ExecutionResult,
        method: GradingMethod,
        manual_score: Optional[int] = None,
        comments: Optional[str] = None,
        judge_model_id: Optional[str] = None
    ) -> Grade:
        """
        결과 채점

        Raises:
            ValidationError: 수동 채점에 점수가 없거나 자동 채점할 출력이 없는 경우
            GradingError: 심사 모델 호출 실패
        """
        if method == GradingMethod.MANUAL:
            if manual_score is None:
                raise ValidationError(
                    "Manual grading requires a score",
                    field="manual_score"
                )
            if not 0 <= manual_score <= 100:
                raise ValidationError(
                    "Score must be between 0 and 100",
                    field="manual_score",
                    value=manual_score
                )

            return Grade(
                test_case_id=test_case.id,
                model_id=result.model_id,
                score=manual_score,
                method=GradingMethod.MANUAL,
                comments=comments,
            )

        if not result.output:
            raise ValidationError(
                "Cannot auto-grade a result without output",
                field="output"
            )

        judge_model = judge_model_id or settings.DEFAULT_GRADING_MODEL
        logger.info(
            f"자동 채점 시작: test_case={test_case.id}, model={result.model_id}, judge={judge_model}"
        )

        try:
            response = await self.client.complete(
                PromptInput(user_prompt=build_judge_prompt(test_case, result)),
                judge_model,
                temperature=settings.AUXILIARY_TEMPERATURE
            )
        except ModelInvocationError as e:
            logger.error(f"자동 채점 실패: {e.message}")
            raise GradingError(
                f"Failed to auto-grade response: {e.message}",
                test_case_id=test_case.id,
                model_id=result.model_id
            ) from e

        score = parse_judge_score(response.output)
        logger.info(f"자동 채점 완료: model={result.model_id}, score={score}")

        return Grade(
            test_case_id=test_case.id,
            model_id=result.model_id,
            score=score,
            method=GradingMethod.AUTOMATIC,
            comments=comments,
            feedback=response.output,
            judge_model_id=judge_model,
        )

    async def grade_and_save(
        self,
        test_case: TestCase,
        result: ExecutionResult,
        method: GradingMethod,
        manual_score: Optional[int] = None,
        comments: Optional[str] = None,
        judge_model_id: Optional[str] = None
    ) -> GradeOutcome:
        """채점 후 저장하고 GradeEvent 발행 (저장 실패는 경고로 반환)"""
        grade = await self.grade(
            test_case,
            result,
            method,
            manual_score=manual_score,
            comments=comments,
            judge_model_id=judge_model_id
        )

        warnings: List[PersistenceWarning] = []
        try:
            await self.repository.save_grade(grade)
        except PersistenceError as e:
            logger.warning(
                f"점수 저장 실패 (메모리에는 반영): test_case={grade.test_case_id}, "
                f"model={grade.model_id}, error={e.message}"
            )
            warning = PersistenceWarning(
                test_case_id=grade.test_case_id,
                model_id=grade.model_id,
                operation="save_grade",
                message=e.message,
            )
            warnings.append(warning)
            await self.event_bus.publish(WarningEvent(
                test_case_id=grade.test_case_id,
                model_id=grade.model_id,
                warning=warning,
            ))

        await self.event_bus.publish(GradeEvent(
            test_case_id=grade.test_case_id,
            model_id=grade.model_id,
            grade=grade,
        ))

        return GradeOutcome(grade=grade, warnings=warnings)
