# prompt-studio/backend/tests/test_grading.py
"""
채점 서비스 테스트
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from prompt_studio.schemas.events import GradeEvent, WarningEvent
from prompt_studio.schemas.grade import GradingMethod
from prompt_studio.schemas.result import ExecutionResult, ResultStatus
from prompt_studio.services.event_bus import ExecutionEventBus
from prompt_studio.services.grading_service import (
    GradingService,
    build_judge_prompt,
    parse_judge_score,
)
from prompt_studio.utils.exceptions import GradingError, PersistenceError, ResourceNotFoundError, ValidationError

from conftest import make_test_case


@pytest.fixture
def result():
    return ExecutionResult(
        test_case_id="tc-1",
        model_id="m1",
        output="Hello there",
        status=ResultStatus.COMPLETED,
    )


@pytest.fixture
def recorded_events():
    return []


@pytest.fixture
def event_bus(recorded_events):
    bus = ExecutionEventBus()

    async def record(event):
        recorded_events.append(event)

    bus.subscribe(record)
    return bus


class TestParseJudgeScore:

    @pytest.mark.parametrize("text,score", [
        ("Score: 87\nFeedback: Good job", 87),
        ("score:100", 100),
        ("SCORE:   5 out of 100", 5),
        ("The answer is fine.", 0),
        ("Score: 150\nFeedback: generous", 0),
        ("Score: 1000", 0),
        ("", 0),
    ])
    def test_parse(self, text, score):
        assert parse_judge_score(text) == score


class TestGradingService:
    """GradingService 테스트 클래스"""

    async def test_manual_grade(self, repository, event_bus, result):
        service = GradingService(MagicMock(), repository, event_bus)

        grade = await service.grade(
            make_test_case(), result, GradingMethod.MANUAL, manual_score=75, comments="ok"
        )

        assert grade.score == 75
        assert grade.method == GradingMethod.MANUAL
        assert grade.comments == "ok"
        assert grade.feedback is None

    async def test_manual_grade_requires_score(self, repository, event_bus, result):
        service = GradingService(MagicMock(), repository, event_bus)

        with pytest.raises(ValidationError):
            await service.grade(make_test_case(), result, GradingMethod.MANUAL)

    async def test_automatic_grade_keeps_raw_feedback(self, llm_client, fake_backend, repository, event_bus, result):
        fake_backend.responses["openai/gpt-4.1"] = "Score: 87\nFeedback: Good job"
        service = GradingService(llm_client, repository, event_bus)

        grade = await service.grade(make_test_case(), result, GradingMethod.AUTOMATIC)

        assert grade.score == 87
        assert grade.feedback == "Score: 87\nFeedback: Good job"
        assert grade.judge_model_id == "openai/gpt-4.1"

        body = fake_backend.chat_bodies()[0]
        assert body["temperature"] == 0.3
        assert body["messages"] == [{"role": "user", "content": build_judge_prompt(make_test_case(), result)}]

    async def test_automatic_grade_without_score_is_zero(self, llm_client, fake_backend, repository, event_bus, result):
        fake_backend.responses["judge"] = "Looks decent overall."
        service = GradingService(llm_client, repository, event_bus)

        grade = await service.grade(
            make_test_case(), result, GradingMethod.AUTOMATIC, judge_model_id="judge"
        )

        assert grade.score == 0
        assert grade.feedback == "Looks decent overall."

    def test_judge_prompt_placeholders(self, result):
        prompt = build_judge_prompt(make_test_case(), result)

        assert "System Prompt: None" in prompt
        assert "Source Text: None" in prompt
        assert "Expected Result: None provided" in prompt
        assert "Model Response: Hello there" in prompt
        assert prompt.endswith("Score: [number]\nFeedback: [your detailed feedback]")

    async def test_judge_failure_persists_nothing(self, llm_client, fake_backend, repository, event_bus, result, recorded_events):
        fake_backend.responses["openai/gpt-4.1"] = 503
        service = GradingService(llm_client, repository, event_bus)

        with pytest.raises(GradingError):
            await service.grade_and_save(make_test_case(), result, GradingMethod.AUTOMATIC)

        assert await repository.get_grade("tc-1", "m1") is None
        assert recorded_events == []

    async def test_auto_grade_rejects_result_without_output(self, llm_client, repository, event_bus):
        failed = ExecutionResult(
            test_case_id="tc-1", model_id="m1", status=ResultStatus.FAILED, error="boom"
        )
        service = GradingService(llm_client, repository, event_bus)

        with pytest.raises(ValidationError):
            await service.grade(make_test_case(), failed, GradingMethod.AUTOMATIC)

    async def test_grade_and_save_persists_and_publishes(self, repository, event_bus, result, recorded_events):
        await repository.save_test_case(make_test_case())
        service = GradingService(MagicMock(), repository, event_bus)

        outcome = await service.grade_and_save(
            make_test_case(), result, GradingMethod.MANUAL, manual_score=60
        )

        assert outcome.warnings == []
        stored = await repository.get_grade("tc-1", "m1")
        assert stored.score == 60
        assert [type(e) for e in recorded_events] == [GradeEvent]

    async def test_persistence_failure_is_a_warning(self, event_bus, result, recorded_events):
        repository = MagicMock()
        repository.save_grade = AsyncMock(side_effect=PersistenceError("disk full", operation="save_grade"))
        service = GradingService(MagicMock(), repository, event_bus)

        outcome = await service.grade_and_save(
            make_test_case(), result, GradingMethod.MANUAL, manual_score=60
        )

        assert outcome.grade.score == 60
        assert len(outcome.warnings) == 1
        assert outcome.warnings[0].operation == "save_grade"
        assert [type(e) for e in recorded_events] == [WarningEvent, GradeEvent]

    async def test_grade_for_deleted_test_case_is_rejected(self, repository, event_bus, result, recorded_events):
        service = GradingService(MagicMock(), repository, event_bus)

        with pytest.raises(ResourceNotFoundError):
            await service.grade_and_save(
                make_test_case(), result, GradingMethod.MANUAL, manual_score=60
            )

        assert await repository.get_grade("tc-1", "m1") is None
        assert recorded_events == []
