# prompt-studio/backend/prompt_studio/api/v1/results.py
"""
실행 결과 및 채점 API 엔드포인트
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response

from prompt_studio.core.dependencies import (
    get_comparison_service,
    get_grading_service,
    get_repository,
    get_state_store,
)
from prompt_studio.db.repository import Repository
from prompt_studio.schemas.comparison import ComparisonReport
from prompt_studio.schemas.grade import Grade, GradeOutcome, GradeRequest
from prompt_studio.schemas.result import ExecutionResult
from prompt_studio.services.comparison_service import ComparisonService
from prompt_studio.services.grading_service import GradingService
from prompt_studio.services.state_store import EvaluationStateStore
from prompt_studio.utils.diff import format_diff_for_display
from prompt_studio.utils.export import build_results_csv
from prompt_studio.utils.exceptions import ResourceNotFoundError
from prompt_studio.utils.logger import log_audit, logger

router = APIRouter(
    responses={
        404: {"description": "Result not found"},
        500: {"description": "Internal server error"}
    }
)


def _result_not_found(test_case_id: str, model_id: str) -> ResourceNotFoundError:
    return ResourceNotFoundError(
        f"No result for test case '{test_case_id}' and model '{model_id}'",
        resource_type="result",
        resource_id=f"{test_case_id}/{model_id}"
    )


@router.get("/", response_model=List[ExecutionResult])
async def list_results(
    test_case_id: Optional[str] = Query(None, description="테스트 케이스 ID로 필터링"),
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> List[ExecutionResult]:
    return state_store.list_results(test_case_id)


@router.get("/grades", response_model=List[Grade])
async def list_grades(
    test_case_id: Optional[str] = Query(None),
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> List[Grade]:
    return state_store.list_grades(test_case_id)


@router.post("/grades", response_model=GradeOutcome)
async def grade_result(
    request: GradeRequest,
    grading_service: GradingService = Depends(get_grading_service),
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> GradeOutcome:
    """
    결과 채점 (수동 또는 자동)

    자동 채점 실패 시 502를 반환하며 기존 점수는 그대로 유지됩니다.
    """
    test_case = state_store.get_test_case(request.test_case_id)
    result = state_store.get_result(request.test_case_id, request.model_id)
    if not test_case or not result:
        raise _result_not_found(request.test_case_id, request.model_id)

    return await grading_service.grade_and_save(
        test_case,
        result,
        request.method,
        manual_score=request.manual_score,
        comments=request.comments,
        judge_model_id=request.judge_model_id
    )


@router.get("/comparison", response_model=ComparisonReport)
async def compare_models(
    comparison_service: ComparisonService = Depends(get_comparison_service),
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> ComparisonReport:
    """모델별 집계와 테스트 케이스별 나란히 비교"""
    return comparison_service.summarize(
        state_store.list_test_cases(),
        state_store.list_results(),
        state_store.list_grades()
    )


@router.get("/export.csv")
async def export_results_csv(
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> Response:
    """결과 요약 CSV 다운로드"""
    content = build_results_csv(
        state_store.list_test_cases(),
        state_store.list_results(),
        state_store.list_grades()
    )
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="prompt-test-results.csv"'}
    )


@router.delete("/models/{model_id:path}", response_model=Dict[str, Any])
async def delete_model_results(
    model_id: str,
    repository: Repository = Depends(get_repository),
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> Dict[str, Any]:
    """모든 테스트 케이스에서 특정 모델의 결과와 점수 삭제"""
    counts = await repository.delete_all_for_model(model_id)
    state_store.remove_model(model_id)

    log_audit("delete", "model_results", model_id, "success", **counts)
    return {"model_id": model_id, "deleted": counts}


@router.get("/{test_case_id}/{model_id:path}/diff", response_model=List[Dict[str, Any]])
async def get_result_diff(
    test_case_id: str,
    model_id: str,
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> List[Dict[str, Any]]:
    """결과의 줄 단위 비교를 표시용 목록으로 반환"""
    result = state_store.get_result(test_case_id, model_id)
    if not result:
        raise _result_not_found(test_case_id, model_id)
    return format_diff_for_display(result.diff)


@router.delete("/{test_case_id}/{model_id:path}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_result(
    test_case_id: str,
    model_id: str,
    repository: Repository = Depends(get_repository),
    state_store: EvaluationStateStore = Depends(get_state_store)
):
    """단일 결과와 그 점수 삭제"""
    deleted = await repository.delete_result(test_case_id, model_id)
    if not deleted and not state_store.get_result(test_case_id, model_id):
        raise _result_not_found(test_case_id, model_id)

    state_store.remove_pair(test_case_id, model_id)
    log_audit("delete", "result", f"{test_case_id}/{model_id}", "success")
    logger.info(f"결과 삭제: {test_case_id}/{model_id}")
