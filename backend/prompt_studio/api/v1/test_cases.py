# prompt-studio/backend/prompt_studio/api/v1/test_cases.py
"""
테스트 케이스 API 엔드포인트

테스트 케이스 CRUD와 모델 실행 요청을 처리합니다.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, BackgroundTasks, Depends, status

from prompt_studio.core.dependencies import (
    get_orchestrator,
    get_repository,
    get_state_store,
)
from prompt_studio.db.repository import Repository
from prompt_studio.schemas.result import ExecutionResult, RunRequest, StatusEntry
from prompt_studio.schemas.test_case import TestCase, TestCaseCreate, TestCaseUpdate
from prompt_studio.services.execution_service import ExecutionOrchestrator, RunHandle
from prompt_studio.services.state_store import EvaluationStateStore
from prompt_studio.utils.exceptions import ExecutionConflictError, ResourceNotFoundError
from prompt_studio.utils.logger import log_audit, logger
from prompt_studio.utils.validators import ModelIdValidator

# API 라우터 생성
router = APIRouter(
    responses={
        404: {"description": "Test case not found"},
        500: {"description": "Internal server error"}
    }
)


def _not_found(test_case_id: str) -> ResourceNotFoundError:
    return ResourceNotFoundError(
        f"Test case '{test_case_id}' not found",
        resource_type="test_case",
        resource_id=test_case_id
    )


def _get_or_404(state_store: EvaluationStateStore, test_case_id: str) -> TestCase:
    test_case = state_store.get_test_case(test_case_id)
    if not test_case:
        raise _not_found(test_case_id)
    return test_case


@router.get("/", response_model=List[TestCase])
async def list_test_cases(
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> List[TestCase]:
    """테스트 케이스 목록 조회 (생성 순)"""
    return state_store.list_test_cases()


@router.post("/", response_model=TestCase, status_code=status.HTTP_201_CREATED)
async def create_test_case(
    data: TestCaseCreate,
    repository: Repository = Depends(get_repository),
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> TestCase:
    """새 테스트 케이스 생성"""
    test_case = await repository.create_test_case(data)
    state_store.apply_test_case(test_case)

    logger.info(f"테스트 케이스 생성: {test_case.id}")
    return test_case


@router.get("/{test_case_id}", response_model=TestCase)
async def get_test_case(
    test_case_id: str,
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> TestCase:
    return _get_or_404(state_store, test_case_id)


@router.put("/{test_case_id}", response_model=TestCase)
async def update_test_case(
    test_case_id: str,
    update: TestCaseUpdate,
    repository: Repository = Depends(get_repository),
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> TestCase:
    """
    테스트 케이스 수정

    보낸 필드만 변경되며 기존 실행 결과는 그대로 유지됩니다.
    """
    test_case = await repository.update_test_case(test_case_id, update)
    if not test_case:
        raise _not_found(test_case_id)

    state_store.apply_test_case(test_case)
    return test_case


@router.delete("/{test_case_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_test_case(
    test_case_id: str,
    repository: Repository = Depends(get_repository),
    state_store: EvaluationStateStore = Depends(get_state_store)
):
    """
    테스트 케이스와 그 결과/점수 삭제

    실행이 예약되었거나 진행 중인 모델이 있으면 409를 반환합니다.
    """
    busy = state_store.status_tracker.reserved_models(test_case_id)
    if busy:
        raise ExecutionConflictError(
            f"Test case {test_case_id} cannot be deleted while running: {', '.join(busy)}",
            test_case_id=test_case_id,
            model_ids=busy
        )

    deleted = await repository.delete_test_case(test_case_id)
    if not deleted and not state_store.get_test_case(test_case_id):
        raise _not_found(test_case_id)

    state_store.remove_test_case(test_case_id)
    log_audit("delete", "test_case", test_case_id, "success")


@router.post(
    "/{test_case_id}/run",
    response_model=Dict[str, Any],
    status_code=status.HTTP_202_ACCEPTED
)
async def run_test_case(
    test_case_id: str,
    request: RunRequest,
    background_tasks: BackgroundTasks,
    orchestrator: ExecutionOrchestrator = Depends(get_orchestrator),
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> Dict[str, Any]:
    """
    선택한 모델들에 테스트 케이스 실행

    모든 쌍을 pending으로 예약한 뒤 백그라운드에서 하나씩 실행합니다.
    이미 실행 중인 쌍이 있으면 409를 반환합니다.
    """
    test_case = _get_or_404(state_store, test_case_id)

    for model_id in request.model_ids:
        ModelIdValidator.validate(model_id)
    if request.translation_model_id:
        ModelIdValidator.validate(request.translation_model_id)

    handle = await orchestrator.begin_run(
        test_case,
        request.model_ids,
        enable_round_trip=request.enable_round_trip,
        translation_model_id=request.translation_model_id
    )

    background_tasks.add_task(_run_test_case_task, orchestrator, handle)

    logger.info(f"테스트 실행 요청: {test_case_id}, models={handle.model_ids}")

    return {
        "test_case_id": test_case_id,
        "model_ids": handle.model_ids,
        "status": "pending",
        "message": "테스트가 백그라운드에서 실행 중입니다."
    }


@router.get("/{test_case_id}/results", response_model=List[ExecutionResult])
async def get_test_case_results(
    test_case_id: str,
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> List[ExecutionResult]:
    _get_or_404(state_store, test_case_id)
    return state_store.list_results(test_case_id)


@router.get("/{test_case_id}/status", response_model=List[StatusEntry])
async def get_test_case_status(
    test_case_id: str,
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> List[StatusEntry]:
    """모델별 실행 상태 조회"""
    _get_or_404(state_store, test_case_id)
    return state_store.status_tracker.snapshot(test_case_id)


# 헬퍼 함수들

async def _run_test_case_task(orchestrator: ExecutionOrchestrator, handle: RunHandle):
    """백그라운드 실행 작업"""
    try:
        summary = await orchestrator.execute_run(handle)
        if summary.warnings:
            logger.warning(
                f"테스트 실행 중 저장 경고 {len(summary.warnings)}건: {handle.test_case.id}"
            )
    except Exception as e:
        logger.error(f"백그라운드 테스트 실행 오류: {str(e)}", exc_info=True)
