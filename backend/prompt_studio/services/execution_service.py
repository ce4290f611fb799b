# prompt-studio/backend/prompt_studio/services/execution_service.py
"""
테스트 케이스 실행 서비스

선택한 모델들에 테스트 케이스를 한 번에 하나씩 실행하고,
결과를 저장한 뒤 이벤트로 알립니다.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from prompt_studio.schemas.events import ResultEvent, StatusEvent, WarningEvent
from prompt_studio.schemas.result import (
    ExecutionResult,
    ExecutionStatus,
    PersistenceWarning,
    ResultStatus,
    RunSummary,
    StatusEntry,
)
from prompt_studio.schemas.test_case import TestCase
from prompt_studio.utils.diff import compute_diff
from prompt_studio.utils.exceptions import ExecutionConflictError, PersistenceError, ResourceNotFoundError
from prompt_studio.utils.logger import log_execution, logger

Pair = Tuple[str, str]


class ExecutionStatusTracker:
    """
    (테스트 케이스, 모델) 쌍의 실행 상태 관리

    pending -> running -> completed 순서로만 전이합니다.
    실행 중인 run이 예약한 쌍은 그 run이 끝날 때까지 다시 예약할 수 없습니다.
    """

    def __init__(self):
        self._statuses: Dict[Pair, ExecutionStatus] = {}
        self._reserved: Set[Pair] = set()
        self._lock = asyncio.Lock()

    def get(self, test_case_id: str, model_id: str) -> Optional[ExecutionStatus]:
        return self._statuses.get((test_case_id, model_id))

    def is_reserved(self, test_case_id: str, model_id: str) -> bool:
        return (test_case_id, model_id) in self._reserved

    def reserved_models(self, test_case_id: str) -> List[str]:
        return sorted(model_id for (tc_id, model_id) in self._reserved if tc_id == test_case_id)

    async def mark_pending(self, test_case_id: str, model_ids: List[str]):
        """
        모든 쌍을 원자적으로 예약하고 pending으로 표시

        Raises:
            ExecutionConflictError: 하나라도 이미 예약/실행 중인 경우 (아무것도 바꾸지 않음)
        """
        pairs = [(test_case_id, model_id) for model_id in model_ids]

        async with self._lock:
            busy = [
                model_id for (_, model_id) in pairs
                if (test_case_id, model_id) in self._reserved
                or self._statuses.get((test_case_id, model_id)) == ExecutionStatus.RUNNING
            ]
            if busy:
                raise ExecutionConflictError(
                    f"Test case {test_case_id} is already running for: {', '.join(busy)}",
                    test_case_id=test_case_id,
                    model_ids=busy
                )

            for pair in pairs:
                self._reserved.add(pair)
                self._statuses[pair] = ExecutionStatus.PENDING

    def start(self, test_case_id: str, model_id: str):
        pair = (test_case_id, model_id)
        if self._statuses.get(pair) != ExecutionStatus.PENDING:
            raise ValueError(f"{pair} 쌍은 pending 상태가 아니므로 시작할 수 없습니다.")
        self._statuses[pair] = ExecutionStatus.RUNNING

    def finish(self, test_case_id: str, model_id: str):
        pair = (test_case_id, model_id)
        if self._statuses.get(pair) != ExecutionStatus.RUNNING:
            raise ValueError(f"{pair} 쌍은 running 상태가 아니므로 완료할 수 없습니다.")
        self._statuses[pair] = ExecutionStatus.COMPLETED
        self._reserved.discard(pair)

    def release(self, test_case_id: str, model_ids: Iterable[str]):
        """실행되지 못하고 남은 예약 해제 (pending 표시는 제거)"""
        for model_id in model_ids:
            pair = (test_case_id, model_id)
            if pair not in self._reserved:
                continue
            self._reserved.discard(pair)
            if self._statuses.get(pair) == ExecutionStatus.PENDING:
                del self._statuses[pair]

    def reset_pair(self, test_case_id: str, model_id: str):
        pair = (test_case_id, model_id)
        if pair not in self._reserved:
            self._statuses.pop(pair, None)

    def reset_model(self, model_id: str):
        for pair in [p for p in self._statuses if p[1] == model_id]:
            self.reset_pair(*pair)

    def reset_test_case(self, test_case_id: str):
        for pair in [p for p in self._statuses if p[0] == test_case_id]:
            self.reset_pair(*pair)

    def clear(self):
        for pair in list(self._statuses):
            self.reset_pair(*pair)

    def rehydrate(self, pairs: Iterable[Pair]):
        """저장된 결과가 있는 쌍을 completed로 복원"""
        for pair in pairs:
            if pair not in self._reserved:
                self._statuses[pair] = ExecutionStatus.COMPLETED

    def snapshot(self, test_case_id: Optional[str] = None) -> List[StatusEntry]:
        return [
            StatusEntry(test_case_id=tc_id, model_id=model_id, status=status)
            for (tc_id, model_id), status in self._statuses.items()
            if test_case_id is None or tc_id == test_case_id
        ]


@dataclass
class RunHandle:
    """예약이 끝난 실행 요청"""
    test_case: TestCase
    model_ids: List[str]
    enable_round_trip: bool = False
    translation_model_id: Optional[str] = None
    # 실행 도중 부모 테스트 케이스가 삭제되면 True
    cancelled: bool = False


class ExecutionOrchestrator:
    """
    테스트 케이스 실행 조정자

    모델은 순서대로 하나씩 실행되며, 한 모델의 실패가 나머지 모델 실행을
    막지 않습니다. 저장 실패는 경고로 남기고 실행을 계속합니다.
    실행 도중 테스트 케이스가 삭제되면 남은 모델은 건너뛰고,
    이미 나온 결과도 저장/발행하지 않습니다.
    """

    def __init__(self, client, pipeline, repository, event_bus, status_tracker: ExecutionStatusTracker):
        self.client = client
        self.pipeline = pipeline
        self.repository = repository
        self.event_bus = event_bus
        self.status_tracker = status_tracker

    async def run_test_case(
        self,
        test_case: TestCase,
        model_ids: List[str],
        enable_round_trip: bool = False,
        translation_model_id: Optional[str] = None
    ) -> RunSummary:
        """
        테스트 케이스를 선택한 모델들에 실행

        Args:
            test_case: 실행할 테스트 케이스
            model_ids: 대상 모델 ID 목록 (중복은 첫 번째만 사용)
            enable_round_trip: 왕복 번역 사용 여부
            translation_model_id: 왕복 번역에 사용할 모델

        Returns:
            RunSummary: 모델별 결과와 저장 경고

        Raises:
            ExecutionConflictError: 이미 실행 중인 쌍이 있는 경우
        """
        handle = await self.begin_run(
            test_case, model_ids, enable_round_trip, translation_model_id
        )
        return await self.execute_run(handle)

    async def begin_run(
        self,
        test_case: TestCase,
        model_ids: List[str],
        enable_round_trip: bool = False,
        translation_model_id: Optional[str] = None
    ) -> RunHandle:
        """모델 쌍을 예약하고 pending 이벤트 발행 (실행은 execute_run에서)"""
        ordered = list(dict.fromkeys(model_ids))
        await self.status_tracker.mark_pending(test_case.id, ordered)

        for model_id in ordered:
            await self._publish_status(test_case.id, model_id, ExecutionStatus.PENDING)

        return RunHandle(
            test_case=test_case,
            model_ids=ordered,
            enable_round_trip=enable_round_trip,
            translation_model_id=translation_model_id,
        )

    async def execute_run(self, handle: RunHandle) -> RunSummary:
        test_case = handle.test_case
        summary = RunSummary(test_case_id=test_case.id)
        logger.info(
            f"테스트 실행 시작: test_case={test_case.id}, models={handle.model_ids}, "
            f"round_trip={handle.enable_round_trip}"
        )

        try:
            for model_id in handle.model_ids:
                if handle.cancelled:
                    break
                await self._run_single(handle, model_id, summary)
        finally:
            self.status_tracker.release(test_case.id, handle.model_ids)
            if handle.cancelled:
                self.status_tracker.reset_test_case(test_case.id)

        if handle.cancelled:
            summary.cancelled = True
            logger.warning(f"테스트 케이스가 실행 중 삭제되어 실행을 중단했습니다: {test_case.id}")
            return summary

        logger.info(
            f"테스트 실행 완료: test_case={test_case.id}, "
            f"failed={summary.failed_count}/{len(summary.results)}, warnings={len(summary.warnings)}"
        )
        return summary

    async def _run_single(self, handle: RunHandle, model_id: str, summary: RunSummary):
        test_case = handle.test_case
        self.status_tracker.start(test_case.id, model_id)

        try:
            await self._publish_status(test_case.id, model_id, ExecutionStatus.RUNNING)

            result = await self._invoke(handle, model_id)
            log_execution(
                test_case.id,
                model_id,
                result.status.value,
                latency_ms=result.latency_ms,
                tokens_used=result.tokens_used,
            )

            warning = await self._persist(handle, result)
            if handle.cancelled:
                return
            if warning:
                summary.warnings.append(warning)
                await self.event_bus.publish(WarningEvent(
                    test_case_id=test_case.id,
                    model_id=model_id,
                    warning=warning,
                ))

            summary.results.append(result)
            await self.event_bus.publish(ResultEvent(
                test_case_id=test_case.id,
                model_id=model_id,
                result=result,
            ))
        finally:
            self.status_tracker.finish(test_case.id, model_id)
            await self._publish_status(test_case.id, model_id, ExecutionStatus.COMPLETED)

    async def _invoke(self, handle: RunHandle, model_id: str) -> ExecutionResult:
        """모델 호출 후 결과 생성 (실패도 결과로 기록)"""
        test_case = handle.test_case

        try:
            if handle.enable_round_trip:
                response = await self.pipeline.run_round_trip(
                    test_case, model_id, handle.translation_model_id
                )
            else:
                response = await self.client.complete(test_case, model_id)

        except Exception as e:
            logger.error(f"모델 실행 실패: test_case={test_case.id}, model={model_id}, error={str(e)}")
            return ExecutionResult(
                test_case_id=test_case.id,
                model_id=model_id,
                status=ResultStatus.FAILED,
                error=str(e),
            )

        return ExecutionResult(
            test_case_id=test_case.id,
            model_id=model_id,
            output=response.output,
            round_trip_output=getattr(response, "round_trip_output", None),
            translated_prompt=getattr(response, "translated_prompt", None),
            tokens_used=response.tokens_used,
            latency_ms=response.latency_ms,
            status=ResultStatus.COMPLETED,
            diff=compute_diff(test_case.expected_result, response.output),
        )

    async def _persist(self, handle: RunHandle, result: ExecutionResult) -> Optional[PersistenceWarning]:
        try:
            await self.repository.save_result(result)
        except ResourceNotFoundError:
            handle.cancelled = True
            return None
        except PersistenceError as e:
            logger.warning(
                f"결과 저장 실패 (메모리에는 반영): test_case={result.test_case_id}, "
                f"model={result.model_id}, error={e.message}"
            )
            return PersistenceWarning(
                test_case_id=result.test_case_id,
                model_id=result.model_id,
                operation="save_result",
                message=e.message,
            )
        return None

    async def _publish_status(self, test_case_id: str, model_id: str, status: ExecutionStatus):
        await self.event_bus.publish(StatusEvent(
            test_case_id=test_case_id,
            model_id=model_id,
            status=status,
        ))
