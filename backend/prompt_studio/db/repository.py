# prompt-studio/backend/prompt_studio/db/repository.py
"""
영구 저장소 리포지토리

테스트 케이스, 실행 결과, 점수, 설정 네 개의 테이블을 다룹니다.
결과와 점수는 (test_case_id, model_id) 복합 키로 식별되며,
부모 테스트 케이스 삭제 시 하나의 트랜잭션 안에서 함께 삭제됩니다.
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from prompt_studio.models.base import utcnow
from prompt_studio.models.test_case import TestCase as TestCaseModel
from prompt_studio.models.result import ExecutionResult as ExecutionResultModel
from prompt_studio.models.grade import Grade as GradeModel
from prompt_studio.models.setting import Setting as SettingModel
from prompt_studio.schemas.grade import Grade
from prompt_studio.schemas.result import ExecutionResult
from prompt_studio.schemas.settings import DataSnapshot
from prompt_studio.schemas.test_case import TestCase, TestCaseCreate, TestCaseUpdate
from prompt_studio.utils.exceptions import PersistenceError, ResourceNotFoundError
from prompt_studio.utils.logger import logger


def _result_to_row(result: ExecutionResult) -> ExecutionResultModel:
    return ExecutionResultModel(
        test_case_id=result.test_case_id,
        model_id=result.model_id,
        output=result.output,
        round_trip_output=result.round_trip_output,
        translated_prompt=result.translated_prompt,
        tokens_used=result.tokens_used,
        latency_ms=result.latency_ms,
        timestamp=result.timestamp,
        status=result.status.value,
        error=result.error,
        diff=result.diff.model_dump() if result.diff else None,
    )


def _grade_to_row(grade: Grade) -> GradeModel:
    return GradeModel(
        test_case_id=grade.test_case_id,
        model_id=grade.model_id,
        score=grade.score,
        method=grade.method.value,
        comments=grade.comments,
        feedback=grade.feedback,
        judge_model_id=grade.judge_model_id,
        timestamp=grade.timestamp,
    )


def _test_case_to_row(test_case: TestCase) -> TestCaseModel:
    return TestCaseModel(**test_case.model_dump())


async def _require_test_case(session: AsyncSession, test_case_id: str):
    """같은 트랜잭션 안에서 부모 테스트 케이스 존재 확인 (고아 행 방지)"""
    if await session.get(TestCaseModel, test_case_id) is None:
        raise ResourceNotFoundError(
            f"Test case '{test_case_id}' not found",
            resource_type="test_case",
            resource_id=test_case_id
        )


class Repository:
    """
    비동기 SQLAlchemy 기반 저장소

    모든 쓰기는 키 기준 덮어쓰기(upsert)이며, 여러 테이블에 걸친 삭제는
    하나의 트랜잭션으로 처리되어 부분적으로 반영된 상태가 관찰되지 않습니다.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        """트랜잭션 세션을 열고 SQLAlchemy 오류를 PersistenceError로 변환"""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.error(f"저장소 작업 실패 ({operation}): {str(e)}")
            raise PersistenceError(
                f"Storage operation '{operation}' failed: {e}",
                operation=operation
            ) from e

    # ------------------------------------------------------------------
    # 테스트 케이스
    # ------------------------------------------------------------------

    async def create_test_case(self, data: TestCaseCreate) -> TestCase:
        """새 ID와 타임스탬프로 테스트 케이스 생성"""
        now = utcnow()
        test_case = TestCase(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            **data.model_dump()
        )
        return await self.save_test_case(test_case)

    async def save_test_case(self, test_case: TestCase) -> TestCase:
        async with self._transaction("save_test_case") as session:
            await session.merge(_test_case_to_row(test_case))
        return test_case

    async def update_test_case(self, test_case_id: str, update: TestCaseUpdate) -> Optional[TestCase]:
        """
        보낸 필드만 수정하고 updated_at 갱신

        Returns:
            Optional[TestCase]: 수정된 테스트 케이스 (없으면 None)
        """
        async with self._transaction("update_test_case") as session:
            row = await session.get(TestCaseModel, test_case_id)
            if row is None:
                return None

            for field, value in update.model_dump(exclude_unset=True).items():
                if value is not None:
                    setattr(row, field, value)
            row.updated_at = utcnow()

            await session.flush()
            return TestCase.model_validate(row)

    async def get_test_case(self, test_case_id: str) -> Optional[TestCase]:
        async with self._transaction("get_test_case") as session:
            row = await session.get(TestCaseModel, test_case_id)
            return TestCase.model_validate(row) if row else None

    async def get_all_test_cases(self) -> List[TestCase]:
        async with self._transaction("get_all_test_cases") as session:
            rows = await session.execute(
                select(TestCaseModel).order_by(TestCaseModel.created_at)
            )
            return [TestCase.model_validate(row) for row in rows.scalars().all()]

    async def delete_test_case(self, test_case_id: str) -> bool:
        """
        테스트 케이스와 그에 속한 결과/점수를 하나의 트랜잭션으로 삭제

        Returns:
            bool: 테스트 케이스가 존재했는지 여부
        """
        async with self._transaction("delete_test_case") as session:
            await session.execute(
                delete(ExecutionResultModel).where(ExecutionResultModel.test_case_id == test_case_id)
            )
            await session.execute(
                delete(GradeModel).where(GradeModel.test_case_id == test_case_id)
            )
            deleted = await session.execute(
                delete(TestCaseModel).where(TestCaseModel.id == test_case_id)
            )
            return deleted.rowcount > 0

    # ------------------------------------------------------------------
    # 실행 결과
    # ------------------------------------------------------------------

    async def save_result(self, result: ExecutionResult) -> ExecutionResult:
        """
        같은 (test_case_id, model_id)의 이전 결과를 덮어씀

        Raises:
            ResourceNotFoundError: 부모 테스트 케이스가 이미 삭제된 경우 (아무것도 쓰지 않음)
        """
        async with self._transaction("save_result") as session:
            await _require_test_case(session, result.test_case_id)
            await session.merge(_result_to_row(result))
        return result

    async def get_result(self, test_case_id: str, model_id: str) -> Optional[ExecutionResult]:
        async with self._transaction("get_result") as session:
            row = await session.get(ExecutionResultModel, (test_case_id, model_id))
            return ExecutionResult.model_validate(row) if row else None

    async def get_results_for_test_case(self, test_case_id: str) -> List[ExecutionResult]:
        async with self._transaction("get_results_for_test_case") as session:
            rows = await session.execute(
                select(ExecutionResultModel)
                .where(ExecutionResultModel.test_case_id == test_case_id)
                .order_by(ExecutionResultModel.timestamp)
            )
            return [ExecutionResult.model_validate(row) for row in rows.scalars().all()]

    async def get_all_results(self) -> List[ExecutionResult]:
        async with self._transaction("get_all_results") as session:
            rows = await session.execute(
                select(ExecutionResultModel).order_by(ExecutionResultModel.timestamp)
            )
            return [ExecutionResult.model_validate(row) for row in rows.scalars().all()]

    async def delete_result(self, test_case_id: str, model_id: str) -> bool:
        """단일 (테스트 케이스, 모델) 결과와 그 점수를 함께 삭제"""
        async with self._transaction("delete_result") as session:
            deleted = await session.execute(
                delete(ExecutionResultModel).where(
                    ExecutionResultModel.test_case_id == test_case_id,
                    ExecutionResultModel.model_id == model_id,
                )
            )
            await session.execute(
                delete(GradeModel).where(
                    GradeModel.test_case_id == test_case_id,
                    GradeModel.model_id == model_id,
                )
            )
            return deleted.rowcount > 0

    async def delete_all_for_model(self, model_id: str) -> Dict[str, int]:
        """
        모든 테스트 케이스에서 특정 모델의 결과와 점수를 삭제

        Returns:
            Dict[str, int]: 삭제된 결과/점수 행 수
        """
        async with self._transaction("delete_all_for_model") as session:
            results = await session.execute(
                delete(ExecutionResultModel).where(ExecutionResultModel.model_id == model_id)
            )
            grades = await session.execute(
                delete(GradeModel).where(GradeModel.model_id == model_id)
            )
            return {"results": results.rowcount, "grades": grades.rowcount}

    # ------------------------------------------------------------------
    # 점수
    # ------------------------------------------------------------------

    async def save_grade(self, grade: Grade) -> Grade:
        async with self._transaction("save_grade") as session:
            await _require_test_case(session, grade.test_case_id)
            await session.merge(_grade_to_row(grade))
        return grade

    async def get_grade(self, test_case_id: str, model_id: str) -> Optional[Grade]:
        async with self._transaction("get_grade") as session:
            row = await session.get(GradeModel, (test_case_id, model_id))
            return Grade.model_validate(row) if row else None

    async def get_grades_for_test_case(self, test_case_id: str) -> List[Grade]:
        async with self._transaction("get_grades_for_test_case") as session:
            rows = await session.execute(
                select(GradeModel).where(GradeModel.test_case_id == test_case_id)
            )
            return [Grade.model_validate(row) for row in rows.scalars().all()]

    async def get_all_grades(self) -> List[Grade]:
        async with self._transaction("get_all_grades") as session:
            rows = await session.execute(select(GradeModel))
            return [Grade.model_validate(row) for row in rows.scalars().all()]

    # ------------------------------------------------------------------
    # 설정
    # ------------------------------------------------------------------

    async def get_setting(self, key: str, default: Any = None) -> Any:
        async with self._transaction("get_setting") as session:
            row = await session.get(SettingModel, key)
            if row is None or row.value is None:
                return default
            return row.value

    async def save_setting(self, key: str, value: Any) -> None:
        async with self._transaction("save_setting") as session:
            await session.merge(SettingModel(key=key, value=value))

    async def get_all_settings(self) -> Dict[str, Any]:
        async with self._transaction("get_all_settings") as session:
            rows = await session.execute(select(SettingModel).order_by(SettingModel.key))
            return {row.key: row.value for row in rows.scalars().all()}

    # ------------------------------------------------------------------
    # 전체 데이터
    # ------------------------------------------------------------------

    async def clear_all_data(self) -> None:
        """테스트 케이스, 결과, 점수 전체 삭제 (설정은 유지)"""
        async with self._transaction("clear_all_data") as session:
            await session.execute(delete(ExecutionResultModel))
            await session.execute(delete(GradeModel))
            await session.execute(delete(TestCaseModel))

    async def export_all_data(self) -> DataSnapshot:
        """한 번의 읽기 트랜잭션으로 전체 스냅샷 생성"""
        async with self._transaction("export_all_data") as session:
            test_cases = (await session.execute(
                select(TestCaseModel).order_by(TestCaseModel.created_at)
            )).scalars().all()
            results = (await session.execute(select(ExecutionResultModel))).scalars().all()
            grades = (await session.execute(select(GradeModel))).scalars().all()

            return DataSnapshot(
                test_cases=[TestCase.model_validate(row) for row in test_cases],
                results=[ExecutionResult.model_validate(row) for row in results],
                grades=[Grade.model_validate(row) for row in grades],
                export_date=utcnow(),
            )

    async def import_data(self, snapshot: DataSnapshot) -> Dict[str, int]:
        """스냅샷의 모든 행을 하나의 트랜잭션으로 upsert"""
        async with self._transaction("import_data") as session:
            for test_case in snapshot.test_cases:
                await session.merge(_test_case_to_row(test_case))
            for result in snapshot.results:
                await session.merge(_result_to_row(result))
            for grade in snapshot.grades:
                await session.merge(_grade_to_row(grade))

        return {
            "test_cases": len(snapshot.test_cases),
            "results": len(snapshot.results),
            "grades": len(snapshot.grades),
        }
