# prompt-studio/backend/prompt_studio/api/v1/settings.py
"""
런타임 설정 및 데이터 관리 API 엔드포인트
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from prompt_studio.core.dependencies import get_repository, get_state_store
from prompt_studio.db.repository import Repository
from prompt_studio.schemas.settings import (
    API_KEY_SETTING,
    DataSnapshot,
    SettingUpdate,
    SettingValue,
)
from prompt_studio.services.state_store import EvaluationStateStore
from prompt_studio.utils.logger import log_audit, logger
from prompt_studio.utils.validators import SettingValidator

router = APIRouter(
    responses={500: {"description": "Internal server error"}}
)


def _mask(key: str, value: Any) -> Any:
    """API 키는 끝 4자리만 노출"""
    if key == API_KEY_SETTING and isinstance(value, str) and value:
        return f"****{value[-4:]}"
    return value


@router.get("/", response_model=Dict[str, Any])
async def list_settings(
    repository: Repository = Depends(get_repository)
) -> Dict[str, Any]:
    all_settings = await repository.get_all_settings()
    return {key: _mask(key, value) for key, value in all_settings.items()}


@router.get("/data/export", response_model=DataSnapshot)
async def export_data(
    repository: Repository = Depends(get_repository)
) -> DataSnapshot:
    """테스트 케이스, 결과, 점수 전체 스냅샷"""
    return await repository.export_all_data()


@router.post("/data/import", response_model=Dict[str, Any])
async def import_data(
    snapshot: DataSnapshot,
    repository: Repository = Depends(get_repository),
    state_store: EvaluationStateStore = Depends(get_state_store)
) -> Dict[str, Any]:
    """
    스냅샷 가져오기

    같은 키의 기존 데이터는 덮어쓰며, 가져온 뒤 메모리 상태를 다시 구성합니다.
    """
    counts = await repository.import_data(snapshot)
    await state_store.rehydrate(repository)

    log_audit("import", "data", "all", "success", **counts)
    return {"imported": counts}


@router.delete("/data", status_code=status.HTTP_204_NO_CONTENT)
async def clear_data(
    repository: Repository = Depends(get_repository),
    state_store: EvaluationStateStore = Depends(get_state_store)
):
    """테스트 케이스, 결과, 점수 전체 삭제 (설정 유지)"""
    await repository.clear_all_data()
    state_store.clear()

    log_audit("clear", "data", "all", "success")


@router.get("/{key}", response_model=SettingValue)
async def get_setting(
    key: str,
    repository: Repository = Depends(get_repository)
) -> SettingValue:
    value = await repository.get_setting(key)
    return SettingValue(key=key, value=_mask(key, value))


@router.put("/{key}", response_model=SettingValue)
async def update_setting(
    key: str,
    update: SettingUpdate,
    repository: Repository = Depends(get_repository)
) -> SettingValue:
    """설정 저장 (다음 모델 호출부터 반영)"""
    SettingValidator.validate(key, update.value)
    await repository.save_setting(key, update.value)

    logger.info(f"설정 변경: {key}")
    return SettingValue(key=key, value=_mask(key, update.value))
