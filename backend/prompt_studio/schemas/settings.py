# prompt-studio/backend/prompt_studio/schemas/settings.py
"""
런타임 설정 및 데이터 스냅샷 스키마
"""

from typing import Any, List, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from prompt_studio.schemas.grade import Grade
from prompt_studio.schemas.result import ExecutionResult
from prompt_studio.schemas.test_case import TestCase

# settings 테이블 키
API_KEY_SETTING = "api_key"
SELF_HOSTED_ENABLED_SETTING = "self_hosted_enabled"
SELF_HOSTED_URL_SETTING = "self_hosted_url"


class SettingValue(BaseModel):
    """설정 값"""
    key: str
    value: Any = None


class SettingUpdate(BaseModel):
    """설정 저장 요청"""
    value: Any = None


class DataSnapshot(BaseModel):
    """테스트 케이스, 결과, 점수 전체 스냅샷 (설정 제외)"""
    model_config = ConfigDict(populate_by_name=True)

    test_cases: List[TestCase] = Field(default_factory=list)
    results: List[ExecutionResult] = Field(default_factory=list)
    grades: List[Grade] = Field(default_factory=list)
    export_date: Optional[datetime] = None
