# prompt-studio/backend/prompt_studio/schemas/test_case.py
"""
테스트 케이스 관련 스키마
"""

from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from prompt_studio.schemas.llm import PromptInput


class TestCaseBase(PromptInput):
    """테스트 케이스 공통 필드"""
    __test__ = False

    name: str = Field(default="New Test Case", min_length=1, max_length=255)
    user_prompt: str = Field(..., min_length=1)
    expected_result: str = ""


class TestCaseCreate(TestCaseBase):
    """테스트 케이스 생성 요청"""
    __test__ = False


class TestCaseUpdate(BaseModel):
    """테스트 케이스 수정 요청 (보낸 필드만 변경)"""
    __test__ = False

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    system_prompt: Optional[str] = None
    user_prompt: Optional[str] = Field(default=None, min_length=1)
    source_text: Optional[str] = None
    expected_result: Optional[str] = None


class TestCase(TestCaseBase):
    """저장된 테스트 케이스"""
    __test__ = False
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    updated_at: datetime
