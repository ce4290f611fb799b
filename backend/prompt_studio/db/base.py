# prompt-studio/backend/prompt_studio/db/base.py
"""
데이터베이스 베이스 설정
"""

# 모든 모델을 import하여 Base.metadata에 등록
from prompt_studio.models.base import Base
from prompt_studio.models.test_case import TestCase
from prompt_studio.models.result import ExecutionResult
from prompt_studio.models.grade import Grade
from prompt_studio.models.setting import Setting

__all__ = ["Base", "TestCase", "ExecutionResult", "Grade", "Setting"]
