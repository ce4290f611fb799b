"""
Pydantic 스키마 정의

API 요청/응답 검증 및 서비스 간 데이터 전달을 위한 스키마들을 정의합니다.
"""

# prompt-studio/backend/prompt_studio/schemas/__init__.py
from prompt_studio.schemas.test_case import *
from prompt_studio.schemas.result import *
from prompt_studio.schemas.grade import *
from prompt_studio.schemas.llm import *
