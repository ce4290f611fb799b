# prompt-studio/backend/prompt_studio/schemas/llm.py
"""
모델 호출 관련 스키마
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class PromptInput(BaseModel):
    """모델에 보낼 프롬프트 구성 요소"""
    system_prompt: str = ""
    user_prompt: str
    source_text: str = ""


class BackendMode(str, Enum):
    """모델 호출 대상 백엔드"""
    HOSTED = "hosted"
    SELF_HOSTED = "self_hosted"


class BackendConfig(BaseModel):
    """호출 시점에 결정되는 백엔드 설정"""
    mode: BackendMode
    base_url: str
    api_key: Optional[str] = None

    @property
    def is_local(self) -> bool:
        return self.mode == BackendMode.SELF_HOSTED


class ModelPricing(BaseModel):
    """토큰당 가격 (API가 문자열로 반환)"""
    prompt: str = "0"
    completion: str = "0"


class ModelDescriptor(BaseModel):
    """백엔드 종류와 무관하게 정규화된 모델 정보"""
    id: str
    name: str
    description: Optional[str] = None
    context_length: int = -1
    pricing: ModelPricing = Field(default_factory=ModelPricing)

    # 자체 호스팅(GGUF) 전용 메타데이터
    quantization: Optional[str] = None
    author: Optional[str] = None
    downloads: Optional[int] = None
    likes: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    is_split: Optional[bool] = None
    filename: Optional[str] = None


class CompletionResponse(BaseModel):
    """단일 채팅 완성 결과"""
    output: str
    tokens_used: int = 0
    latency_ms: int = 0


class RoundTripResponse(CompletionResponse):
    """왕복 번역 실행 결과 (토큰/지연은 대상 모델 호출만 반영)"""
    round_trip_output: str
    translated_prompt: str
