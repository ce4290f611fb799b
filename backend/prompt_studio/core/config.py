# prompt-studio/backend/prompt_studio/core/config.py
"""
애플리케이션 설정 관리 모듈

환경 변수를 읽어와 Pydantic 모델로 검증하고,
애플리케이션 전체에서 사용할 설정값을 제공합니다.
"""

from typing import List, Optional, Union
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    애플리케이션 설정 클래스

    환경 변수를 자동으로 읽어와 타입 검증을 수행합니다.
    .env 파일을 지원하며, 환경 변수가 우선순위를 가집니다.
    실행 중 변경 가능한 값(API 키, 자체 호스팅 엔드포인트)은
    settings 테이블에 저장된 값이 우선합니다.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "APP_NAME": "PromptStudio",
                "DEBUG": True,
                "DATABASE_URL": "sqlite+aiosqlite:///./prompt_studio.db",
                "OPENROUTER_API_KEY": "sk-or-..."
            }
        },
    )

    # 애플리케이션 기본 설정
    APP_NAME: str = Field(default="PromptStudio", description="애플리케이션 이름")
    APP_VERSION: str = Field(default="1.0.0", description="애플리케이션 버전")
    DEBUG: bool = Field(default=False, description="디버그 모드 활성화 여부")
    LOG_LEVEL: str = Field(default="INFO", description="로깅 레벨")

    # API 서버 설정
    API_HOST: str = Field(default="0.0.0.0", description="API 서버 호스트")
    API_PORT: int = Field(default=8000, description="API 서버 포트")
    API_PREFIX: str = Field(default="/api/v1", description="API 경로 접두사")

    # CORS 설정
    CORS_ORIGINS: Union[List[str], str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        description="허용된 CORS 오리진 목록"
    )

    # 데이터베이스 설정
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./prompt_studio.db",
        description="로컬 저장소 연결 URL"
    )
    DATABASE_ECHO: bool = Field(default=False, description="SQL 쿼리 로깅 여부")

    # 호스팅 LLM API (OpenRouter 호환) 설정
    OPENROUTER_API_KEY: str = Field(default="", description="호스팅 API 키")
    OPENROUTER_API_URL: str = Field(
        default="https://openrouter.ai/api/v1",
        description="호스팅 API 기본 경로"
    )

    # 자체 호스팅 엔드포인트 설정
    SELF_HOSTED_URL: Optional[str] = Field(
        default=None,
        description="settings 테이블에 값이 없을 때 사용할 자체 호스팅 엔드포인트"
    )
    SELF_HOSTED_DEFAULT_QUERY: str = Field(
        default="gguf",
        description="자체 호스팅 모델 검색 기본 쿼리"
    )
    MODEL_LIST_LIMIT: int = Field(default=100, description="모델 목록 기본 최대 개수")

    # 요청 설정
    REQUEST_TIMEOUT_SECONDS: float = Field(
        default=120.0,
        description="원격 모델 호출 제한 시간 (초)"
    )

    # 모델 설정
    DEFAULT_TEMPERATURE: float = Field(
        default=0.7,
        description="테스트 실행 temperature 값"
    )
    AUXILIARY_TEMPERATURE: float = Field(
        default=0.3,
        description="번역 및 자동 채점 temperature 값"
    )
    DEFAULT_TRANSLATION_MODEL: str = Field(
        default="openai/gpt-4.1",
        description="왕복 번역에 사용할 기본 모델"
    )
    DEFAULT_GRADING_MODEL: str = Field(
        default="openai/gpt-4.1",
        description="자동 채점에 사용할 기본 모델"
    )

    # 왕복 번역 언어 설정
    SOURCE_LANGUAGE: str = Field(default="Dutch", description="원본 프롬프트 언어")
    PIVOT_LANGUAGE: str = Field(default="English", description="중간 번역 언어")

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """
        CORS 오리진 문자열을 리스트로 파싱

        환경 변수에서 콤마로 구분된 문자열로 전달되는 경우를 처리합니다.
        """
        if isinstance(v, str):
            # 콤마로 구분된 문자열을 리스트로 변환
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("OPENROUTER_API_URL", "SELF_HOSTED_URL")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        """기본 경로 끝의 슬래시 제거"""
        if v:
            return v.rstrip("/")
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    설정 인스턴스를 반환하는 함수

    @lru_cache 데코레이터를 사용하여 설정 객체를 캐싱합니다.
    애플리케이션 생명주기 동안 동일한 설정 인스턴스를 재사용합니다.
    """
    return Settings()


# 전역 설정 인스턴스
settings = get_settings()
