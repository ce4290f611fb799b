# prompt-studio/backend/prompt_studio/utils/exceptions.py
"""
커스텀 예외 클래스 정의

애플리케이션에서 사용하는 구체적인 예외들을 정의합니다.
"""

from typing import Any, Dict, Optional


class PromptStudioException(Exception):
    """PromptStudio 기본 예외 클래스"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(PromptStudioException):
    """데이터 검증 실패 예외"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(message, error_code="VALIDATION_ERROR", **kwargs)


class ConfigurationError(PromptStudioException):
    """설정 오류 예외"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(message, error_code="CONFIGURATION_ERROR", **kwargs)


class ModelInvocationError(PromptStudioException):
    """원격 모델 호출 실패 예외 (전송 오류, 2xx 이외 응답, 잘못된 응답 본문)"""

    def __init__(
        self,
        message: str,
        model_id: Optional[str] = None,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        self.model_id = model_id
        self.provider = provider
        self.status_code = status_code
        super().__init__(message, error_code="MODEL_INVOCATION_ERROR", **kwargs)


class TranslationError(PromptStudioException):
    """왕복 번역 파이프라인 단계 실패 예외"""

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        model_id: Optional[str] = None,
        **kwargs
    ):
        self.stage = stage
        self.model_id = model_id
        super().__init__(message, error_code="TRANSLATION_ERROR", **kwargs)


class GradingError(PromptStudioException):
    """자동 채점 실패 예외"""

    def __init__(
        self,
        message: str,
        test_case_id: Optional[str] = None,
        model_id: Optional[str] = None,
        **kwargs
    ):
        self.test_case_id = test_case_id
        self.model_id = model_id
        super().__init__(message, error_code="GRADING_ERROR", **kwargs)


class PersistenceError(PromptStudioException):
    """영구 저장소 쓰기/읽기 실패 예외"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        **kwargs
    ):
        self.operation = operation
        super().__init__(message, error_code="PERSISTENCE_ERROR", **kwargs)


class ResourceNotFoundError(PromptStudioException):
    """리소스 없음 예외"""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        **kwargs
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message, error_code="RESOURCE_NOT_FOUND", **kwargs)


class ExecutionConflictError(PromptStudioException):
    """이미 실행 중인 (테스트 케이스, 모델) 쌍을 다시 실행하려는 경우"""

    def __init__(
        self,
        message: str,
        test_case_id: Optional[str] = None,
        model_ids: Optional[list] = None,
        **kwargs
    ):
        self.test_case_id = test_case_id
        self.model_ids = model_ids or []
        super().__init__(message, error_code="EXECUTION_CONFLICT", **kwargs)


# 예외 매핑 (HTTP 상태 코드)
EXCEPTION_STATUS_MAP = {
    ValidationError: 400,
    ConfigurationError: 400,
    ResourceNotFoundError: 404,
    ExecutionConflictError: 409,
    ModelInvocationError: 502,
    TranslationError: 502,
    GradingError: 502,
    PersistenceError: 500,
    PromptStudioException: 500,
}


def get_http_status_code(exception: Exception) -> int:
    """
    예외 타입에 따른 HTTP 상태 코드 반환

    Args:
        exception: 예외 인스턴스

    Returns:
        int: HTTP 상태 코드
    """
    for exc_type, status_code in EXCEPTION_STATUS_MAP.items():
        if isinstance(exception, exc_type):
            return status_code

    return 500


def format_error_response(exception: PromptStudioException) -> Dict[str, Any]:
    """
    예외를 API 에러 응답 형식으로 변환

    Args:
        exception: PromptStudio 예외 인스턴스

    Returns:
        Dict[str, Any]: 에러 응답 딕셔너리
    """
    response = {
        "error": True,
        "error_code": exception.error_code or "UNKNOWN_ERROR",
        "message": exception.message,
        "details": exception.details
    }

    # 추가 필드들 포함
    if getattr(exception, "field", None):
        response["field"] = exception.field

    if getattr(exception, "resource_type", None):
        response["resource_type"] = exception.resource_type

    if getattr(exception, "resource_id", None):
        response["resource_id"] = exception.resource_id

    if getattr(exception, "model_id", None):
        response["model_id"] = exception.model_id

    if getattr(exception, "stage", None):
        response["stage"] = exception.stage

    return response
