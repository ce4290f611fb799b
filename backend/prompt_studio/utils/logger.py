# prompt-studio/backend/prompt_studio/utils/logger.py
"""
로깅 설정 모듈

DEBUG 모드에서는 사람이 읽기 쉬운 한 줄 포맷, 그 외에는
python-json-logger 기반 JSON 포맷으로 표준 출력에 기록합니다.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger.json import JsonFormatter

from prompt_studio.core.config import settings

_READABLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class PromptStudioJsonFormatter(JsonFormatter):
    """애플리케이션/위치 정보를 덧붙이는 JSON 포매터"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['location'] = f"{record.module}.{record.funcName}:{record.lineno}"
        log_record['app'] = f"{settings.APP_NAME}/{settings.APP_VERSION}"
        log_record['environment'] = "development" if settings.DEBUG else "production"


def _build_formatter() -> logging.Formatter:
    if settings.DEBUG:
        return logging.Formatter(_READABLE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    return PromptStudioJsonFormatter()


def setup_logger(name: Optional[str] = None, level: Optional[str] = None) -> logging.Logger:
    """
    이름별 로거 설정

    Args:
        name: 로거 이름 (없으면 애플리케이션 이름)
        level: 로그 레벨 (없으면 settings.LOG_LEVEL)

    Returns:
        logging.Logger: 표준 출력 핸들러가 하나 붙은 로거
    """
    logger = logging.getLogger(name or settings.APP_NAME)

    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper())
    logger.setLevel(log_level)

    # 재설정 시 핸들러 중복 방지
    logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(_build_formatter())
    logger.addHandler(handler)

    logger.propagate = False

    return logger


# 전역 로거 인스턴스
logger = setup_logger()

# 용도별 로거
access_logger = setup_logger("access", "INFO")
error_logger = setup_logger("error", "ERROR")
audit_logger = setup_logger("audit", "INFO")
execution_logger = setup_logger("execution")


def log_execution(
    test_case_id: str,
    model_id: str,
    status: str,
    latency_ms: Optional[int] = None,
    tokens_used: Optional[int] = None,
    **kwargs
):
    """(테스트 케이스, 모델) 실행 한 건의 결과 기록"""
    execution_logger.info(
        f"Execution {status}: {test_case_id}/{model_id}",
        extra={
            "test_case_id": test_case_id,
            "model_id": model_id,
            "status": status,
            "latency_ms": latency_ms,
            "tokens_used": tokens_used,
            **kwargs
        }
    )


def log_request(request_id: str, method: str, path: str, client_ip: Optional[str], **kwargs):
    access_logger.info(
        f"--> {method} {path}",
        extra={"request_id": request_id, "method": method, "path": path, "client_ip": client_ip, **kwargs}
    )


def log_response(request_id: str, status_code: int, response_time: float, **kwargs):
    """응답 시간은 초 단위로 받아 ms로 기록"""
    access_logger.info(
        f"<-- {status_code}",
        extra={
            "request_id": request_id,
            "status_code": status_code,
            "response_time_ms": int(response_time * 1000),
            **kwargs
        }
    )


def log_error(error_type: str, error_message: str, request_id: Optional[str] = None, **kwargs):
    """처리 중 예외를 스택 트레이스와 함께 error 로거에 기록"""
    error_logger.error(
        f"{error_type}: {error_message}",
        extra={"error_type": error_type, "request_id": request_id, **kwargs},
        exc_info=True
    )


def log_audit(action: str, resource_type: str, resource_id: str, result: str, **kwargs):
    """
    감사 로깅

    테스트 케이스/결과 삭제, 전체 데이터 삭제 및 가져오기처럼
    되돌릴 수 없는 작업을 기록합니다.
    """
    audit_logger.info(
        f"Audit: {action} {resource_type} {resource_id}",
        extra={
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "result": result,
            **kwargs
        }
    )
