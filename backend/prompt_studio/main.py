# prompt-studio/backend/prompt_studio/main.py
"""
PromptStudio 백엔드 메인 애플리케이션 파일

이 파일은 FastAPI 애플리케이션의 진입점으로,
모든 라우터를 통합하고 미들웨어를 설정합니다.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response

from prompt_studio.api.v1.router import api_router
from prompt_studio.api.v1.websocket import manager
from prompt_studio.core.config import settings
from prompt_studio.core.dependencies import container
from prompt_studio.db.session import engine, init_db
from prompt_studio.utils.exceptions import (
    PromptStudioException,
    format_error_response,
    get_http_status_code,
)
from prompt_studio.utils.logger import log_error, log_request, log_response, logger

# Prometheus 메트릭 정의
REQUEST_COUNT = Counter(
    'promptstudio_requests_total',
    'Total number of requests',
    ['method', 'endpoint', 'status']
)
REQUEST_DURATION = Histogram(
    'promptstudio_request_duration_seconds',
    'Request duration in seconds',
    ['method', 'endpoint']
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션 생명주기 관리

    시작 시: 테이블 생성, 저장된 데이터로 메모리 상태 복원, WebSocket 이벤트 연결
    종료 시: 리소스 정리
    """
    logger.info("PromptStudio 백엔드 서버를 시작합니다...")

    await init_db()
    await container.state_store.rehydrate(container.repository)
    unsubscribe = container.event_bus.subscribe(manager.handle_event)

    yield

    logger.info("PromptStudio 백엔드 서버를 종료합니다...")
    unsubscribe()
    await engine.dispose()


# FastAPI 애플리케이션 인스턴스 생성
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="LLM 프롬프트 평가 및 모델 비교 API",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=f"{settings.API_PREFIX}/redoc",
    lifespan=lifespan
)

# CORS 미들웨어 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# 요청 처리 시간 측정 미들웨어
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """
    각 요청의 처리 시간을 측정하고 헤더에 추가
    Prometheus 메트릭도 함께 기록
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    log_request(
        request_id,
        request.method,
        request.url.path,
        request.client.host if request.client else None
    )

    start_time = time.time()

    response = await call_next(request)

    process_time = time.time() - start_time

    response.headers["X-Process-Time"] = str(process_time)
    response.headers["X-Request-ID"] = request_id
    log_response(request_id, response.status_code, process_time)

    # 경로 파라미터 대신 라우트 패턴으로 집계
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)

    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=endpoint,
        status=response.status_code
    ).inc()

    REQUEST_DURATION.labels(
        method=request.method,
        endpoint=endpoint
    ).observe(process_time)

    return response


@app.exception_handler(PromptStudioException)
async def prompt_studio_exception_handler(request: Request, exc: PromptStudioException):
    """도메인 예외를 상태 코드와 에러 본문으로 변환"""
    status_code = get_http_status_code(exc)
    if status_code >= 500:
        log_error(type(exc).__name__, exc.message, path=request.url.path)
    else:
        logger.warning(f"요청 처리 실패 ({status_code}): {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content=format_error_response(exc)
    )


# 전역 예외 처리기
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    처리되지 않은 예외를 캐치하고 적절한 에러 응답 반환
    """
    logger.error(
        f"처리되지 않은 예외 발생: {exc}",
        exc_info=True,
        extra={
            "request_method": request.method,
            "request_url": str(request.url),
            "client_host": request.client.host if request.client else None
        }
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "내부 서버 오류가 발생했습니다.",
            "type": "internal_server_error"
        }
    )


# API 라우터 등록
app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/", response_model=Dict[str, Any])
async def root():
    """
    API 루트 엔드포인트
    서버 상태 및 기본 정보 반환
    """
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": f"{settings.API_PREFIX}/docs",
        "health": "/health"
    }


@app.get("/health", response_model=Dict[str, str])
async def health_check():
    return {
        "status": "healthy",
        "timestamp": time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime())
    }


# Prometheus 메트릭 엔드포인트
@app.get("/metrics")
async def metrics():
    return Response(
        content=generate_latest(),
        media_type="text/plain"
    )


if __name__ == "__main__":
    import uvicorn

    # 개발 서버 실행
    uvicorn.run(
        "prompt_studio.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
