# prompt-studio/backend/prompt_studio/api/v1/router.py
"""
API 라우터 통합 모듈

모든 API 엔드포인트를 하나의 라우터로 통합합니다.
"""

from fastapi import APIRouter

from prompt_studio.api.v1 import models, results, settings, test_cases, websocket

# 메인 API 라우터 생성
api_router = APIRouter()

# 각 모듈의 라우터 포함
api_router.include_router(
    test_cases.router,
    prefix="/test-cases",
    tags=["test-cases"]
)

api_router.include_router(
    results.router,
    prefix="/results",
    tags=["results"]
)

api_router.include_router(
    models.router,
    prefix="/models",
    tags=["models"]
)

api_router.include_router(
    settings.router,
    prefix="/settings",
    tags=["settings"]
)

api_router.include_router(
    websocket.router,
    prefix="/ws",
    tags=["websocket"]
)
