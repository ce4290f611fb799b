# prompt-studio/backend/tests/conftest.py
"""
pytest 설정 및 공통 픽스처

모든 테스트에서 사용할 공통 설정과 픽스처들을 정의합니다.
"""

import json
from datetime import datetime
from typing import Any, AsyncGenerator, Callable, Dict, List, Union

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from prompt_studio.core.dependencies import ServiceContainer, get_container
from prompt_studio.db.base import Base
from prompt_studio.db.repository import Repository
from prompt_studio.main import app
from prompt_studio.schemas.llm import BackendConfig, BackendMode
from prompt_studio.schemas.test_case import TestCase
from prompt_studio.services.llm_client import ModelInvocationClient, StaticBackendConfigProvider

# 테스트용 비동기 데이터베이스 엔진
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

HOSTED_BASE_URL = "https://openrouter.test/api/v1"
SELF_HOSTED_BASE_URL = "http://localhost:8080"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False
)

TestAsyncSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Reply = Union[str, int, Callable[[Dict[str, Any]], str]]


class FakeModelBackend:
    """
    httpx.MockTransport용 가짜 모델 API

    responses[model_id]에 문자열(출력), 정수(HTTP 오류 코드),
    또는 요청 본문을 받아 출력을 돌려주는 함수를 지정합니다.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.responses: Dict[str, Reply] = {}
        self.default_output = "Model output"
        self.total_tokens = 42
        self.models: List[Dict[str, Any]] = []
        self.search_results: Dict[str, Any] = {"models": []}

    def chat_bodies(self) -> List[Dict[str, Any]]:
        return [
            json.loads(r.content) for r in self.requests
            if r.url.path.endswith("/chat/completions")
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/chat/completions"):
            body = json.loads(request.content)
            reply = self.responses.get(body["model"], self.default_output)

            if isinstance(reply, int):
                return httpx.Response(reply, json={"error": {"message": "upstream failure"}})
            if callable(reply):
                reply = reply(body)

            return httpx.Response(200, json={
                "choices": [{"message": {"role": "assistant", "content": reply}}],
                "usage": {"total_tokens": self.total_tokens},
            })

        if path.endswith("/models/search"):
            return httpx.Response(200, json=self.search_results)

        if path.endswith("/models"):
            return httpx.Response(200, json={"data": self.models})

        return httpx.Response(404, json={"error": "not found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def hosted_config(api_key: str = "test-key") -> BackendConfig:
    return BackendConfig(mode=BackendMode.HOSTED, base_url=HOSTED_BASE_URL, api_key=api_key)


def make_test_case(**overrides) -> TestCase:
    """테스트 케이스 스키마 생성 헬퍼"""
    now = datetime(2024, 1, 1, 12, 0, 0)
    data = {
        "id": "tc-1",
        "name": "Greeting",
        "system_prompt": "",
        "user_prompt": "Say hello",
        "source_text": "",
        "expected_result": "",
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    return TestCase(**data)


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """
    테스트용 세션 팩토리 픽스처

    각 테스트마다 새로운 인메모리 데이터베이스를 생성합니다.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield TestAsyncSessionLocal

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def repository(session_factory: async_sessionmaker) -> Repository:
    return Repository(session_factory)


@pytest.fixture
def fake_backend() -> FakeModelBackend:
    return FakeModelBackend()


@pytest.fixture
def llm_client(fake_backend: FakeModelBackend) -> ModelInvocationClient:
    """가짜 백엔드에 연결된 호스팅 모드 클라이언트"""
    return ModelInvocationClient(
        StaticBackendConfigProvider(hosted_config()),
        transport=fake_backend.transport()
    )


@pytest.fixture
def test_case() -> TestCase:
    return make_test_case()


@pytest_asyncio.fixture
async def container(session_factory: async_sessionmaker, fake_backend: FakeModelBackend) -> ServiceContainer:
    """저장소는 인메모리 DB, 모델 API는 가짜 백엔드인 서비스 컨테이너"""
    return ServiceContainer.build(
        session_factory,
        config_provider=StaticBackendConfigProvider(hosted_config()),
        transport=fake_backend.transport()
    )


@pytest_asyncio.fixture
async def client(container: ServiceContainer) -> AsyncGenerator[AsyncClient, None]:
    """
    테스트용 HTTP 클라이언트 픽스처

    FastAPI 앱과 테스트 서비스 컨테이너를 연결합니다.
    """
    app.dependency_overrides[get_container] = lambda: container

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()
