# prompt-studio/backend/prompt_studio/core/dependencies.py
"""
의존성 주입 모듈

서비스 객체들을 한 곳에서 조립하고 FastAPI Depends로 제공합니다.
테스트에서는 get_container를 override하여 다른 저장소/전송 계층을 주입합니다.
"""

from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from prompt_studio.db.repository import Repository
from prompt_studio.db.session import AsyncSessionLocal
from prompt_studio.services.comparison_service import ComparisonService
from prompt_studio.services.event_bus import ExecutionEventBus
from prompt_studio.services.execution_service import ExecutionOrchestrator, ExecutionStatusTracker
from prompt_studio.services.grading_service import GradingService
from prompt_studio.services.llm_client import (
    BackendConfigProvider,
    ModelInvocationClient,
    SettingsBackendConfigProvider,
)
from prompt_studio.services.state_store import EvaluationStateStore
from prompt_studio.services.translation_service import RoundTripPipeline


@dataclass
class ServiceContainer:
    """애플리케이션 서비스 묶음"""
    repository: Repository
    event_bus: ExecutionEventBus
    status_tracker: ExecutionStatusTracker
    state_store: EvaluationStateStore
    client: ModelInvocationClient
    pipeline: RoundTripPipeline
    orchestrator: ExecutionOrchestrator
    grading_service: GradingService
    comparison_service: ComparisonService

    @classmethod
    def build(
        cls,
        session_factory: async_sessionmaker,
        config_provider: Optional[BackendConfigProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "ServiceContainer":
        """
        서비스 조립

        Args:
            session_factory: 저장소 세션 팩토리
            config_provider: 생략 시 settings 테이블 기반 제공자
            transport: 원격 API 전송 계층 (테스트에서 MockTransport 주입)
        """
        repository = Repository(session_factory)
        event_bus = ExecutionEventBus()
        status_tracker = ExecutionStatusTracker()
        state_store = EvaluationStateStore(status_tracker)
        event_bus.subscribe(state_store.handle_event)

        client = ModelInvocationClient(
            config_provider or SettingsBackendConfigProvider(repository),
            transport=transport,
        )
        pipeline = RoundTripPipeline(client)

        return cls(
            repository=repository,
            event_bus=event_bus,
            status_tracker=status_tracker,
            state_store=state_store,
            client=client,
            pipeline=pipeline,
            orchestrator=ExecutionOrchestrator(
                client, pipeline, repository, event_bus, status_tracker
            ),
            grading_service=GradingService(client, repository, event_bus),
            comparison_service=ComparisonService(),
        )


# 전역 서비스 컨테이너
container = ServiceContainer.build(AsyncSessionLocal)


def get_container() -> ServiceContainer:
    return container


def get_repository(services: ServiceContainer = Depends(get_container)) -> Repository:
    return services.repository


def get_state_store(services: ServiceContainer = Depends(get_container)) -> EvaluationStateStore:
    return services.state_store


def get_client(services: ServiceContainer = Depends(get_container)) -> ModelInvocationClient:
    return services.client


def get_orchestrator(services: ServiceContainer = Depends(get_container)) -> ExecutionOrchestrator:
    return services.orchestrator


def get_grading_service(services: ServiceContainer = Depends(get_container)) -> GradingService:
    return services.grading_service


def get_comparison_service(services: ServiceContainer = Depends(get_container)) -> ComparisonService:
    return services.comparison_service
