# prompt-studio/backend/prompt_studio/services/llm_client.py
"""
원격 모델 호출 클라이언트

OpenAI 호환 채팅 완성 API를 호출합니다. 호스팅 백엔드(OpenRouter)와
자체 호스팅 백엔드를 지원하며, 어느 쪽을 쓸지는 매 호출마다
BackendConfigProvider에게 물어 결정합니다.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import httpx

from prompt_studio.core.config import settings
from prompt_studio.schemas.llm import (
    BackendConfig,
    BackendMode,
    CompletionResponse,
    ModelDescriptor,
    ModelPricing,
    PromptInput,
)
from prompt_studio.schemas.settings import (
    API_KEY_SETTING,
    SELF_HOSTED_ENABLED_SETTING,
    SELF_HOSTED_URL_SETTING,
)
from prompt_studio.utils.exceptions import (
    ConfigurationError,
    ModelInvocationError,
    PromptStudioException,
    ValidationError,
)
from prompt_studio.utils.logger import logger
from prompt_studio.utils.validators import URLValidator


def build_messages(prompt: PromptInput) -> List[Dict[str, str]]:
    """
    채팅 메시지 목록 구성

    시스템 프롬프트가 있으면 system 메시지를 먼저 두고,
    원문(source text)이 있으면 사용자 프롬프트 뒤에 붙입니다.
    """
    messages = []

    if prompt.system_prompt:
        messages.append({"role": "system", "content": prompt.system_prompt})

    content = prompt.user_prompt
    if prompt.source_text:
        content = f"{prompt.user_prompt}\n\nSource text:\n{prompt.source_text}"

    messages.append({"role": "user", "content": content})
    return messages


def build_translation_prompt(
    text: str,
    source_language: str,
    target_language: str,
    source_context: Optional[str] = None
) -> str:
    """번역 지시 프롬프트 생성 (원문 자료는 'Source material:' 블록으로 첨부)"""
    context_block = f"\nSource material: {source_context}" if source_context else ""

    return (
        f"Translate the following {source_language} text to {target_language}. "
        f"Maintain the exact meaning and tone.\n\n"
        f"{source_language} text: {text}\n"
        f"{context_block}\n\n"
        f"Provide only the {target_language} translation without any explanation."
    )


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


class BackendConfigProvider(ABC):
    """호출 시점의 백엔드 설정을 제공하는 인터페이스"""

    @abstractmethod
    async def resolve(self) -> BackendConfig:
        """현재 백엔드 설정 반환"""


class StaticBackendConfigProvider(BackendConfigProvider):
    """고정된 설정을 반환 (스크립트 및 테스트용)"""

    def __init__(self, config: BackendConfig):
        self.config = config

    async def resolve(self) -> BackendConfig:
        return self.config


class SettingsBackendConfigProvider(BackendConfigProvider):
    """
    settings 테이블 기반 설정 제공자

    매 호출마다 저장된 설정을 다시 읽으므로 실행 도중 토글이 바뀌면
    다음 호출부터 바로 반영됩니다. 저장된 값이 없으면 환경 변수로 대체합니다.
    """

    def __init__(self, repository, app_settings=settings):
        self.repository = repository
        self.app_settings = app_settings

    async def resolve(self) -> BackendConfig:
        enabled = await self.repository.get_setting(SELF_HOSTED_ENABLED_SETTING, False)
        url = (
            await self.repository.get_setting(SELF_HOSTED_URL_SETTING)
            or self.app_settings.SELF_HOSTED_URL
        )

        if _as_bool(enabled) and url:
            try:
                URLValidator.validate_url(url)
            except ValidationError as e:
                raise ConfigurationError(
                    f"Stored self-hosted URL is invalid: {e.message}",
                    config_key=SELF_HOSTED_URL_SETTING
                ) from e
            return BackendConfig(mode=BackendMode.SELF_HOSTED, base_url=url.rstrip("/"))

        api_key = (
            await self.repository.get_setting(API_KEY_SETTING)
            or self.app_settings.OPENROUTER_API_KEY
        )
        return BackendConfig(
            mode=BackendMode.HOSTED,
            base_url=self.app_settings.OPENROUTER_API_URL,
            api_key=api_key or None,
        )


class ModelInvocationClient:
    """
    채팅 완성 / 번역 / 모델 목록 조회 클라이언트

    모든 실패(전송 오류, 2xx 이외 응답, 잘못된 응답 본문)는
    ModelInvocationError로 변환되며 재시도하지 않습니다.
    """

    def __init__(
        self,
        config_provider: BackendConfigProvider,
        timeout: float = settings.REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config_provider = config_provider
        self.timeout = timeout
        self._transport = transport

    async def _resolve_config(self, model_id: Optional[str] = None) -> BackendConfig:
        """잘못 저장된 설정(ConfigurationError)은 그대로 전달하고, 그 외 실패는 호출 실패로 변환"""
        try:
            return await self.config_provider.resolve()
        except ConfigurationError:
            raise
        except PromptStudioException as e:
            raise ModelInvocationError(
                f"Could not resolve backend configuration: {e.message}",
                model_id=model_id
            ) from e

    def _build_client(self, config: BackendConfig) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if not config.is_local and config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"

        return httpx.AsyncClient(
            base_url=config.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _chat(
        self,
        model_id: str,
        messages: List[Dict[str, str]],
        temperature: float
    ) -> Tuple[str, int, int]:
        """
        채팅 완성 요청 한 번 수행

        Returns:
            Tuple[str, int, int]: (출력, 사용 토큰 수, 지연 시간 ms)
        """
        config = await self._resolve_config(model_id)
        payload = {
            "model": model_id,
            "messages": messages,
            "temperature": temperature,
        }

        try:
            async with self._build_client(config) as client:
                start_time = time.perf_counter()
                response = await client.post("/chat/completions", json=payload)
                latency_ms = int((time.perf_counter() - start_time) * 1000)
                response.raise_for_status()
                data = response.json()

            output = data["choices"][0]["message"]["content"] or ""
            usage = data.get("usage") or {}
            tokens_used = usage.get("total_tokens") or 0

        except httpx.HTTPStatusError as e:
            logger.error(
                f"모델 호출 실패: model={model_id}, status={e.response.status_code}"
            )
            raise ModelInvocationError(
                f"Model {model_id} returned HTTP {e.response.status_code}: {e.response.text[:500]}",
                model_id=model_id,
                provider=config.mode.value,
                status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"모델 호출 전송 오류: model={model_id}, error={str(e)}")
            raise ModelInvocationError(
                f"Request to model {model_id} failed: {e}",
                model_id=model_id,
                provider=config.mode.value
            ) from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"모델 응답 형식 오류: model={model_id}, error={str(e)}")
            raise ModelInvocationError(
                f"Malformed response from model {model_id}: {e}",
                model_id=model_id,
                provider=config.mode.value
            ) from e

        logger.debug(
            f"모델 호출 완료: model={model_id}, tokens={tokens_used}, latency={latency_ms}ms"
        )
        return output, int(tokens_used), latency_ms

    async def complete(
        self,
        prompt: PromptInput,
        model_id: str,
        temperature: Optional[float] = None
    ) -> CompletionResponse:
        """
        프롬프트를 모델에 보내고 출력/토큰/지연 시간 반환

        Args:
            prompt: 시스템 프롬프트, 사용자 프롬프트, 원문 (TestCase도 사용 가능)
            model_id: 대상 모델 ID
            temperature: 생략 시 DEFAULT_TEMPERATURE
        """
        if temperature is None:
            temperature = settings.DEFAULT_TEMPERATURE

        output, tokens_used, latency_ms = await self._chat(
            model_id, build_messages(prompt), temperature
        )
        return CompletionResponse(output=output, tokens_used=tokens_used, latency_ms=latency_ms)

    async def translate(
        self,
        text: str,
        model_id: str,
        target_language: str,
        source_language: Optional[str] = None,
        source_context: Optional[str] = None
    ) -> str:
        """텍스트 번역 (번역문만 반환)"""
        prompt = build_translation_prompt(
            text,
            source_language or settings.SOURCE_LANGUAGE,
            target_language,
            source_context
        )
        output, _, _ = await self._chat(
            model_id,
            [{"role": "user", "content": prompt}],
            settings.AUXILIARY_TEMPERATURE
        )
        return output.strip()

    async def list_models(
        self,
        query: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[ModelDescriptor]:
        """
        사용 가능한 모델 목록 조회

        자체 호스팅 백엔드는 검색 API(/models/search)를, 호스팅 백엔드는
        /models를 사용하며 결과는 같은 ModelDescriptor 형태로 정규화됩니다.
        """
        config = await self._resolve_config()
        limit = limit or settings.MODEL_LIST_LIMIT

        try:
            async with self._build_client(config) as client:
                if config.is_local:
                    response = await client.get(
                        "/models/search",
                        params={"q": query or settings.SELF_HOSTED_DEFAULT_QUERY, "limit": limit}
                    )
                else:
                    response = await client.get("/models")
                response.raise_for_status()
                data = response.json()

            if config.is_local:
                return self._normalize_self_hosted(data)

            models = [self._normalize_hosted(item) for item in data["data"]]

        except httpx.HTTPStatusError as e:
            logger.error(f"모델 목록 조회 실패: status={e.response.status_code}")
            raise ModelInvocationError(
                f"Failed to fetch available models: HTTP {e.response.status_code}",
                provider=config.mode.value,
                status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"모델 목록 조회 전송 오류: {str(e)}")
            raise ModelInvocationError(
                f"Failed to fetch available models: {e}",
                provider=config.mode.value
            ) from e
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"모델 목록 응답 형식 오류: {str(e)}")
            raise ModelInvocationError(
                f"Malformed model list response: {e}",
                provider=config.mode.value
            ) from e

        if query:
            needle = query.lower()
            models = [
                m for m in models
                if needle in m.id.lower() or needle in m.name.lower()
            ]

        return models[:limit]

    @staticmethod
    def _normalize_hosted(item: Dict[str, Any]) -> ModelDescriptor:
        pricing = item.get("pricing") or {}
        return ModelDescriptor(
            id=item["id"],
            name=item.get("name") or item["id"],
            description=item.get("description"),
            context_length=item.get("context_length") or -1,
            pricing=ModelPricing(
                prompt=str(pricing.get("prompt", "0")),
                completion=str(pricing.get("completion", "0")),
            ),
        )

    @staticmethod
    def _normalize_self_hosted(data: Any) -> List[ModelDescriptor]:
        """
        GGUF 검색 결과를 파일 단위 모델 목록으로 평탄화

        같은 suggestedModelID는 처음 나온 것만 남깁니다.
        """
        if not isinstance(data, dict) or not isinstance(data.get("models"), list):
            logger.warning("자체 호스팅 모델 목록 응답 구조가 예상과 다릅니다.")
            return []

        seen = set()
        models: List[ModelDescriptor] = []

        for entry in data["models"]:
            author = entry.get("author") or ""
            for gguf in entry.get("ggufFiles") or []:
                model_id = gguf.get("suggestedModelID")
                if not model_id or model_id in seen:
                    continue
                seen.add(model_id)

                # "repo/name:quant" 형태면 "author/name:quant"로 표시
                parts = model_id.split("/")
                if model_id.partition(":")[2] and len(parts) > 1:
                    name = f"{author}/{parts[1]}"
                else:
                    name = model_id

                quantization = gguf.get("quantization")
                downloads = entry.get("downloads") or entry.get("downloadCount") or 0

                models.append(ModelDescriptor(
                    id=model_id,
                    name=name,
                    description=f"{quantization} - {author} - {downloads} downloads",
                    context_length=-1,
                    pricing=ModelPricing(),
                    quantization=quantization,
                    author=author or None,
                    downloads=downloads,
                    likes=entry.get("likes") or 0,
                    tags=entry.get("tags") or [],
                    is_split=gguf.get("isSplit") or False,
                    filename=gguf.get("filename"),
                ))

        return models
