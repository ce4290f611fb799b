# prompt-studio/backend/tests/test_llm_client.py
"""
모델 호출 클라이언트 테스트
"""

import json

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from prompt_studio.schemas.llm import BackendConfig, BackendMode, PromptInput
from prompt_studio.schemas.settings import (
    API_KEY_SETTING,
    SELF_HOSTED_ENABLED_SETTING,
    SELF_HOSTED_URL_SETTING,
)
from prompt_studio.services.llm_client import (
    ModelInvocationClient,
    SettingsBackendConfigProvider,
    StaticBackendConfigProvider,
    build_messages,
    build_translation_prompt,
)
from prompt_studio.utils.exceptions import ConfigurationError, ModelInvocationError, PersistenceError

from conftest import HOSTED_BASE_URL, SELF_HOSTED_BASE_URL


class TestBuildMessages:
    """메시지 구성 테스트"""

    def test_user_prompt_only(self):
        messages = build_messages(PromptInput(user_prompt="Hi"))

        assert messages == [{"role": "user", "content": "Hi"}]

    def test_system_prompt_and_source_text(self):
        messages = build_messages(PromptInput(
            system_prompt="Be brief",
            user_prompt="Summarize",
            source_text="Long text"
        ))

        assert messages == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Summarize\n\nSource text:\nLong text"},
        ]

    def test_translation_prompt_with_source_material(self):
        prompt = build_translation_prompt("Hallo", "Dutch", "English", "Bron")

        assert prompt.startswith("Translate the following Dutch text to English.")
        assert "Dutch text: Hallo\n\nSource material: Bron" in prompt
        assert prompt.endswith("Provide only the English translation without any explanation.")


class TestComplete:
    """채팅 완성 호출 테스트"""

    async def test_complete_returns_output_and_tokens(self, llm_client, fake_backend):
        fake_backend.responses["m1"] = "Hello!"

        response = await llm_client.complete(PromptInput(user_prompt="Say hello"), "m1")

        assert response.output == "Hello!"
        assert response.tokens_used == 42
        assert response.latency_ms >= 0

        request = fake_backend.requests[0]
        assert str(request.url) == f"{HOSTED_BASE_URL}/chat/completions"
        assert request.headers["Authorization"] == "Bearer test-key"

        body = json.loads(request.content)
        assert body["model"] == "m1"
        assert body["temperature"] == 0.7

    async def test_missing_usage_counts_zero_tokens(self):
        def handler(request):
            return httpx.Response(200, json={"choices": [{"message": {"content": "x"}}]})

        client = ModelInvocationClient(
            StaticBackendConfigProvider(BackendConfig(mode=BackendMode.HOSTED, base_url=HOSTED_BASE_URL)),
            transport=httpx.MockTransport(handler)
        )

        response = await client.complete(PromptInput(user_prompt="p"), "m1")

        assert response.tokens_used == 0

    async def test_http_error_raises_invocation_error(self, llm_client, fake_backend):
        fake_backend.responses["m1"] = 500

        with pytest.raises(ModelInvocationError) as exc_info:
            await llm_client.complete(PromptInput(user_prompt="p"), "m1")

        assert exc_info.value.model_id == "m1"
        assert exc_info.value.status_code == 500

    async def test_malformed_body_raises_invocation_error(self):
        def handler(request):
            return httpx.Response(200, json={"unexpected": True})

        client = ModelInvocationClient(
            StaticBackendConfigProvider(BackendConfig(mode=BackendMode.HOSTED, base_url=HOSTED_BASE_URL)),
            transport=httpx.MockTransport(handler)
        )

        with pytest.raises(ModelInvocationError):
            await client.complete(PromptInput(user_prompt="p"), "m1")

    async def test_transport_error_raises_invocation_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        client = ModelInvocationClient(
            StaticBackendConfigProvider(BackendConfig(mode=BackendMode.HOSTED, base_url=HOSTED_BASE_URL)),
            transport=httpx.MockTransport(handler)
        )

        with pytest.raises(ModelInvocationError):
            await client.complete(PromptInput(user_prompt="p"), "m1")

    async def test_translate_uses_auxiliary_temperature(self, llm_client, fake_backend):
        fake_backend.responses["translator"] = "  Hello  "

        output = await llm_client.translate("Hallo", "translator", target_language="English")

        assert output == "Hello"
        body = fake_backend.chat_bodies()[0]
        assert body["temperature"] == 0.3
        assert body["messages"][0]["role"] == "user"


class TestListModels:
    """모델 목록 조회 테스트"""

    async def test_hosted_models_filtered_and_limited(self, llm_client, fake_backend):
        fake_backend.models = [
            {
                "id": "openai/gpt-4.1",
                "name": "GPT-4.1",
                "context_length": 128000,
                "pricing": {"prompt": "0.000002", "completion": "0.000008"},
            },
            {"id": "meta/llama-3"},
            {"id": "openai/gpt-4o-mini", "name": "GPT-4o mini"},
        ]

        models = await llm_client.list_models(query="GPT", limit=1)

        assert [m.id for m in models] == ["openai/gpt-4.1"]
        assert models[0].context_length == 128000
        assert models[0].pricing.prompt == "0.000002"

        all_models = await llm_client.list_models()
        assert all_models[1].name == "meta/llama-3"

    async def test_self_hosted_models_flattened_and_deduplicated(self, fake_backend):
        fake_backend.search_results = {
            "models": [
                {
                    "author": "bartowski",
                    "downloads": 1200,
                    "likes": 30,
                    "tags": ["gguf"],
                    "ggufFiles": [
                        {
                            "suggestedModelID": "bartowski/Qwen-7B-GGUF:Q4_K_M",
                            "quantization": "Q4_K_M",
                            "filename": "qwen-7b-q4_k_m.gguf",
                            "isSplit": False,
                        },
                        {
                            "suggestedModelID": "bartowski/Qwen-7B-GGUF:Q4_K_M",
                            "quantization": "Q4_K_M",
                        },
                    ],
                },
                {
                    "author": "someone",
                    "ggufFiles": [{"suggestedModelID": "plain-model", "quantization": "Q8_0"}],
                },
            ]
        }
        client = ModelInvocationClient(
            StaticBackendConfigProvider(
                BackendConfig(mode=BackendMode.SELF_HOSTED, base_url=SELF_HOSTED_BASE_URL)
            ),
            transport=fake_backend.transport()
        )

        models = await client.list_models()

        assert [m.id for m in models] == ["bartowski/Qwen-7B-GGUF:Q4_K_M", "plain-model"]
        assert models[0].name == "bartowski/Qwen-7B-GGUF:Q4_K_M"
        assert models[0].description == "Q4_K_M - bartowski - 1200 downloads"
        assert models[0].context_length == -1
        assert models[0].pricing.prompt == "0"
        assert models[1].name == "plain-model"
        assert models[1].description == "Q8_0 - someone - 0 downloads"

        request = fake_backend.requests[0]
        assert request.url.path == "/models/search"
        assert request.url.params["q"] == "gguf"
        assert "Authorization" not in request.headers

    async def test_unexpected_self_hosted_structure_returns_empty(self, fake_backend):
        fake_backend.search_results = {"items": []}
        client = ModelInvocationClient(
            StaticBackendConfigProvider(
                BackendConfig(mode=BackendMode.SELF_HOSTED, base_url=SELF_HOSTED_BASE_URL)
            ),
            transport=fake_backend.transport()
        )

        assert await client.list_models() == []


class TestSettingsBackendConfigProvider:
    """settings 테이블 기반 설정 제공자 테스트"""

    async def test_hosted_when_toggle_off(self, repository):
        await repository.save_setting(API_KEY_SETTING, "stored-key")

        config = await SettingsBackendConfigProvider(repository).resolve()

        assert config.mode == BackendMode.HOSTED
        assert config.api_key == "stored-key"

    async def test_self_hosted_when_enabled_with_url(self, repository):
        await repository.save_setting(SELF_HOSTED_ENABLED_SETTING, True)
        await repository.save_setting(SELF_HOSTED_URL_SETTING, "http://gpu-box:8080/")

        config = await SettingsBackendConfigProvider(repository).resolve()

        assert config.mode == BackendMode.SELF_HOSTED
        assert config.base_url == "http://gpu-box:8080"
        assert config.is_local

    async def test_enabled_without_url_falls_back_to_hosted(self, repository):
        await repository.save_setting(SELF_HOSTED_ENABLED_SETTING, True)
        app_settings = MagicMock(
            SELF_HOSTED_URL=None,
            OPENROUTER_API_KEY="env-key",
            OPENROUTER_API_URL=HOSTED_BASE_URL,
        )

        config = await SettingsBackendConfigProvider(repository, app_settings).resolve()

        assert config.mode == BackendMode.HOSTED
        assert config.api_key == "env-key"

    async def test_toggle_change_applies_to_next_call(self, repository, fake_backend):
        """설정 변경은 다음 호출부터 즉시 반영"""
        await repository.save_setting(SELF_HOSTED_URL_SETTING, SELF_HOSTED_BASE_URL)
        client = ModelInvocationClient(
            SettingsBackendConfigProvider(repository),
            transport=fake_backend.transport()
        )

        await client.complete(PromptInput(user_prompt="p"), "m1")
        await repository.save_setting(SELF_HOSTED_ENABLED_SETTING, True)
        await client.complete(PromptInput(user_prompt="p"), "m1")

        assert fake_backend.requests[0].url.host != "localhost"
        assert str(fake_backend.requests[1].url) == f"{SELF_HOSTED_BASE_URL}/chat/completions"

    async def test_provider_failure_becomes_invocation_error(self):
        repository = MagicMock()
        repository.get_setting = AsyncMock(side_effect=PersistenceError("db down"))
        client = ModelInvocationClient(SettingsBackendConfigProvider(repository))

        with pytest.raises(ModelInvocationError):
            await client.complete(PromptInput(user_prompt="p"), "m1")

    async def test_malformed_stored_url_is_configuration_error(self, repository, fake_backend):
        await repository.save_setting(SELF_HOSTED_ENABLED_SETTING, True)
        await repository.save_setting(SELF_HOSTED_URL_SETTING, "not a url")
        client = ModelInvocationClient(
            SettingsBackendConfigProvider(repository),
            transport=fake_backend.transport()
        )

        with pytest.raises(ConfigurationError) as exc_info:
            await client.list_models()

        assert exc_info.value.config_key == SELF_HOSTED_URL_SETTING
        assert fake_backend.requests == []
