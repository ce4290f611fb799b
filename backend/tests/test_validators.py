# prompt-studio/backend/tests/test_validators.py
"""
검증 유틸리티 테스트
"""

import pytest

from prompt_studio.schemas.settings import (
    API_KEY_SETTING,
    SELF_HOSTED_ENABLED_SETTING,
    SELF_HOSTED_URL_SETTING,
)
from prompt_studio.utils.exceptions import ValidationError
from prompt_studio.utils.validators import ModelIdValidator, SettingValidator, URLValidator


class TestModelIdValidator:

    @pytest.mark.parametrize("model_id", [
        "openai/gpt-4.1",
        "meta-llama/llama-3.1-8b-instruct:free",
        "bartowski/Qwen-7B-GGUF:Q4_K_M",
    ])
    def test_valid(self, model_id):
        assert ModelIdValidator.validate(model_id)

    @pytest.mark.parametrize("model_id", ["", "   ", "bad id", "/leading-slash"])
    def test_invalid(self, model_id):
        with pytest.raises(ValidationError):
            ModelIdValidator.validate(model_id)


class TestSettingValidator:

    def test_url_must_be_http(self):
        assert URLValidator.validate_url("http://localhost:8080")

        with pytest.raises(ValidationError):
            SettingValidator.validate(SELF_HOSTED_URL_SETTING, "ftp://host")

    def test_empty_url_clears_setting(self):
        assert SettingValidator.validate(SELF_HOSTED_URL_SETTING, "")

    def test_toggle_must_be_boolean(self):
        assert SettingValidator.validate(SELF_HOSTED_ENABLED_SETTING, False)

        with pytest.raises(ValidationError):
            SettingValidator.validate(SELF_HOSTED_ENABLED_SETTING, "true")

    def test_api_key_must_be_string(self):
        with pytest.raises(ValidationError):
            SettingValidator.validate(API_KEY_SETTING, 1234)
