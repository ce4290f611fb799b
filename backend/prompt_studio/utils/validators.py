# prompt-studio/backend/prompt_studio/utils/validators.py
"""
데이터 검증 유틸리티

모델 ID, 엔드포인트 URL, 런타임 설정 값 검증 함수들을 제공합니다.
"""

import re
from typing import Any, List, Optional
from urllib.parse import urlparse

from prompt_studio.schemas.settings import (
    API_KEY_SETTING,
    SELF_HOSTED_ENABLED_SETTING,
    SELF_HOSTED_URL_SETTING,
)
from prompt_studio.utils.exceptions import ValidationError

# "provider/model", "provider/model:variant", "repo/name:Q4_K_M" 등
MODEL_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._\-/:@+]*$")


class ModelIdValidator:
    """모델 ID 검증"""

    @staticmethod
    def validate(model_id: str) -> bool:
        """
        모델 ID 형식 검증

        Raises:
            ValidationError: 비어 있거나 허용되지 않은 문자가 있는 경우
        """
        if not model_id or not model_id.strip():
            raise ValidationError("Model ID cannot be empty", field="model_id")

        if len(model_id) > 255:
            raise ValidationError("Model ID cannot exceed 255 characters", field="model_id")

        if not MODEL_ID_PATTERN.match(model_id):
            raise ValidationError(
                f"Model ID contains invalid characters: {model_id}",
                field="model_id",
                value=model_id
            )

        return True


class URLValidator:
    """URL 관련 검증"""

    @staticmethod
    def validate_url(url: str, allowed_schemes: Optional[List[str]] = None) -> bool:
        """
        URL 형식 검증

        Args:
            url: 검증할 URL
            allowed_schemes: 허용된 스키마 목록 (기본값: ['http', 'https'])

        Returns:
            bool: 유효성 여부
        """
        if not url or not url.strip():
            raise ValidationError("URL cannot be empty", field="url")

        if allowed_schemes is None:
            allowed_schemes = ['http', 'https']

        try:
            parsed = urlparse(url)
        except ValueError:
            raise ValidationError("Invalid URL format", field="url", value=url)

        if parsed.scheme not in allowed_schemes:
            raise ValidationError(
                f"URL scheme must be one of: {', '.join(allowed_schemes)}",
                field="url",
                value=url
            )

        if not parsed.netloc:
            raise ValidationError("URL must include a host", field="url", value=url)

        return True


class SettingValidator:
    """런타임 설정 값 검증"""

    @staticmethod
    def validate(key: str, value: Any) -> bool:
        if not key or not key.strip():
            raise ValidationError("Setting key cannot be empty", field="key")

        if key == SELF_HOSTED_ENABLED_SETTING and not isinstance(value, bool):
            raise ValidationError(
                f"'{key}' must be a boolean",
                field=key,
                value=value
            )

        # 빈 값은 "설정 해제"로 허용
        if key == SELF_HOSTED_URL_SETTING and value:
            if not isinstance(value, str):
                raise ValidationError(f"'{key}' must be a string", field=key)
            URLValidator.validate_url(value)

        if key == API_KEY_SETTING and value is not None and not isinstance(value, str):
            raise ValidationError(f"'{key}' must be a string", field=key)

        return True
