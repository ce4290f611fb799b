# prompt-studio/backend/prompt_studio/services/translation_service.py
"""
왕복 번역 파이프라인

원본 언어 프롬프트를 중간 언어로 번역해 대상 모델에 보내고,
모델 출력을 다시 원본 언어로 번역합니다. 세 단계는 순서대로 실행되며
어느 단계든 실패하면 TranslationError가 발생합니다.
"""

import re
from typing import Optional, Tuple

from prompt_studio.core.config import settings
from prompt_studio.schemas.llm import PromptInput, RoundTripResponse
from prompt_studio.utils.exceptions import ModelInvocationError, TranslationError
from prompt_studio.utils.logger import logger

# 번역 프롬프트에 첨부한 원문 자료 블록 구분자
SOURCE_MATERIAL_PATTERN = re.compile(r"\n\s*Source material:", re.IGNORECASE)


def split_source_material(translation: str, has_source: bool) -> Tuple[str, str]:
    """
    번역 결과를 (사용자 프롬프트, 원문 자료)로 분리

    원문 자료가 있었는데 구분자를 찾지 못하면 원문 자료는 빈 문자열이 됩니다.
    """
    if not has_source:
        return translation.strip(), ""

    parts = SOURCE_MATERIAL_PATTERN.split(translation, maxsplit=1)
    if len(parts) < 2:
        logger.warning("번역 결과에서 원문 자료 블록을 찾지 못했습니다.")
        return translation.strip(), ""

    return parts[0].strip(), parts[1].strip()


class RoundTripPipeline:
    """
    원본 언어 -> 중간 언어 -> 대상 모델 -> 원본 언어 파이프라인

    토큰 수와 지연 시간은 대상 모델 호출(2단계) 값만 보고합니다.
    아무것도 저장하지 않습니다.
    """

    def __init__(
        self,
        client,
        source_language: Optional[str] = None,
        pivot_language: Optional[str] = None
    ):
        self.client = client
        self.source_language = source_language or settings.SOURCE_LANGUAGE
        self.pivot_language = pivot_language or settings.PIVOT_LANGUAGE

    async def run_round_trip(
        self,
        test_case: PromptInput,
        model_id: str,
        translation_model_id: Optional[str] = None
    ) -> RoundTripResponse:
        """
        왕복 번역 실행

        Args:
            test_case: 원본 언어 프롬프트
            model_id: 평가 대상 모델
            translation_model_id: 번역 모델 (생략 시 DEFAULT_TRANSLATION_MODEL)

        Returns:
            RoundTripResponse: 중간 언어 출력, 역번역 출력, 번역된 프롬프트
        """
        translation_model = translation_model_id or settings.DEFAULT_TRANSLATION_MODEL
        logger.info(
            f"왕복 번역 시작: model={model_id}, translator={translation_model}"
        )

        # 1. 프롬프트 번역
        try:
            translated = await self.client.translate(
                test_case.user_prompt,
                translation_model,
                target_language=self.pivot_language,
                source_language=self.source_language,
                source_context=test_case.source_text or None,
            )
        except ModelInvocationError as e:
            raise TranslationError(
                f"Prompt translation failed: {e.message}",
                stage="translate_prompt",
                model_id=model_id
            ) from e

        user_prompt, source_text = split_source_material(
            translated, has_source=bool(test_case.source_text)
        )

        # 2. 번역된 프롬프트로 대상 모델 호출
        try:
            completion = await self.client.complete(
                PromptInput(
                    system_prompt=test_case.system_prompt,
                    user_prompt=user_prompt,
                    source_text=source_text,
                ),
                model_id
            )
        except ModelInvocationError as e:
            raise TranslationError(
                f"Model completion failed: {e.message}",
                stage="complete",
                model_id=model_id
            ) from e

        # 3. 출력 역번역
        try:
            round_trip_output = await self.client.translate(
                completion.output,
                translation_model,
                target_language=self.source_language,
                source_language=self.pivot_language,
            )
        except ModelInvocationError as e:
            raise TranslationError(
                f"Output translation failed: {e.message}",
                stage="translate_output",
                model_id=model_id
            ) from e

        return RoundTripResponse(
            output=completion.output,
            round_trip_output=round_trip_output,
            translated_prompt=user_prompt,
            tokens_used=completion.tokens_used,
            latency_ms=completion.latency_ms,
        )
