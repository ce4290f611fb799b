#!/usr/bin/env python3
# prompt-studio/backend/scripts/seed_data.py
"""
초기 데이터 생성 스크립트

개발 및 데모를 위한 샘플 테스트 케이스를 생성합니다.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List

# 프로젝트 루트를 Python 경로에 추가
sys.path.append(str(Path(__file__).parent.parent))

from prompt_studio.db.repository import Repository
from prompt_studio.db.session import AsyncSessionLocal, engine, init_db
from prompt_studio.schemas.test_case import TestCase, TestCaseCreate
from prompt_studio.utils.logger import logger

SAMPLE_TEST_CASES: List[Dict[str, Any]] = [
    {
        "name": "Samenvatting nieuwsbericht",
        "system_prompt": "Je bent een behulpzame assistent die beknopt antwoordt.",
        "user_prompt": "Vat de volgende tekst samen in twee zinnen.",
        "source_text": (
            "De gemeente Utrecht opent volgend jaar drie nieuwe fietsenstallingen "
            "bij het centraal station. Daarmee komen er ruim vierduizend plekken bij."
        ),
        "expected_result": (
            "Utrecht opent volgend jaar drie nieuwe fietsenstallingen bij het station.\n"
            "Er komen ruim vierduizend plekken bij."
        ),
    },
    {
        "name": "Lijst van hoofdsteden",
        "system_prompt": "",
        "user_prompt": "Noem de hoofdsteden van België, Duitsland en Frankrijk, één per regel.",
        "source_text": "",
        "expected_result": "Brussel\nBerlijn\nParijs",
    },
    {
        "name": "Formele e-mail",
        "system_prompt": "Schrijf altijd in een formele toon.",
        "user_prompt": "Schrijf een korte e-mail om een vergadering te verzetten naar vrijdag.",
        "source_text": "",
        "expected_result": "",
    },
]


class DataSeeder:
    """데이터 시딩 클래스"""

    def __init__(self):
        self.repository = Repository(AsyncSessionLocal)

    async def create_test_cases(self) -> List[TestCase]:
        """샘플 테스트 케이스 생성 (같은 이름이 있으면 건너뜀)"""
        existing = {tc.name for tc in await self.repository.get_all_test_cases()}
        created = []

        for data in SAMPLE_TEST_CASES:
            if data["name"] in existing:
                logger.info(f"테스트 케이스가 이미 존재함: {data['name']}")
                continue

            test_case = await self.repository.create_test_case(TestCaseCreate(**data))
            created.append(test_case)
            logger.info(f"테스트 케이스 생성: {test_case.name}")

        return created

    async def run(self):
        try:
            logger.info("데이터 시딩 시작...")
            await init_db()
            created = await self.create_test_cases()
            logger.info(f"데이터 시딩 완료: 테스트 케이스 {len(created)}개 생성")
        finally:
            await engine.dispose()


if __name__ == "__main__":
    asyncio.run(DataSeeder().run())
