# prompt-studio/backend/prompt_studio/api/v1/models.py
"""
모델 목록 API 엔드포인트
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from prompt_studio.core.dependencies import get_client
from prompt_studio.schemas.llm import ModelDescriptor
from prompt_studio.services.llm_client import ModelInvocationClient

router = APIRouter(
    responses={502: {"description": "Model backend unavailable"}}
)


@router.get("/", response_model=List[ModelDescriptor])
async def list_models(
    query: Optional[str] = Query(None, description="모델 ID/이름 검색어"),
    limit: Optional[int] = Query(None, ge=1, le=1000, description="최대 개수"),
    client: ModelInvocationClient = Depends(get_client)
) -> List[ModelDescriptor]:
    """
    현재 백엔드(호스팅/자체 호스팅)에서 사용 가능한 모델 목록

    백엔드 호출 실패 시 502를 반환합니다.
    """
    return await client.list_models(query=query, limit=limit)
