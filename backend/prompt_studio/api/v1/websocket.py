# prompt-studio/backend/prompt_studio/api/v1/websocket.py
"""
WebSocket API 엔드포인트

실행 상태, 결과, 점수, 저장 경고 이벤트를 실시간으로 전달합니다.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from prompt_studio.schemas.events import ExecutionEvent
from prompt_studio.utils.logger import logger

router = APIRouter()

ALL_EVENTS_TOPIC = "all"


def test_case_topic(test_case_id: str) -> str:
    return f"test_case_{test_case_id}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConnectionManager:
    """WebSocket 연결 관리자"""

    def __init__(self):
        # 활성 연결: {connection_id: websocket}
        self.active_connections: Dict[str, WebSocket] = {}
        # 구독 관리: {topic: set(connection_ids)}
        self.subscriptions: Dict[str, Set[str]] = {}

    async def connect(self, websocket: WebSocket, connection_id: str):
        """새 WebSocket 연결 수락"""
        await websocket.accept()
        self.active_connections[connection_id] = websocket
        logger.info(f"WebSocket 연결 수립: conn={connection_id}")

    def disconnect(self, connection_id: str):
        """WebSocket 연결 종료 및 구독 정리"""
        self.active_connections.pop(connection_id, None)

        for topic in list(self.subscriptions):
            self.subscriptions[topic].discard(connection_id)
            if not self.subscriptions[topic]:
                del self.subscriptions[topic]

        logger.info(f"WebSocket 연결 종료: conn={connection_id}")

    def subscribe(self, connection_id: str, topic: str):
        self.subscriptions.setdefault(topic, set()).add(connection_id)

    async def broadcast_to_topic(self, message: Dict[str, Any], topic: str):
        """토픽 구독자들에게 브로드캐스트 (전송 실패한 연결은 정리)"""
        disconnected = []

        for connection_id in list(self.subscriptions.get(topic, ())):
            websocket = self.active_connections.get(connection_id)
            if websocket is None:
                continue
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.error(f"메시지 전송 실패: {e}")
                disconnected.append(connection_id)

        for connection_id in disconnected:
            self.disconnect(connection_id)

    async def handle_event(self, event: ExecutionEvent):
        """이벤트 버스 구독자"""
        message = event.model_dump(mode="json")
        await self.broadcast_to_topic(message, ALL_EVENTS_TOPIC)
        await self.broadcast_to_topic(message, test_case_topic(event.test_case_id))


# 전역 연결 관리자
manager = ConnectionManager()


async def _serve(websocket: WebSocket, topic: str, **info):
    connection_id = str(uuid.uuid4())
    await manager.connect(websocket, connection_id)
    manager.subscribe(connection_id, topic)

    try:
        # 초기 상태 전송
        await websocket.send_json({
            "type": "connection",
            "status": "connected",
            "topic": topic,
            "timestamp": _now(),
            **info
        })

        while True:
            data = await websocket.receive_json()

            if not isinstance(data, dict):
                await websocket.send_json({
                    "type": "error",
                    "message": "Message must be a JSON object",
                    "timestamp": _now()
                })
                continue

            if data.get("type") == "ping":
                await websocket.send_json({"type": "pong", "timestamp": _now()})

    except WebSocketDisconnect:
        pass
    except ValueError:
        logger.warning(f"WebSocket 잘못된 메시지: conn={connection_id}")
    finally:
        manager.disconnect(connection_id)


@router.websocket("/events")
async def websocket_events_endpoint(websocket: WebSocket):
    """모든 실행 이벤트 스트림"""
    await _serve(websocket, ALL_EVENTS_TOPIC)


@router.websocket("/test-cases/{test_case_id}")
async def websocket_test_case_endpoint(websocket: WebSocket, test_case_id: str):
    """한 테스트 케이스의 실행 이벤트 스트림"""
    await _serve(websocket, test_case_topic(test_case_id), test_case_id=test_case_id)
