# prompt-studio/backend/tests/test_websocket.py
"""
WebSocket 이벤트 스트림 테스트
"""

from fastapi.testclient import TestClient

from prompt_studio.main import app


def test_non_object_message_keeps_connection_open():
    client = TestClient(app)

    with client.websocket_connect("/api/v1/ws/events") as websocket:
        assert websocket.receive_json()["type"] == "connection"

        websocket.send_json([1, 2, 3])
        assert websocket.receive_json()["type"] == "error"

        websocket.send_json("ping")
        assert websocket.receive_json()["type"] == "error"

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json()["type"] == "pong"


def test_test_case_stream_reports_topic():
    client = TestClient(app)

    with client.websocket_connect("/api/v1/ws/test-cases/tc-1") as websocket:
        greeting = websocket.receive_json()

    assert greeting["topic"] == "test_case_tc-1"
    assert greeting["test_case_id"] == "tc-1"
