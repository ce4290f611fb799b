# prompt-studio/backend/prompt_studio/models/result.py
"""
실행 결과 모델

(test_case_id, model_id) 복합 키당 최신 결과 하나만 유지합니다.
외래 키 제약 없이 저장소 계층의 트랜잭션 삭제로 참조 무결성을 지킵니다.
"""

from sqlalchemy import Column, String, Text, Integer, JSON, DateTime

from prompt_studio.models.base import Base, utcnow


class ExecutionResult(Base):
    """(테스트 케이스, 모델) 실행 결과"""

    __tablename__ = "results"

    test_case_id = Column(String(36), primary_key=True, index=True)
    model_id = Column(String(255), primary_key=True, index=True)

    output = Column(Text, nullable=True)
    round_trip_output = Column(Text, nullable=True)
    translated_prompt = Column(Text, nullable=True)

    tokens_used = Column(Integer, nullable=False, default=0)
    latency_ms = Column(Integer, nullable=False, default=0)
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)

    status = Column(String(20), nullable=False)  # completed, failed
    error = Column(Text, nullable=True)
    diff = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<ExecutionResult(test_case_id={self.test_case_id}, model_id='{self.model_id}', status={self.status})>"
