# prompt-studio/backend/prompt_studio/models/grade.py
"""
채점 모델
"""

from sqlalchemy import Column, String, Text, Integer, DateTime

from prompt_studio.models.base import Base, utcnow


class Grade(Base):
    """(테스트 케이스, 모델) 실행 결과에 대한 점수"""

    __tablename__ = "grades"

    test_case_id = Column(String(36), primary_key=True, index=True)
    model_id = Column(String(255), primary_key=True, index=True)

    score = Column(Integer, nullable=False, index=True)
    method = Column(String(20), nullable=False)  # manual, automatic
    comments = Column(Text, nullable=True)
    feedback = Column(Text, nullable=True)
    judge_model_id = Column(String(255), nullable=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Grade(test_case_id={self.test_case_id}, model_id='{self.model_id}', score={self.score})>"
