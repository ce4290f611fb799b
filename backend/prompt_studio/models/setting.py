# prompt-studio/backend/prompt_studio/models/setting.py
"""
런타임 설정 모델
"""

from sqlalchemy import Column, String, JSON

from prompt_studio.models.base import Base


class Setting(Base):
    """키/값 설정 (API 키, 자체 호스팅 엔드포인트 등)"""

    __tablename__ = "settings"

    key = Column(String(255), primary_key=True)
    value = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<Setting(key='{self.key}')>"
