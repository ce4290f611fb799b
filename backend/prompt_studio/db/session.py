# prompt-studio/backend/prompt_studio/db/session.py
"""
데이터베이스 세션 관리

SQLAlchemy 비동기 세션을 설정하고 관리합니다.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from prompt_studio.core.config import settings
from prompt_studio.utils.logger import logger

# 비동기 엔진 생성
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,  # SQL 로깅
    pool_pre_ping=True,  # 연결 상태 확인
    poolclass=NullPool,
)


@event.listens_for(engine.sync_engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    """SQLite 저널 모드를 WAL로 설정 (쓰기 중 읽기 허용)"""
    if settings.DATABASE_URL.startswith("sqlite"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


# 비동기 세션 팩토리
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # 커밋 후에도 객체 사용 가능
    autoflush=False,
)


async def init_db():
    """
    데이터베이스 초기화

    모든 테이블을 생성합니다. 이미 존재하는 테이블은 건드리지 않습니다.
    """
    from prompt_studio.db.base import Base

    try:
        logger.info("데이터베이스 초기화 시작...")

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("데이터베이스 초기화 완료")

    except Exception as e:
        logger.error(f"데이터베이스 초기화 중 오류: {str(e)}")
        raise
