import logging
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import DB_URL, SQL_ECHO

logging.getLogger("aiosqlite").setLevel(logging.WARNING)

engine = create_async_engine(DB_URL, echo=SQL_ECHO, future=True)
AsyncSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
Base = declarative_base()


# PUBLIC_INTERFACE
async def init_models():
    """Creates any missing tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Dependency for getting DB session in FastAPI
# PUBLIC_INTERFACE
async def get_db():
    """Yields an async database session for request lifecycle."""
    async with AsyncSessionLocal() as session:
        yield session
