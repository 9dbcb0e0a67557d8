from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from farmrelay.core.config import settings

engine = create_async_engine(settings.DATABASE_URL_ASYNC, echo=False)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
