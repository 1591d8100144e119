"""Database session and engine."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.engine.url import URL

from cardleads.config import settings
from cardleads.db.models import DEFAULT_STAGES, Base, PipelineStage

DATABASE_URL = URL.create(
    drivername="postgresql+asyncpg",
    username=settings.db_user,
    password=settings.db_password,
    host=settings.db_host,
    port=settings.db_port,
    database=settings.db_name,
)

engine = create_async_engine(
    DATABASE_URL,
    echo=settings.log_level.upper() == "DEBUG",
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def init_db(db_engine: AsyncEngine = engine, session_factory=async_session):
    """Create tables if they don't exist and seed the default stages (safe on every startup)."""
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory() as session:
        count = (await session.execute(select(func.count()).select_from(PipelineStage))).scalar()
        if not count:
            session.add_all(
                PipelineStage(id=stage_id, name=name, sort_order=order)
                for stage_id, name, order in DEFAULT_STAGES
            )
        await session.commit()
