from contextlib import asynccontextmanager
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from family_graph.config import get_settings

settings = get_settings()

def build_engine_url(raw_url: str):
    """
    Transforms the DATABASE_URL for asyncpg compatibility:
    - Replaces postgres:// and postgresql:// with postgresql+asyncpg://
    - Strips ?sslmode=require from query params and passes it as connect_args instead
    """
    url = make_url(raw_url)
    if url.drivername in ("postgres", "postgresql"):
        url = url.set(drivername="postgresql+asyncpg")

    sslmode = url.query.get("sslmode")
    url = url.difference_update_query(["sslmode"])

    connect_args = {}
    if sslmode == "require":
        connect_args["ssl"] = "require"

    return url, connect_args

database_url, connect_args = build_engine_url(settings.DATABASE_URL)

engine = create_async_engine(database_url, echo=settings.SQL_ECHO, connect_args=connect_args)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

Base = declarative_base()

@asynccontextmanager
async def unit_of_work(session: AsyncSession):
    """
    Runs the enclosed statements as one atomic unit: commits when the block
    exits cleanly, rolls back and re-raises otherwise.
    """
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
