import asyncio
from family_graph.database import engine, Base
from family_graph import models  # noqa: F401  registers every table
from family_graph.utils.logging import setup_logging

logger = setup_logging()

async def init_db():
    logger.info(f"Creating tables: {list(Base.metadata.tables.keys())}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()

if __name__ == "__main__":
    asyncio.run(init_db())
