import asyncio
import logging
from sqlalchemy.ext.asyncio import AsyncEngine
from ris_app.db.base import Base
import ris_app.models  # noqa: F401  (registers every table on Base.metadata)

logger = logging.getLogger(__name__)

async def create_tables(bind: AsyncEngine = None):
    """Create all database tables (development and tests; production uses Alembic)"""
    if bind is None:
        from ris_app.core.database import engine
        bind = engine

    try:
        async with bind.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("✅ Database tables created successfully")

    except Exception as e:
        logger.error(f"❌ Error creating tables: {str(e)}")
        raise

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(create_tables())
