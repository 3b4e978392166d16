# scripts/seed_default_schemas.py

import sys
import asyncio
import logging
import argparse
from pathlib import Path
from typing import Optional

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from widgetkit.core.config import settings
from widgetkit.db.base import Base
from widgetkit import models  # noqa: F401
from widgetkit.services.default_schemas_loader import DefaultSchemasLoader, DefaultSchemasLoadResult

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# --- Main Orchestrator ---

async def seed_default_schemas(
    db: AsyncSession,
    schemas_dir: Optional[Path] = None,
    network_id: Optional[str] = None,
    force: bool = False,
) -> DefaultSchemasLoadResult:
    """
    Loads the bundled default schemas. Existing widget keys are left untouched
    unless force is set, in which case they are overwritten from disk.
    """
    logger.info("Starting default schema seeding...")
    loader = DefaultSchemasLoader(db, schemas_dir, network_id)
    result = await (loader.reload_all() if force else loader.load_all())
    if not result.loaded:
        logger.warning("No default schemas were loaded. Skipping.")
    if result.failed:
        logger.error(f"Default schemas failed: {', '.join(result.failed)}")
    logger.info("Default schema seeding completed.")
    return result

# --- Main execution block ---

async def main(args: argparse.Namespace):
    """Sets up the database connection and runs the seeding within a single transaction."""
    engine = create_async_engine(args.database_url, echo=False)
    AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        async with AsyncSessionLocal() as db:
            async with db.begin():  # Single transaction for the whole process
                await seed_default_schemas(db, args.schemas_dir, args.network, force=args.force)
    except Exception:
        logger.critical("FATAL ERROR during seeding: the transaction has been rolled back.", exc_info=True)
        sys.exit(1)  # Exit with a non-zero status code to signal failure in CI/CD
    finally:
        await engine.dispose()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the schema store with the bundled default schemas.")
    parser.add_argument("--database-url", default=settings.DATABASE_URL)
    parser.add_argument("--schemas-dir", type=Path, default=settings.DEFAULT_SCHEMAS_DIR)
    parser.add_argument("--network", default=settings.NETWORK_ID, help="Channel key network prefix, e.g. testnet or mainnet")
    parser.add_argument("--force", action="store_true", help="Overwrite stored default schemas from disk")

    logger.info("Running seed script as a standalone process...")
    asyncio.run(main(parser.parse_args()))
