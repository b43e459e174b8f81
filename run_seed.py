import asyncio
import logging

from app.core.config import get_settings
from app.core.db import close_engine, get_session_factory, init_engine
from app.core.logging import configure_logging
from app.infra.db.seed import seed_demo_customers

logger = logging.getLogger("run_seed")


async def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)

    engine = init_engine()
    try:
        session_factory = get_session_factory()
        async with session_factory() as session:
            created = await seed_demo_customers(session)
            await session.commit()
        logger.info("Seeded demo customers", extra={"created": created})
    finally:
        await close_engine(engine)


if __name__ == "__main__":
    asyncio.run(main())
