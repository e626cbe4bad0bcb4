# ipguard/main.py
import asyncio
import sys

from loguru import logger

from ipguard.config.settings import settings
from ipguard.containers import Container
from ipguard.core.server import GuardServer
from ipguard.utils.dependencies import Deps
from ipguard.utils.logging_setup import setup_logging


async def run_server() -> None:
    container = Container(settings)
    await container.init_resources()

    deps = Deps(settings=settings, ip_block_manager=container.ip_block_manager())
    server = GuardServer(deps, host=settings.HOST, port=settings.PORT)

    try:
        await server.start()
    finally:
        await server.stop()
        await container.shutdown_resources()


def main() -> None:
    setup_logging(
        level=settings.log_level,
        format="json" if settings.logging.json_enabled else "text",
        debug_loggers=settings.logging.debug_loggers,
    )

    logger.info("=" * 60)
    logger.info("🛡️ IP Guard")
    logger.info("=" * 60)
    logger.info(f"📝 Log level: {settings.log_level}")
    logger.info(f"📂 Blocklist: {settings.blocklist_path}")
    logger.info(f"⚙️ Security config: {settings.security_config_path}")
    logger.info("=" * 60)

    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        logger.info("⚠️ Received KeyboardInterrupt")
    except Exception as e:
        logger.exception(f"❌ Fatal error: {e}")
        sys.exit(1)
    finally:
        logger.info("👋 IP guard stopped")


if __name__ == "__main__":
    main()
