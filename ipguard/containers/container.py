# ipguard/containers/container.py
from typing import Optional

from dependency_injector import containers, providers
from loguru import logger

from ipguard.config.settings import Settings, settings as default_settings
from ipguard.services.ip_block import IpBlockManager
from ipguard.services.ip_block.storage import bootstrap_from_template


class Container(containers.DynamicContainer):
    """Владелец единственного экземпляра IpBlockManager и его жизненного цикла."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        super().__init__()
        app_settings = settings or default_settings

        self.settings = providers.Object(app_settings)

        self.ip_block_manager = providers.Singleton(
            IpBlockManager,
            blocklist_path=app_settings.blocklist_path,
            config_path=app_settings.security_config_path,
        )

    async def init_resources(self) -> None:
        logger.info("🔧 Initializing container resources...")
        app_settings = self.settings()

        bootstrap_from_template(
            app_settings.security_config_path,
            app_settings.security_config_example_path,
        )

        manager = self.ip_block_manager()
        await manager.init()
        logger.info("✅ IP block manager ready")

    async def shutdown_resources(self) -> None:
        logger.info("🛑 Shutting down container resources...")
        try:
            await self.ip_block_manager().close()
        except Exception as e:
            logger.error(f"❌ Error closing IP block manager: {e}")
        self.ip_block_manager.reset()
        logger.info("✅ Container resources released")
