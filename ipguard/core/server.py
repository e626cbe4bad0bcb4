# ipguard/core/server.py
"""
HTTP сервер: health checks, админка и шлюз по IP.
"""
import asyncio
from typing import Optional

from aiohttp import web
from loguru import logger

from ipguard.handlers.admin.security_handler import routes as admin_routes
from ipguard.middlewares.ip_gate_middleware import ip_gate_middleware
from ipguard.utils.dependencies import DEPS_KEY, Deps


async def _health_check(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "service": "ipguard"})


def create_app(deps: Deps) -> web.Application:
    """Сборка aiohttp приложения с middleware шлюза."""
    app = web.Application(middlewares=[ip_gate_middleware])
    app[DEPS_KEY] = deps
    app.router.add_get("/health", _health_check)
    app.router.add_get("/healthz", _health_check)
    app.add_routes(admin_routes)
    return app


class GuardServer:
    """HTTP сервер поверх IpBlockManager."""

    def __init__(self, deps: Deps, host: str = "0.0.0.0", port: int = 10000):
        self.deps = deps
        self.host = host
        self.port = port
        self.runner: Optional[web.AppRunner] = None

    async def start(self) -> None:
        """Запуск HTTP сервера; работает до отмены задачи."""
        self.runner = web.AppRunner(create_app(self.deps), access_log=None)

        await self.runner.setup()
        site = web.TCPSite(self.runner, self.host, self.port)
        await site.start()

        logger.info(f"🛡️ IP guard server started on {self.host}:{self.port}")
        logger.info(f"   - Health: http://{self.host}:{self.port}/health")
        logger.info(f"   - Admin:  http://{self.host}:{self.port}/admin/blocked-ips")

        try:
            while True:
                await asyncio.sleep(3600)
        except asyncio.CancelledError:
            logger.info("⚠️ Server task cancelled")
            raise

    async def stop(self) -> None:
        """Остановка HTTP сервера."""
        if self.runner:
            logger.info("🛑 Stopping server...")
            await self.runner.cleanup()
            self.runner = None
            logger.info("✅ Server stopped")
