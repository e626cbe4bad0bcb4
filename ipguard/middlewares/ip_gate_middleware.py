# ipguard/middlewares/ip_gate_middleware.py
from typing import Optional

from aiohttp import web
from loguru import logger

from ipguard.utils.dependencies import DEPS_KEY

CLIENT_IP_KEY = "client_ip"


def get_client_ip(request: web.Request, trust_xff: bool = False) -> Optional[str]:
    """
    Определяет адрес клиента.

    X-Forwarded-For учитывается только если приложение стоит за доверенным
    прокси (TRUST_XFF); берется первый адрес цепочки.
    """
    if trust_xff:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.remote


@web.middleware
async def ip_gate_middleware(request: web.Request, handler):
    deps = request.app[DEPS_KEY]
    client_ip = get_client_ip(request, deps.settings.TRUST_XFF)
    request[CLIENT_IP_KEY] = client_ip

    verdict = deps.ip_block_manager.check(client_ip)
    if verdict.blocked:
        logger.debug(f"⛔ Запрос {request.method} {request.path} от {client_ip} отклонен ({verdict.reason})")
        return web.json_response(
            {
                "success": False,
                "message": "Доступ с вашего IP-адреса заблокирован",
                "reason": verdict.reason,
                "expires_at": verdict.expires_at,
            },
            status=403,
        )

    return await handler(request)
