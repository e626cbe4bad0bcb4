# ipguard/handlers/admin/security_handler.py
"""
Административные эндпоинты управления блокировками и белым списком.
"""
import functools
import hmac
import json
from typing import Any, Dict, Optional

from aiohttp import web
from loguru import logger

from ipguard.middlewares.ip_gate_middleware import CLIENT_IP_KEY
from ipguard.services.ip_block import AdminActionResult
from ipguard.utils.dependencies import DEPS_KEY, Deps

routes = web.RouteTableDef()


def _fail(message: str, status: int = 400) -> web.Response:
    return web.json_response({"success": False, "message": message}, status=status)


def _result_response(result: AdminActionResult, data: Any = None) -> web.Response:
    body: Dict[str, Any] = {"success": result.ok, "message": result.message}
    if data is not None:
        body["data"] = data
    return web.json_response(body, status=200 if result.ok else 400)


async def _require_admin(request: web.Request) -> Optional[web.Response]:
    """
    Проверяет Bearer-токен администратора.

    Returns:
        None при успешной проверке, иначе готовый ответ с ошибкой
    """
    deps: Deps = request.app[DEPS_KEY]
    auth = request.headers.get("Authorization", "")

    if not auth.lower().startswith("bearer "):
        status, message = 401, "Отсутствует токен администратора"
    elif not hmac.compare_digest(auth.split(" ", 1)[1].strip(), deps.settings.admin_token):
        status, message = 403, "Неверный токен администратора"
    else:
        return None

    client_ip = request.get(CLIENT_IP_KEY)
    logger.warning(f"🔐 Неудачная попытка доступа к {request.path} с {client_ip}")
    await deps.ip_block_manager.record_violation(client_ip, "admin_auth")
    return _fail(message, status=status)


def admin_required(handler):
    @functools.wraps(handler)
    async def wrapper(request: web.Request) -> web.Response:
        denied = await _require_admin(request)
        if denied is not None:
            return denied
        return await handler(request)

    return wrapper


async def _read_json(request: web.Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


async def _read_ip(request: web.Request) -> Optional[str]:
    body = await _read_json(request)
    if not isinstance(body, dict):
        return None
    ip = body.get("ip")
    return ip.strip() if isinstance(ip, str) and ip.strip() else None


@routes.get("/admin/blocked-ips")
@admin_required
async def list_blocked_ips(request: web.Request) -> web.Response:
    manager = request.app[DEPS_KEY].ip_block_manager
    blocked = [item.model_dump() for item in manager.list_blocked()]
    return web.json_response({"success": True, "data": blocked})


@routes.post("/admin/unblock-ip")
@admin_required
async def unblock_ip(request: web.Request) -> web.Response:
    ip = await _read_ip(request)
    if ip is None:
        return _fail("Поле 'ip' обязательно")

    manager = request.app[DEPS_KEY].ip_block_manager
    if await manager.unblock(ip):
        return web.json_response({"success": True, "message": f"IP {ip} разблокирован"})
    return _fail(f"IP {ip} не найден в списке блокировок", status=404)


@routes.get("/admin/security-config")
@admin_required
async def get_security_config(request: web.Request) -> web.Response:
    manager = request.app[DEPS_KEY].ip_block_manager
    return web.json_response({"success": True, "data": manager.get_config().model_dump(mode="json")})


@routes.post("/admin/security-config")
@admin_required
async def update_security_config(request: web.Request) -> web.Response:
    body = await _read_json(request)
    if not isinstance(body, dict):
        return _fail("Ожидался JSON-объект с конфигурацией")

    manager = request.app[DEPS_KEY].ip_block_manager
    result = await manager.update_config(body)
    return _result_response(result, data=manager.get_config().model_dump(mode="json"))


@routes.post("/admin/whitelist")
@admin_required
async def add_whitelist_ip(request: web.Request) -> web.Response:
    ip = await _read_ip(request)
    if ip is None:
        return _fail("Поле 'ip' обязательно")

    result = await request.app[DEPS_KEY].ip_block_manager.add_whitelist_ip(ip)
    return _result_response(result)


@routes.post("/admin/whitelist/remove")
@admin_required
async def remove_whitelist_ip(request: web.Request) -> web.Response:
    ip = await _read_ip(request)
    if ip is None:
        return _fail("Поле 'ip' обязательно")

    result = await request.app[DEPS_KEY].ip_block_manager.remove_whitelist_ip(ip)
    return _result_response(result)
