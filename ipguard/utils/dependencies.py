# ipguard/utils/dependencies.py
from __future__ import annotations

from dataclasses import dataclass

from aiohttp import web

from ipguard.config.settings import Settings
from ipguard.services.ip_block import IpBlockManager


@dataclass
class Deps:
    """
    Легковесный контейнер зависимостей для HTTP-хэндлеров и middleware.
    """
    settings: Settings
    ip_block_manager: IpBlockManager


DEPS_KEY = web.AppKey("deps", Deps)
