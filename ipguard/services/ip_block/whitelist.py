# ipguard/services/ip_block/whitelist.py
"""
Проверка адресов по белому списку и приватным диапазонам.
"""
from functools import lru_cache
from ipaddress import (
    IPv4Address,
    IPv6Address,
    ip_address,
    ip_network,
)
from typing import Optional, Union

from loguru import logger

from ipguard.config.models import WhitelistConfig

IPAddress = Union[IPv4Address, IPv6Address]

PRIVATE_NETWORKS = tuple(
    ip_network(net)
    for net in (
        "127.0.0.0/8",
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "::1/128",
        "fe80::/10",
        "fc00::/7",
    )
)


def parse_address(raw: Optional[str]) -> Optional[IPAddress]:
    """
    Безопасно разбирает строку с IP-адресом.

    Returns:
        Адрес или None, если строка пустая или некорректная
    """
    if not raw:
        return None
    try:
        return ip_address(raw.strip())
    except ValueError:
        return None


def _unmapped(addr: IPAddress) -> IPAddress:
    if isinstance(addr, IPv6Address) and addr.ipv4_mapped is not None:
        return addr.ipv4_mapped
    return addr


def normalize_address(raw: Optional[str]) -> Optional[str]:
    """
    Каноническая строковая форма адреса (ключ таблицы нарушений).

    IPv4-mapped IPv6 (::ffff:a.b.c.d) сводится к IPv4, чтобы у клиента
    была одна запись при любой форме адреса.
    """
    addr = parse_address(raw)
    if addr is None:
        return None
    return str(_unmapped(addr))


def normalize_entry(raw: Optional[str]) -> Optional[str]:
    """
    Нормализует запись белого списка: одиночный адрес или CIDR-сеть.

    Returns:
        Каноническая строка или None для некорректной записи
    """
    if not raw or not raw.strip():
        return None
    value = raw.strip()
    try:
        if "/" in value:
            return str(ip_network(value, strict=False))
        return str(_unmapped(ip_address(value)))
    except ValueError:
        return None


@lru_cache(maxsize=1024)
def _entry_network(entry: str):
    try:
        return ip_network(entry.strip(), strict=False)
    except ValueError:
        logger.debug(f"Некорректная запись белого списка пропущена: {entry!r}")
        return None


def _candidates(addr: IPAddress):
    yield addr
    if isinstance(addr, IPv6Address) and addr.ipv4_mapped is not None:
        yield addr.ipv4_mapped


def is_private(addr: IPAddress) -> bool:
    """Loopback, RFC1918, link-local/unique-local v6 и их IPv4-mapped формы."""
    return any(
        candidate in net
        for candidate in _candidates(addr)
        for net in PRIVATE_NETWORKS
        if candidate.version == net.version
    )


def is_whitelisted(address: Optional[str], config: WhitelistConfig) -> bool:
    """
    Проверяет, освобожден ли адрес от блокировок.

    Приватные и loopback-диапазоны освобождены всегда. Явные записи
    (адреса и CIDR-сети) учитываются только при включенном белом списке.
    """
    addr = parse_address(address)
    if addr is None:
        return False

    if is_private(addr):
        return True

    if not config.enabled:
        return False

    raw = address.strip()
    for entry in config.ips:
        if entry == raw:
            return True
        network = _entry_network(entry)
        if network is None:
            continue
        for candidate in _candidates(addr):
            if candidate.version == network.version and candidate in network:
                return True
    return False
