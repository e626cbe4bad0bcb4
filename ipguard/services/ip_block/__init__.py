# ipguard/services/ip_block/__init__.py
"""
Модуль блокировки IP-адресов по накопленным нарушениям.

Компоненты:
- IpBlockManager - шлюз и эскалатор
- Verdict - решение шлюза
- ViolationRecord - запись нарушений адреса
"""

from ipguard.services.ip_block.models import (
    AdminActionResult,
    BlockedAddress,
    EscalationResult,
    Verdict,
    ViolationRecord,
)
from ipguard.services.ip_block.service import IpBlockManager

__all__ = [
    "IpBlockManager",
    "AdminActionResult",
    "BlockedAddress",
    "EscalationResult",
    "Verdict",
    "ViolationRecord",
]
