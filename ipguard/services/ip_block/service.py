# ipguard/services/ip_block/service.py
"""
Главный сервис блокировки IP-адресов по нарушениям.
"""
import asyncio
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from loguru import logger
from pydantic import ValidationError

from ipguard.config.models import SecurityConfig
from ipguard.config.models.security import normalize_blocking_keys
from ipguard.services.ip_block.models import (
    AdminActionResult,
    BlockedAddress,
    BlocklistDocument,
    EscalationResult,
    Verdict,
    ViolationRecord,
)
from ipguard.services.ip_block.storage import JsonFileStore
from ipguard.services.ip_block.violation_tracker import ViolationTracker
from ipguard.services.ip_block.whitelist import (
    is_whitelisted,
    normalize_address,
    normalize_entry,
)

NESTED_GROUPS = ("whitelist", "blocking")


def now_ms() -> int:
    return int(time.time() * 1000)


def _severity(record: ViolationRecord) -> tuple:
    # при слиянии записей одного адреса (IPv4 и ::ffff:IPv4) остается более строгая
    return (record.permanent, record.temp_block_count, record.expires_at, record.last_violation_at)


class IpBlockManager:
    """
    Шлюз и эскалатор для адресов-источников запросов.

    Архитектура:
    ┌──────────────────────────────────┐
    │  IpBlockManager (Фасад)          │
    └──────────────────────────────────┘
          ↓             ↓            ↓
    ┌───────────┐ ┌──────────────┐ ┌──────────────┐
    │ Whitelist │ │ Violation    │ │ JsonFileStore│
    │ (ranges)  │ │ Tracker      │ │ (blocklist,  │
    │           │ │ (escalation) │ │  config)     │
    └───────────┘ └──────────────┘ └──────────────┘

    Таблица нарушений и конфигурация принадлежат только менеджеру; наружу
    отдаются копии и модели-представления.
    """

    def __init__(
        self,
        blocklist_path: Union[str, Path],
        config_path: Union[str, Path],
        clock: Callable[[], int] = now_ms,
    ):
        """
        Args:
            blocklist_path: Путь к ip-blocklist.json
            config_path: Путь к security.json
            clock: Источник текущего времени в миллисекундах
        """
        self._blocklist_store = JsonFileStore(blocklist_path, name="blocklist")
        self._config_store = JsonFileStore(config_path, name="security config")
        self._clock = clock
        self._init_lock = asyncio.Lock()

        self._records: Dict[str, ViolationRecord] = {}
        self._config = SecurityConfig()
        self._tracker = ViolationTracker(self._config.blocking)
        self.initialized = False

    # ------------------------------------------------------------------
    # Жизненный цикл
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Загружает конфигурацию и таблицу нарушений с диска."""
        async with self._init_lock:
            if self.initialized:
                return
            await self._load_config()
            await self._load_blocklist()
            self.initialized = True
            logger.success(
                f"✅ IpBlockManager инициализирован "
                f"(записей: {len(self._records)}, "
                f"блокировка: {'вкл' if self._config.blocking.enabled else 'выкл'})"
            )

    async def close(self) -> None:
        """Дожидается завершения отложенных записей на диск."""
        await self._blocklist_store.flush()
        await self._config_store.flush()
        logger.info("🛑 IpBlockManager остановлен")

    async def _load_config(self) -> None:
        data = await self._config_store.load()
        if data is None:
            self._set_config(SecurityConfig())
            return
        try:
            config = SecurityConfig.model_validate(data)
        except ValidationError as e:
            logger.error(f"❌ Некорректная конфигурация безопасности, используем значения по умолчанию: {e}")
            self._set_config(SecurityConfig())
            return

        # некорректные записи остаются в файле как есть и при проверке пропускаются
        entries = []
        for entry in config.whitelist.ips:
            entry = normalize_entry(entry) or entry
            if entry not in entries:
                entries.append(entry)
        config.whitelist.ips = entries
        self._set_config(config)

    async def _load_blocklist(self) -> None:
        data = await self._blocklist_store.load()
        self._records = {}
        if data is None:
            return

        raw_records = data.get("blocked_ips", {})
        if not isinstance(raw_records, dict):
            logger.error("❌ Ключ 'blocked_ips' в таблице блокировок должен быть объектом.")
            return

        skipped = 0
        for raw_address, item in raw_records.items():
            key = normalize_address(raw_address)
            if key is None:
                skipped += 1
                continue
            try:
                record = ViolationRecord.model_validate(item)
            except ValidationError as e:
                skipped += 1
                logger.warning(f"⚠️ Пропущена некорректная запись для {raw_address}: {e}")
                continue
            record.address = key
            if record.permanent:
                record.expires_at = 0
            existing = self._records.get(key)
            if existing is not None and _severity(existing) >= _severity(record):
                continue
            self._records[key] = record

        if skipped:
            logger.warning(f"⚠️ Пропущено некорректных записей блокировок: {skipped}")

    def _set_config(self, config: SecurityConfig) -> None:
        self._config = config
        self._tracker = ViolationTracker(config.blocking)

    # ------------------------------------------------------------------
    # Сохранение
    # ------------------------------------------------------------------

    def _blocklist_snapshot(self) -> Dict[str, Any]:
        return BlocklistDocument(blocked_ips=self._records).model_dump(mode="json")

    def _config_snapshot(self) -> Dict[str, Any]:
        return self._config.model_dump(mode="json")

    async def save(self) -> bool:
        """Сохраняет таблицу нарушений (записи сериализуются по очереди)."""
        return await self._blocklist_store.save(self._blocklist_snapshot)

    async def save_config(self) -> bool:
        saved = await self._config_store.save(self._config_snapshot)
        if saved:
            logger.info("💾 Конфигурация безопасности сохранена")
        return saved

    # ------------------------------------------------------------------
    # Шлюз
    # ------------------------------------------------------------------

    def is_whitelisted(self, address: Optional[str]) -> bool:
        return is_whitelisted(address, self._config.whitelist)

    def check(self, address: Optional[str]) -> Verdict:
        """
        Проверяет, заблокирован ли адрес.

        Истекшие временные блокировки не удаляются, а просто считаются
        неактивными. При любой внутренней ошибке адрес пропускается.

        Args:
            address: IP-адрес источника запроса

        Returns:
            Verdict с решением
        """
        try:
            key = normalize_address(address)
            if key is None or self.is_whitelisted(key):
                return Verdict(blocked=False)
            if not self._config.blocking.enabled:
                return Verdict(blocked=False)

            record = self._records.get(key)
            if record is None:
                return Verdict(blocked=False)

            if record.permanent:
                return Verdict(blocked=True, reason="permanent")

            if record.expires_at and self._clock() < record.expires_at:
                return Verdict(blocked=True, reason="temporary", expires_at=record.expires_at)

            return Verdict(blocked=False)
        except Exception as e:
            logger.error(f"❌ Ошибка проверки адреса {address!r}, пропускаем: {e}")
            return Verdict(blocked=False)

    # ------------------------------------------------------------------
    # Эскалация
    # ------------------------------------------------------------------

    async def record_violation(
        self,
        address: Optional[str],
        violation_type: str = "unknown",
    ) -> EscalationResult:
        """
        Регистрирует нарушение для адреса.

        Таблица сохраняется только если было наложено новое ограничение.

        Args:
            address: IP-адрес нарушителя
            violation_type: Тип нарушения (только для логов)

        Returns:
            EscalationResult с итоговым действием
        """
        key = normalize_address(address)
        if key is None:
            return EscalationResult(action="ignored")

        if not self.initialized:
            await self.init()

        if self.is_whitelisted(key) or not self._config.blocking.enabled:
            return EscalationResult(action="ignored")

        record = self._records.get(key)
        if record is None:
            record = ViolationRecord(address=key)
            self._records[key] = record

        result = self._tracker.register(record, self._clock(), violation_type)

        if result.action in ("temporary", "permanent"):
            await self.save()

        return result

    # ------------------------------------------------------------------
    # Администрирование
    # ------------------------------------------------------------------

    def get_record(self, address: Optional[str]) -> Optional[ViolationRecord]:
        key = normalize_address(address)
        record = self._records.get(key) if key else None
        return record.model_copy() if record else None

    def list_blocked(self) -> List[BlockedAddress]:
        """Возвращает адреса в активной блокировке, таблицу не изменяет."""
        now = self._clock()
        return [
            BlockedAddress(
                address=address,
                permanent=record.permanent,
                expires_at=record.expires_at,
                temp_block_count=record.temp_block_count,
            )
            for address, record in self._records.items()
            if record.is_active_block(now)
        ]

    async def unblock(self, address: Optional[str]) -> bool:
        """
        Полностью удаляет запись адреса.

        Returns:
            True если запись существовала
        """
        key = normalize_address(address)
        if key is None or key not in self._records:
            return False

        del self._records[key]
        await self.save()
        logger.info(f"🔓 IP {key} разблокирован")
        return True

    def get_config(self) -> SecurityConfig:
        return self._config.model_copy(deep=True)

    async def update_config(self, partial: Dict[str, Any]) -> AdminActionResult:
        """
        Обновляет конфигурацию.

        Ключи верхнего уровня заменяются, группы whitelist и blocking
        сливаются по полям. Некорректный результат отклоняется целиком.

        Args:
            partial: Частичный документ конфигурации

        Returns:
            AdminActionResult
        """
        if not isinstance(partial, dict):
            return AdminActionResult(ok=False, message="Конфигурация должна быть JSON-объектом")

        merged = self._config.model_dump()
        for key, value in partial.items():
            if key in NESTED_GROUPS and isinstance(value, dict):
                if key == "blocking":
                    value = normalize_blocking_keys(value)
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value

        try:
            new_config = SecurityConfig.model_validate(merged)
        except ValidationError as e:
            logger.warning(f"⚠️ Отклонено обновление конфигурации: {e}")
            return AdminActionResult(ok=False, message=f"Некорректная конфигурация: {e}")

        normalized_ips = []
        for entry in new_config.whitelist.ips:
            normalized = normalize_entry(entry)
            if normalized is None:
                return AdminActionResult(ok=False, message=f"Некорректная запись белого списка: {entry}")
            if normalized not in normalized_ips:
                normalized_ips.append(normalized)
        new_config.whitelist.ips = normalized_ips

        self._set_config(new_config)
        await self.save_config()
        return AdminActionResult(ok=True, message="Конфигурация обновлена")

    async def add_whitelist_ip(self, ip: Optional[str]) -> AdminActionResult:
        entry = normalize_entry(ip)
        if entry is None:
            return AdminActionResult(ok=False, message="Некорректный IP-адрес или CIDR")

        ips = self._config.whitelist.ips
        if entry in ips:
            return AdminActionResult(ok=False, message=f"{entry} уже в белом списке")

        ips.append(entry)
        await self.save_config()
        logger.info(f"📝 IP {entry} добавлен в белый список")
        return AdminActionResult(ok=True, message=f"{entry} добавлен в белый список")

    async def remove_whitelist_ip(self, ip: Optional[str]) -> AdminActionResult:
        if not ip or not ip.strip():
            return AdminActionResult(ok=False, message="IP-адрес не указан")

        candidates = {ip.strip(), normalize_entry(ip)}
        ips = self._config.whitelist.ips
        for entry in ips:
            if entry in candidates:
                ips.remove(entry)
                await self.save_config()
                logger.info(f"🗑️ IP {entry} удален из белого списка")
                return AdminActionResult(ok=True, message=f"{entry} удален из белого списка")

        return AdminActionResult(ok=False, message=f"{ip.strip()} нет в белом списке")
