# ipguard/services/ip_block/models.py
from __future__ import annotations

from typing import Dict, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ViolationRecord(BaseModel):
    """
    Накопленные нарушения одного адреса. Все отметки времени в мс.

    При загрузке принимаются и camelCase-ключи старого формата таблицы
    (expiresAt, violations, tempBlockCount, lastViolation). Сохраняется
    всегда в snake_case, неизвестные ключи делают запись некорректной.
    """
    model_config = ConfigDict(extra="forbid")

    address: str = ""
    permanent: bool = False
    expires_at: int = Field(default=0, validation_alias=AliasChoices("expires_at", "expiresAt"))
    violation_count: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("violation_count", "violations")
    )
    temp_block_count: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("temp_block_count", "tempBlockCount")
    )
    last_violation_at: int = Field(
        default=0, validation_alias=AliasChoices("last_violation_at", "lastViolation")
    )

    def is_active_block(self, now_ms: int) -> bool:
        return self.permanent or (bool(self.expires_at) and now_ms < self.expires_at)


class BlocklistDocument(BaseModel):
    """Формат файла ip-blocklist.json."""
    blocked_ips: Dict[str, ViolationRecord] = Field(default_factory=dict)


class Verdict(BaseModel):
    """Решение шлюза по адресу."""
    blocked: bool = False
    reason: Optional[Literal["permanent", "temporary"]] = None
    expires_at: Optional[int] = None


class EscalationResult(BaseModel):
    """Итог обработки одного нарушения."""
    action: Literal["ignored", "counted", "temporary", "permanent"]
    violation_count: int = 0
    temp_block_count: int = 0
    expires_at: int = 0


class BlockedAddress(BaseModel):
    """Представление заблокированного адреса для админки."""
    address: str
    permanent: bool
    expires_at: int
    temp_block_count: int


class AdminActionResult(BaseModel):
    """Результат административного действия: флаг успеха и сообщение."""
    ok: bool
    message: str = ""

    def __bool__(self) -> bool:
        return self.ok
