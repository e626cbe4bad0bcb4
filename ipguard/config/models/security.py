# ipguard/config/models/security.py
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Имена полей из security.json старого формата (camelCase)
LEGACY_BLOCKING_KEYS = {
    "tempBlockDuration": "temp_block_duration_ms",
    "tempBlockDurationMs": "temp_block_duration_ms",
    "maxViolationsBeforeTempBlock": "max_violations_before_temp_block",
    "maxTempBlocksBeforePermanent": "max_temp_blocks_before_permanent",
    "violationWindow": "violation_window_ms",
    "violationWindowMs": "violation_window_ms",
    "violationDecayTime": "violation_decay_time_ms",
    "violationDecayTimeMs": "violation_decay_time_ms",
}


def normalize_blocking_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    """Переводит camelCase-ключи группы blocking в имена полей модели."""
    return {LEGACY_BLOCKING_KEYS.get(key, key): value for key, value in data.items()}


class WhitelistConfig(BaseModel):
    model_config = ConfigDict(protected_namespaces=(), extra="forbid")

    enabled: bool = True
    ips: List[str] = Field(default_factory=lambda: ["127.0.0.1", "::1"])


class BlockingConfig(BaseModel):
    model_config = ConfigDict(protected_namespaces=(), extra="forbid")

    enabled: bool = True

    temp_block_duration_ms: int = Field(default=60 * 60 * 1000, ge=0)
    max_violations_before_temp_block: int = Field(default=50, ge=1)
    max_temp_blocks_before_permanent: int = Field(default=10, ge=1)

    violation_window_ms: int = Field(default=5 * 60 * 1000, ge=0)
    violation_decay_time_ms: int = Field(default=30 * 60 * 1000, ge=0)

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return normalize_blocking_keys(data)
        return data

    @model_validator(mode="after")
    def check_decay_after_window(self) -> "BlockingConfig":
        if self.violation_decay_time_ms < self.violation_window_ms:
            raise ValueError(
                "violation_decay_time_ms должен быть не меньше violation_window_ms"
            )
        return self


class SecurityConfig(BaseModel):
    """
    Документ конфигурации защиты (security.json).

    Неизвестные ключи верхнего уровня сохраняются как есть, неизвестные
    ключи внутри групп whitelist и blocking отклоняются.
    """
    model_config = ConfigDict(protected_namespaces=(), extra="allow")

    whitelist: WhitelistConfig = Field(default_factory=WhitelistConfig)
    blocking: BlockingConfig = Field(default_factory=BlockingConfig)
