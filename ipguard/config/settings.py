# ipguard/config/settings.py
import logging
from pathlib import Path
from typing import Any

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ipguard.config.models import LoggingConfig


class Settings(BaseSettings):
    ADMIN_TOKEN: SecretStr

    HOST: str = "0.0.0.0"
    PORT: int = 10000

    DATA_DIR: str = "data"
    BLOCKLIST_FILE: str = "ip-blocklist.json"
    SECURITY_CONFIG_PATH: str = "security.json"
    SECURITY_CONFIG_EXAMPLE_PATH: str = "security.json.example"

    TRUST_XFF: bool = False

    log_level: str = "INFO"
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("ADMIN_TOKEN", mode="before")
    @classmethod
    def strip_admin_token(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("ADMIN_TOKEN не может быть пустым.")
        return v

    @property
    def admin_token(self) -> str:
        return self.ADMIN_TOKEN.get_secret_value()

    @property
    def blocklist_path(self) -> Path:
        return Path(self.DATA_DIR) / self.BLOCKLIST_FILE

    @property
    def security_config_path(self) -> Path:
        return Path(self.SECURITY_CONFIG_PATH)

    @property
    def security_config_example_path(self) -> Path:
        return Path(self.SECURITY_CONFIG_EXAMPLE_PATH)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )


try:
    settings = Settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    logging.info("✅ Конфигурация успешно загружена и валидирована.")
except ValidationError as e:
    logging.critical(
        "❌ КРИТИЧЕСКАЯ ОШИБКА ВАЛИДАЦИИ НАСТРОЕК. Проверьте .env и переменные окружения.\n%s",
        e,
    )
    raise SystemExit("Ошибки валидации конфигурации.")
