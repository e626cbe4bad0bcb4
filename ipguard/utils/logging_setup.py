# =============================================================================
# Файл: ipguard/utils/logging_setup.py
# Описание:
#   • Настройка логирования через loguru
#   • Текстовый или JSON-формат вывода
#   • Перехват стандартного logging (aiohttp, asyncio)
# =============================================================================

import logging
import sys
from typing import Iterable, Literal

from loguru import logger


NOISY_LOGGERS = (
    "aiohttp.access",
    "aiohttp.server",
    "aiohttp.web",
    "asyncio",
)


class InterceptHandler(logging.Handler):
    """
    Перехватчик стандартных логов Python с перенаправлением в loguru.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Поднимаемся по стеку до первого кадра вне модуля logging
        frame, depth = sys._getframe(6), 6
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(
    level: str = "INFO",
    format: Literal["text", "json"] = "text",
    debug_loggers: Iterable[str] = (),
) -> None:
    """
    Настраивает логирование для всего приложения.

    Args:
        level: Уровень логирования ("DEBUG", "INFO", "WARNING", "ERROR")
        format: Формат вывода ("text" или "json")
        debug_loggers: Имена stdlib-логгеров, которым оставляем DEBUG
    """
    logger.remove()

    if format == "json":
        logger.add(
            sys.stdout,
            level=level.upper(),
            serialize=True,
            backtrace=False,
            diagnose=False,
        )
    else:
        log_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        )
        logger.add(
            sys.stdout,
            format=log_format,
            level=level.upper(),
            colorize=True,
            backtrace=True,
            diagnose=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
    for logger_name in debug_loggers:
        logging.getLogger(logger_name).setLevel(logging.DEBUG)

    logger.info(f"✅ Logging configured: level={level.upper()}, format={format}")
