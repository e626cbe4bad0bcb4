# ipguard/services/ip_block/storage.py
"""
Хранение JSON-документов на диске с последовательной записью.
"""
import asyncio
import json
import os
import shutil
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from loguru import logger

PathLike = Union[str, Path]


class JsonFileStore:
    """
    JSON-файл с очередью записи из одного писателя.

    Каждый вызов save() ждет завершения предыдущей записи. Снимок данных
    берется в момент начала записи, поэтому запросы, пришедшие пока запись
    стояла в очереди, объединяются в одну физическую запись с последним
    состоянием. Ошибки чтения и записи логируются и не пробрасываются.
    """

    def __init__(self, path: PathLike, name: str = "json"):
        self.path = Path(path)
        self.name = name
        self._lock = asyncio.Lock()
        self._requested = 0
        self._written = 0

    async def load(self) -> Optional[Dict[str, Any]]:
        """
        Читает документ с диска.

        Returns:
            Словарь с данными или None, если файла нет или он поврежден
        """
        try:
            text = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        except FileNotFoundError:
            logger.info(f"📄 Файл {self.name} не найден: {self.path}, используем значения по умолчанию")
            return None
        except OSError as e:
            logger.error(f"❌ Ошибка чтения {self.name} ({self.path}): {e}")
            return None

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"❌ Ошибка парсинга JSON в {self.path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.error(f"❌ {self.path}: ожидался JSON-объект, получен {type(data).__name__}")
            return None
        return data

    async def save(self, snapshot: Callable[[], Dict[str, Any]]) -> bool:
        """
        Ставит запись в очередь и дожидается ее выполнения.

        Args:
            snapshot: Функция, возвращающая актуальное состояние для записи

        Returns:
            True если данные на диске отражают состояние на момент вызова
        """
        self._requested += 1
        ticket = self._requested

        async with self._lock:
            if self._written >= ticket:
                return True

            target = self._requested
            try:
                payload = json.dumps(snapshot(), ensure_ascii=False, indent=2)
                await asyncio.to_thread(self._write_atomic, payload)
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"❌ Ошибка сохранения {self.name} ({self.path}): {e}")
                return False

            self._written = target
            return True

    async def flush(self) -> None:
        """Дожидается завершения текущей записи."""
        async with self._lock:
            pass

    def _write_atomic(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)


def bootstrap_from_template(target: PathLike, template: PathLike) -> bool:
    """
    Создает документ конфигурации из шаблона, если его еще нет.

    Returns:
        True если файл был создан из шаблона
    """
    target, template = Path(target), Path(template)
    if target.exists():
        return False
    if not template.exists():
        logger.warning(f"⚠️ Шаблон {template} не найден, используем конфигурацию по умолчанию")
        return False
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(template, target)
    except OSError as e:
        logger.error(f"❌ Не удалось создать {target} из шаблона {template}: {e}")
        return False
    logger.info(f"📋 {target.name} создан из {template.name}")
    return True
