# ipguard/services/ip_block/violation_tracker.py
"""
Отслеживание нарушений и эскалация блокировок.
"""
from loguru import logger

from ipguard.config.models import BlockingConfig
from ipguard.services.ip_block.models import EscalationResult, ViolationRecord


class ViolationTracker:
    """
    Машина состояний эскалации для одного адреса.

    Реализует цепочку наказаний:
    - накопление нарушений в пределах окна
    - временная блокировка при достижении порога
    - перманентная блокировка после N временных блокировок

    Трекер не хранит состояние: он изменяет переданную запись, а владелец
    таблицы решает, когда ее сохранять.
    """

    def __init__(self, config: BlockingConfig):
        self.config = config

    def apply_gap_adjustment(self, record: ViolationRecord, now_ms: int) -> None:
        """
        Корректирует счетчик по длительности паузы с прошлого нарушения.

        Долгая пауза (больше violation_decay_time_ms) делит счетчик пополам,
        умеренная (больше violation_window_ms) начинает эпизод заново.
        """
        gap = now_ms - record.last_violation_at
        if gap > self.config.violation_decay_time_ms:
            record.violation_count = max(0, record.violation_count // 2)
        elif gap > self.config.violation_window_ms:
            record.violation_count = 0

    def register(
        self,
        record: ViolationRecord,
        now_ms: int,
        violation_type: str = "unknown",
    ) -> EscalationResult:
        """
        Регистрирует нарушение и при необходимости накладывает блокировку.

        Args:
            record: Запись адреса (изменяется на месте)
            now_ms: Текущее время в миллисекундах
            violation_type: Метка нарушения, только для логов

        Returns:
            EscalationResult с итоговым действием
        """
        if record.is_active_block(now_ms):
            return self._result("ignored", record)

        self.apply_gap_adjustment(record, now_ms)

        record.violation_count += 1
        record.last_violation_at = now_ms

        if record.violation_count < self.config.max_violations_before_temp_block:
            logger.debug(
                f"⚠️ Нарушение #{record.violation_count} ({violation_type}) "
                f"для {record.address}"
            )
            return self._result("counted", record)

        record.temp_block_count += 1
        record.violation_count = 0

        if record.temp_block_count >= self.config.max_temp_blocks_before_permanent:
            record.permanent = True
            record.expires_at = 0
            logger.warning(
                f"🚫 IP {record.address} заблокирован навсегда "
                f"за частые нарушения ({violation_type})"
            )
            return self._result("permanent", record)

        record.expires_at = now_ms + self.config.temp_block_duration_ms
        logger.warning(
            f"⛔ IP {record.address} временно заблокирован за частые нарушения "
            f"({violation_type}) на {round(self.config.temp_block_duration_ms / 60000)} мин "
            f"(всего блокировок: {record.temp_block_count})"
        )
        return self._result("temporary", record)

    @staticmethod
    def _result(action: str, record: ViolationRecord) -> EscalationResult:
        return EscalationResult(
            action=action,
            violation_count=record.violation_count,
            temp_block_count=record.temp_block_count,
            expires_at=record.expires_at,
        )
